"""
Steam Store tag lookup.

Scrapes the user tags of a store page. Lookups are slow and rate limited by
Steam, so callers are expected to keep results in a TagCache; this module
only performs the network round trip.
"""

from __future__ import annotations

import logging
import threading
import time

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger("phantom.steam_store")


__all__ = ["SteamStoreTags"]


class SteamStoreTags:
    """
    Fetches user-defined tags from the Steam Store.

    Enforces a minimum interval between requests and a short timeout. Every
    kind of failure (timeout, HTTP 429, other non-200 status, network error)
    is reported as ``None`` so it is never mistaken for "this app has no tags".
    """

    STORE_URL = "https://store.steampowered.com/app/{app_id}/"

    def __init__(self, timeout: float = 5.0, min_interval: float = 1.0, session: requests.Session | None = None):
        """
        Initializes the SteamStoreTags client.

        Args:
            timeout (float): Request timeout in seconds.
            min_interval (float): Minimum seconds between two requests.
            session (requests.Session | None): Optional session to reuse.
        """
        self.timeout = timeout
        self.min_request_interval = min_interval
        self.session = session or requests.Session()
        self.last_request_time = 0.0
        self._lock = threading.Lock()

    def _rate_limit(self) -> None:
        """Enforces minimum interval between store requests."""
        elapsed = time.monotonic() - self.last_request_time
        if elapsed < self.min_request_interval:
            time.sleep(self.min_request_interval - elapsed)

    def fetch_tags(self, app_id: str) -> list[str] | None:
        """
        Fetches the tags of one app.

        Args:
            app_id (str): The Steam app ID.

        Returns:
            list[str] | None: Tag names (possibly empty), or None if the
                lookup failed and should be retried on a later scan.
        """
        with self._lock:
            self._rate_limit()
            self.last_request_time = time.monotonic()

        url = self.STORE_URL.format(app_id=app_id)
        try:
            response = self.session.get(
                url,
                cookies={"Steam_Language": "english", "birthtime": "0", "mature_content": "1"},
                timeout=self.timeout,
            )
        except requests.Timeout:
            logger.debug("Tag lookup for %s timed out", app_id)
            return None
        except requests.RequestException as e:
            logger.warning("Tag lookup for %s failed: %s", app_id, e)
            return None

        if response.status_code == 429:
            logger.info("Store rate limit hit while looking up %s", app_id)
            return None
        if response.status_code != 200:
            logger.debug("Tag lookup for %s returned HTTP %s", app_id, response.status_code)
            return None

        soup = BeautifulSoup(response.text, "html.parser")
        tags = []
        for tag_elem in soup.select(".app_tag"):
            tag_text = tag_elem.get_text().strip()
            if tag_text and tag_text != "+":
                tags.append(tag_text)
        return tags
