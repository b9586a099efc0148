#!/usr/bin/env python3
"""Phantom Catalog - command line entry point.

Usage:
    python -m phantom.main --migrate
    python -m phantom.main --scan-steam [--include-hidden] [--include-software] [--include-adult]
    python -m phantom.main --scan-store
    python -m phantom.main --scan-steam --verbose --log-file=phantom.log

Scan results are printed as JSON (``{"games": [...]}`` or ``{"error": ...}``).
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from phantom.config import config
from phantom.core.logging import logger, setup_logging
from phantom.core.models import ScanOptions
from phantom.services.library_service import LibraryService
from phantom.version import __app_name__, __version__

__all__ = ["main"]


def _options_from_argv(argv: list[str]) -> ScanOptions:
    return ScanOptions(
        include_hidden="--include-hidden" in argv,
        include_software="--include-software" in argv,
        include_adult="--include-adult" in argv,
    )


def main(argv: list[str] | None = None) -> int:
    """Main application execution flow.

    Returns:
        Exit code (0 = success, 1 = a requested scan failed).
    """
    argv = sys.argv[1:] if argv is None else argv

    if "--version" in argv:
        print(f"{__app_name__} {__version__}")
        return 0

    log_file = next((Path(a.split("=", 1)[1]) for a in argv if a.startswith("--log-file=")), None)
    setup_logging(logging.DEBUG if "--verbose" in argv else logging.INFO, log_file)

    logger.info("%s %s", __app_name__, __version__)
    if config.STEAM_PATH:
        logger.info("Steam found at %s", config.STEAM_PATH)
    else:
        logger.warning("Steam installation not found")

    exit_code = 0
    with LibraryService(config) as service:
        if "--migrate" in argv:
            migrated = service.migrate_legacy()
            print(json.dumps({"migrated": migrated, "counts": service.store.count_rows()}))

        options = _options_from_argv(argv)
        for flag, scan in (("--scan-steam", service.scan_steam), ("--scan-store", service.scan_store)):
            if flag not in argv:
                continue
            result = scan(options)
            print(json.dumps(result.to_dict(), indent=2))
            if not result.success:
                exit_code = 1

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
