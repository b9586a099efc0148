"""Artwork pipeline: path resolution, transcoding and the resized-image cache."""

from __future__ import annotations

from phantom.assets.proxy_cache import ProxyCache
from phantom.assets.resolver import AssetResolver
from phantom.assets.transcoder import ImageTranscoder

__all__ = ["AssetResolver", "ImageTranscoder", "ProxyCache"]
