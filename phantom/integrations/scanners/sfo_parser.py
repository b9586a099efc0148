"""Parser for PARAM.SFO title metadata files (PS3, PS Vita).

Binary layout (all little-endian):

    Header (20 bytes):
        0   magic           b"\\0PSF"
        4   version         uint32
        8   key_table       uint32  offset of the key table
        12  data_table      uint32  offset of the data table
        16  entry_count     uint32

    Entry i (16 bytes at 20 + 16*i):
        0   key_offset      uint16  relative to key_table
        2   data_format     uint16
        4   data_length     uint32
        8   data_max_length uint32
        12  data_offset     uint32  relative to data_table
"""

from __future__ import annotations

import logging
import struct
from pathlib import Path

logger = logging.getLogger("phantom.sfo_parser")

__all__ = ["extract_title", "read_sfo_title"]

SFO_MAGIC = b"\x00PSF"
HEADER_SIZE = 20
ENTRY_SIZE = 16


def _read_key(data: bytes, start: int) -> str | None:
    end = data.find(b"\x00", start)
    if end == -1:
        return None
    return data[start:end].decode("utf-8", errors="replace")


def extract_title(data: bytes, key: str = "TITLE") -> str | None:
    """Return the value stored under ``key`` in an SFO buffer.

    Args:
        data: Raw PARAM.SFO bytes.
        key: Entry key to look up.

    Returns:
        The decoded value cut at its first null byte, or None when the key is
        absent or the buffer is malformed. Never raises.
    """
    if len(data) < HEADER_SIZE or data[:4] != SFO_MAGIC:
        return None

    try:
        key_table, data_table, count = struct.unpack_from("<III", data, 8)
        for i in range(count):
            entry_at = HEADER_SIZE + ENTRY_SIZE * i
            key_offset, _fmt, length, _max_length, data_offset = struct.unpack_from("<HHIII", data, entry_at)

            key_at = key_table + key_offset
            if key_at >= len(data):
                return None
            if _read_key(data, key_at) != key:
                continue

            value_at = data_table + data_offset
            if value_at + length > len(data):
                return None
            raw = data[value_at : value_at + length].split(b"\x00", 1)[0]
            return raw.decode("utf-8", errors="replace").strip() or None
    except struct.error:
        return None
    return None


def read_sfo_title(path: Path, key: str = "TITLE") -> str | None:
    """Read ``path`` and extract ``key``; unreadable files yield None."""
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
        return None
    return extract_title(data, key)
