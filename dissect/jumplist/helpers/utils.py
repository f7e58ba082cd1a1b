from __future__ import annotations

import importlib.resources
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from dissect.util import ts

if TYPE_CHECKING:
    from collections.abc import Iterator

# FILETIME zero, "not set" in the LNK header and DestList
SENTINEL_YEAR = 1601

# Start of the 60-bit UUID version 1 timestamp
UUID_EPOCH = datetime(1582, 10, 15, tzinfo=timezone.utc)


def findall(buf: bytes, needle: bytes) -> Iterator[int]:
    offset = 0
    while True:
        offset = buf.find(needle, offset)
        if offset == -1:
            break

        yield offset
        offset += 1


def optional_wintimestamp(value: int) -> datetime | None:
    """Convert a FILETIME to a datetime, mapping the 1601 sentinel and unrepresentable values to ``None``."""
    try:
        dt = ts.wintimestamp(value)
    except (ValueError, OverflowError, OSError):
        return None

    if dt.year == SENTINEL_YEAR:
        return None
    return dt


def render_timestamp(dt: datetime | None) -> str:
    return dt.isoformat() if dt is not None else ""


def droid_timestamp(droid: uuid.UUID) -> datetime | None:
    """Return the creation time embedded in a version 1 object identifier."""
    if not droid.time:
        return None
    return UUID_EPOCH + timedelta(microseconds=droid.time // 10)


def droid_mac_address(droid: uuid.UUID) -> str:
    """Return the node of an object identifier as a colon separated MAC address."""
    return ":".join(f"{octet:02x}" for octet in droid.node.to_bytes(6, "big"))


def get_resource_string(path: str) -> str:
    return _get_resource_path(path).read_text(encoding="utf-8")


def _get_resource_path(path: str) -> Path:
    root = importlib.resources.files(__package__) if __package__ else Path(__file__).parent
    fpath = root.joinpath(path)

    if not fpath.exists():
        raise IOError(f"Can't find resource {fpath}")

    return fpath
