"""Mapping between coordinate keys and on-disk file names.

Two naming conventions exist:

- current: `img_channel000_position000_time000000000_z000.tif`, one
  `_<axis><index>` part per axis present, axes sorted by name.  Time is
  zero-padded to 9 digits, all other axes to 3.
- legacy (1.x): `img_<time:09>_<channel name>_<z:03>.tif`.  Channels are
  identified by name, so mapping a channel index to a file requires the table
  of channel names built by `scan_channel_names()`.
"""

from __future__ import annotations

import logging
import os
import re
from typing import TYPE_CHECKING

from sptiff._coords import TIME

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sptiff._coords import Coords

__all__ = [
    "LEGACY_FILENAME_RE",
    "current_file_name",
    "legacy_file_name",
    "scan_channel_names",
]

logger = logging.getLogger(__name__)

LEGACY_FILENAME_RE = re.compile(r"img_(\d+)_(.*)_(\d+).tif")
"""Pattern of 1.x file names; group 2 is the channel name."""


def current_file_name(coords: Coords) -> str:
    """Return the current-format file name for `coords`."""
    parts = ["img"]
    for axis in sorted(coords.axes):
        width = 9 if axis == TIME else 3
        parts.append(f"{axis}{coords[axis]:0{width}d}")
    return "_".join(parts) + ".tif"


def legacy_file_name(coords: Coords, channel_names: Sequence[str]) -> str:
    """Return the 1.x file name for `coords`.

    An unknown channel index is logged and encoded as an empty channel name;
    legacy recovery is best-effort and never fails here.
    """
    channel_index = coords.channel
    channel = ""
    if 0 <= channel_index < len(channel_names):
        channel = channel_names[channel_index]
    else:
        logger.error(
            "Invalid channel index %d into channel list %s",
            channel_index,
            list(channel_names),
        )
    time = max(coords.time, 0)
    z = max(coords.z, 0)
    return f"img_{time:09d}_{channel}_{z:03d}.tif"


def scan_channel_names(directory: str | os.PathLike) -> list[str]:
    """Return the sorted, de-duplicated channel names of 1.x files in `directory`.

    The position of a name in the returned list is its channel index.  A
    directory that cannot be listed yields an empty list.
    """
    try:
        names = os.listdir(directory)
    except OSError as e:
        logger.error("Unable to list directory %s: %s", directory, e)
        return []
    channels: set[str] = set()
    for name in names:
        if match := LEGACY_FILENAME_RE.fullmatch(name):
            channels.add(match.group(2))
    return sorted(channels)
