"""Coordinate keys identifying one 2D image plane within a dataset."""

from __future__ import annotations

import math
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from typing_extensions import Self

__all__ = [
    "ALLOWED_AXES",
    "CHANNEL",
    "STAGE_POSITION",
    "TIME",
    "Z",
    "Coords",
]

CHANNEL = "channel"
TIME = "time"
Z = "z"
STAGE_POSITION = "position"

ALLOWED_AXES = frozenset({CHANNEL, TIME, Z, STAGE_POSITION})
"""The only axes a single-plane TIFF series can store."""

# axis name <-> key used in `Coords-*` records and embedded image metadata
_JSON_KEYS = {
    CHANNEL: "ChannelIndex",
    TIME: "FrameIndex",
    Z: "SliceIndex",
    STAGE_POSITION: "PositionIndex",
}
_JSON_ALIASES = {
    "ChannelIndex": CHANNEL,
    "FrameIndex": TIME,
    "Frame": TIME,
    "SliceIndex": Z,
    "Slice": Z,
    "PositionIndex": STAGE_POSITION,
}


class Coords(Mapping[str, int]):
    """Immutable mapping of axis name to non-negative index.

    Axes that are not given are *unset*, which is not the same as index 0:
    `Coords(time=0) != Coords(time=0, z=0)`.  Use `index()` to read an axis
    with the conventional `-1` for unset axes.

    Examples
    --------
    >>> c = Coords(time=3, channel=1)
    >>> c.axes
    ('channel', 'time')
    >>> c.copy_with(z=2)
    Coords(channel=1, time=3, z=2)
    >>> c.index("z")
    -1
    """

    __slots__ = ("_hash", "_indices")

    def __init__(self, **indices: int) -> None:
        clean: dict[str, int] = {}
        for axis, value in indices.items():
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(
                    f"Index for axis {axis!r} must be an int, got {value!r}"
                )
            if value < 0:
                raise ValueError(
                    f"Index for axis {axis!r} must be non-negative, got {value}"
                )
            clean[axis] = value
        self._indices = dict(sorted(clean.items()))
        self._hash = hash(tuple(self._indices.items()))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, int]) -> Self:
        return cls(**dict(mapping))

    # Mapping interface

    def __getitem__(self, axis: str) -> int:
        return self._indices[axis]

    def __iter__(self) -> Iterator[str]:
        return iter(self._indices)

    def __len__(self) -> int:
        return len(self._indices)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Coords):
            return self._indices == other._indices
        return NotImplemented

    def __hash__(self) -> int:
        return self._hash

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v}" for k, v in self._indices.items())
        return f"Coords({args})"

    # axis access

    @property
    def axes(self) -> tuple[str, ...]:
        """Names of the axes present, sorted lexicographically."""
        return tuple(self._indices)

    def has_axis(self, axis: str) -> bool:
        return axis in self._indices

    def index(self, axis: str) -> int:
        """Return the index along `axis`, or -1 if the axis is unset."""
        return self._indices.get(axis, -1)

    @property
    def channel(self) -> int:
        return self.index(CHANNEL)

    @property
    def time(self) -> int:
        return self.index(TIME)

    @property
    def z(self) -> int:
        return self.index(Z)

    @property
    def stage_position(self) -> int:
        return self.index(STAGE_POSITION)

    # derived keys

    def copy_with(self, **indices: int | None) -> Coords:
        """Return a copy with the given axes replaced.  `None` removes an axis."""
        new = dict(self._indices)
        for axis, value in indices.items():
            if value is None:
                new.pop(axis, None)
            else:
                new[axis] = value
        return Coords(**new)

    def matches(self, partial: Coords) -> bool:
        """Return True if this key agrees with `partial` on every axis it sets."""
        return all(self.index(axis) == value for axis, value in partial.items())

    def max_with(self, other: Coords) -> Coords:
        """Return the per-axis maximum over the union of both keys' axes."""
        merged = dict(self._indices)
        for axis, value in other.items():
            if value > merged.get(axis, -1):
                merged[axis] = value
        return Coords(**merged)

    # JSON

    def to_json_dict(self) -> dict[str, int]:
        """Serialize to the keys used by `Coords-*` metadata records."""
        return {_JSON_KEYS.get(axis, axis): value for axis, value in self.items()}

    @classmethod
    def from_json_dict(cls, data: Mapping[str, Any]) -> Coords:
        """Build a key from a `Coords-*` record or embedded image metadata.

        Recognized index keys are `ChannelIndex`, `FrameIndex`, `SliceIndex` and
        `PositionIndex` (plus the older `Frame` and `Slice`).  Negative indices,
        which older writers used for "not present", are dropped.  Keys that
        name an axis directly (e.g. `{"time": 3}`) are accepted as well.

        Raises
        ------
        ValueError
            If an index is NaN or infinite.
        """
        indices: dict[str, int] = {}
        for key, value in data.items():
            if key in _JSON_ALIASES:
                axis = _JSON_ALIASES[key]
                # the *Index form takes precedence over the bare form
                if axis in indices and not key.endswith("Index"):
                    continue
            elif key in ALLOWED_AXES:
                axis = key
            else:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                continue
            if not math.isfinite(value):
                raise ValueError(f"Index for axis {axis!r} must be finite, got {value}")
            if int(value) >= 0:
                indices[axis] = int(value)
        return cls(**indices)
