from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sptiff._coords import Coords
from sptiff._errors import PositionNameConflictError
from sptiff._filenames import scan_channel_names

if TYPE_CHECKING:
    import os
    from collections.abc import Iterator

__all__ = ["DatasetIndex"]

logger = logging.getLogger(__name__)


class DatasetIndex:
    """In-memory index of a single-plane TIFF series.

    Tracks:

    - the relative file path of every image, keyed by `Coords`;
    - the running maximum index along every axis seen so far;
    - the name bound to each stage position index;
    - the channel names of 1.x datasets, whose position in the list is the
      channel index.

    The index never touches pixel data.
    """

    def __init__(self) -> None:
        self._files: dict[Coords, str] = {}
        self._max_indices = Coords()
        self._position_names: dict[int, str] = {}
        self._channel_names: list[str] = []

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}: {len(self._files)} images, "
            f"max {self._max_indices!r}>"
        )

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, coords: object) -> bool:
        return coords in self._files

    def __iter__(self) -> Iterator[Coords]:
        return iter(self._files)

    # ------------------------ files --------------------------

    def file_name(self, coords: Coords) -> str | None:
        """Return the file path of `coords`, relative to the dataset root."""
        return self._files.get(coords)

    def set_file_name(self, coords: Coords, file_name: str) -> None:
        """Map `coords` to `file_name`, replacing any previous mapping."""
        self._files[coords] = file_name

    def add(self, coords: Coords, file_name: str) -> bool:
        """Record an image.

        The mapping is only created if `coords` is not yet known.  Maximum
        indices are updated either way.  Returns True if the key was new.
        """
        is_new = coords not in self._files
        if is_new:
            self._files[coords] = file_name
        self.update_max_indices(coords)
        return is_new

    def any_coords(self) -> Coords | None:
        return next(iter(self._files), None)

    def matching(self, partial: Coords) -> list[Coords]:
        """Return every stored key that agrees with `partial` on its axes."""
        return [coords for coords in self._files if coords.matches(partial)]

    # ------------------------ maxima --------------------------

    def update_max_indices(self, coords: Coords) -> None:
        self._max_indices = self._max_indices.max_with(coords)

    @property
    def max_indices(self) -> Coords:
        return self._max_indices

    def max_index(self, axis: str) -> int:
        """Maximum index seen along `axis`, or -1 if never seen."""
        return self._max_indices.index(axis)

    # ------------------------ positions --------------------------

    def bind_position_name(self, position: int, name: str) -> None:
        """Bind `name` to stage position `position`.

        Raises
        ------
        PositionNameConflictError
            If the position is already bound to a different name.
        """
        existing = self._position_names.get(position)
        if existing is not None and existing != name:
            raise PositionNameConflictError(position, existing, name)
        self._position_names[position] = name

    def position_name(self, position: int) -> str | None:
        return self._position_names.get(position)

    @property
    def position_names(self) -> dict[int, str]:
        return dict(self._position_names)

    # ------------------------ legacy channels --------------------------

    @property
    def channel_names(self) -> tuple[str, ...]:
        return tuple(self._channel_names)

    def assign_channel_names(self, directory: str | os.PathLike) -> tuple[str, ...]:
        """Populate the 1.x channel table from the file names in `directory`.

        Only the first scan that finds any channel names has an effect; later
        calls return the existing table.
        """
        if not self._channel_names:
            self._channel_names = scan_channel_names(directory)
            if self._channel_names:
                logger.debug(
                    "Assigned legacy channel indices: %s",
                    dict(enumerate(self._channel_names)),
                )
        return self.channel_names
