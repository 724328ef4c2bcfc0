"""Exceptions raised by sptiff.

Only violations that make a whole dataset unusable are raised.  Problems with a
single image or a single stage position are logged and skipped instead.
"""

from __future__ import annotations

__all__ = [
    "DatasetExistsError",
    "DatasetNotFoundError",
    "MissingPositionNameError",
    "PositionNameConflictError",
    "SPTiffError",
    "UnsupportedPixelTypeError",
]


class SPTiffError(Exception):
    """Base class for all sptiff errors."""


class DatasetExistsError(SPTiffError, FileExistsError):
    """Raised when creating a new dataset at a location that already exists."""


class DatasetNotFoundError(SPTiffError, FileNotFoundError):
    """Raised when no metadata stream or position directory is found."""


class MissingPositionNameError(SPTiffError, ValueError):
    """Raised when a multi-position image carries no `PositionName`."""


class UnsupportedPixelTypeError(SPTiffError, ValueError):
    """Raised for pixel layouts that cannot be stored as a single-plane TIFF."""

    def __init__(self, bytes_per_pixel: int, num_components: int) -> None:
        self.bytes_per_pixel = bytes_per_pixel
        self.num_components = num_components
        super().__init__(
            f"Unexpected image format with {bytes_per_pixel} bytes per pixel "
            f"and {num_components} components"
        )


class PositionNameConflictError(SPTiffError, ValueError):
    """Raised when a stage position index is rebound to a different name.

    This means the acquisition source changed position names mid-acquisition,
    and the on-disk layout would become ambiguous.
    """

    def __init__(self, position: int, existing: str, requested: str) -> None:
        self.position = position
        self.existing = existing
        self.requested = requested
        super().__init__(
            f"Position name changed during acquisition: position {position} is "
            f"named {existing!r}, but an image claims {requested!r}"
        )
