from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

import numpy as np

from sptiff._errors import UnsupportedPixelTypeError
from sptiff._pixel_type import PixelType

if TYPE_CHECKING:
    from sptiff._coords import Coords
    from sptiff._metadata import ImageMetadata

__all__ = ["Image"]


@dataclass(frozen=True, eq=False)
class Image:
    """One 2D image plane with its coordinates and metadata.

    Parameters
    ----------
    pixels : numpy.ndarray
        `(height, width)` uint8 or uint16 array for grayscale images, or a
        `(height, width, 4)` uint8 array in BGRA order for RGB32 images.
    coords : Coords
        Position of the plane within the dataset.
    metadata : ImageMetadata | None
        Per-image metadata (position name, pixel size, receipt time, ...).
    """

    pixels: np.ndarray
    coords: Coords
    metadata: ImageMetadata | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "pixels", np.asarray(self.pixels))
        if self.pixels.ndim not in (2, 3):
            raise ValueError(
                f"Image pixels must be 2D (or 3D for RGB), got shape "
                f"{self.pixels.shape}"
            )

    def __repr__(self) -> str:
        return (
            f"<Image {self.width}x{self.height} {self.pixels.dtype} "
            f"at {self.coords!r}>"
        )

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def pixel_type(self) -> PixelType:
        """The pixel layout.  Raises `UnsupportedPixelTypeError` if unsupported."""
        return PixelType.from_array(self.pixels.shape, self.pixels.dtype)

    @property
    def bytes_per_pixel(self) -> int:
        try:
            return self.pixel_type.bytes_per_pixel
        except UnsupportedPixelTypeError as e:
            return e.bytes_per_pixel

    @property
    def num_components(self) -> int:
        try:
            return self.pixel_type.num_components
        except UnsupportedPixelTypeError as e:
            return e.num_components

    def copy_with(self, **changes: Any) -> Image:
        """Return a copy with `pixels`, `coords` and/or `metadata` replaced."""
        return replace(self, **changes)

    def format_properties(self) -> dict[str, Any]:
        """Image format fields stored alongside the per-image metadata."""
        pixel_type = self.pixel_type
        return {
            "Width": self.width,
            "Height": self.height,
            "PixelType": pixel_type.legacy_name,
            "IJType": pixel_type.ij_type,
            "BitDepth": pixel_type.bit_depth,
        }
