from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from sptiff._errors import UnsupportedPixelTypeError

if TYPE_CHECKING:
    from numpy.typing import DTypeLike

__all__ = ["PixelType"]


class PixelType(Enum):
    """Pixel layouts a single-plane TIFF series can store.

    Each member carries a fixed `(bytes_per_pixel, num_components)` pair.
    RGB32 images are held in memory as `(height, width, 4)` uint8 arrays in
    BGRA order; only the three color components are written to disk.
    """

    GRAY8 = (1, 1)
    GRAY16 = (2, 1)
    RGB32 = (4, 3)

    @property
    def bytes_per_pixel(self) -> int:
        return self.value[0]

    @property
    def num_components(self) -> int:
        return self.value[1]

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(np.uint16 if self is PixelType.GRAY16 else np.uint8)

    @property
    def legacy_name(self) -> str:
        """Value of the `PixelType` metadata key."""
        return self.name

    @property
    def ij_type(self) -> int:
        """ImageJ image type code stored as `IJType`."""
        return _IJ_TYPES[self]

    @property
    def bit_depth(self) -> int:
        return 8 if self is PixelType.RGB32 else self.bytes_per_pixel * 8

    @classmethod
    def from_layout(cls, bytes_per_pixel: int, num_components: int) -> PixelType:
        """Return the member for a layout, or raise `UnsupportedPixelTypeError`."""
        try:
            return cls((bytes_per_pixel, num_components))
        except ValueError:
            raise UnsupportedPixelTypeError(bytes_per_pixel, num_components) from None

    @classmethod
    def from_array(cls, shape: tuple[int, ...], dtype: DTypeLike) -> PixelType:
        """Infer the pixel type of an in-memory array.

        2D uint8 -> GRAY8, 2D uint16 -> GRAY16, (H, W, 4) uint8 -> RGB32.
        """
        dt = np.dtype(dtype)
        if len(shape) == 2 and dt == np.uint8:
            return cls.GRAY8
        if len(shape) == 2 and dt == np.uint16:
            return cls.GRAY16
        if len(shape) == 3 and shape[2] == 4 and dt == np.uint8:
            return cls.RGB32
        n_components = shape[2] if len(shape) == 3 else 1
        raise UnsupportedPixelTypeError(dt.itemsize * n_components, n_components)


_IJ_TYPES = {PixelType.GRAY8: 0, PixelType.GRAY16: 1, PixelType.RGB32: 4}
