"""Single-plane TIFF encoding and decoding, backed by tifffile.

Files are written as ImageJ-flavoured TIFFs.  The per-image JSON metadata is
stored as the ImageJ `Info` property, which is also where files written by
older acquisition software keep it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np
import tifffile

from sptiff._errors import UnsupportedPixelTypeError
from sptiff._pixel_type import PixelType

if TYPE_CHECKING:
    from os import PathLike

__all__ = ["DecodedPlane", "read_plane", "to_memory_layout", "write_plane"]


@dataclass(frozen=True, eq=False, slots=True)
class DecodedPlane:
    """Pixels and embedded `Info` text decoded from one TIFF file."""

    pixels: np.ndarray
    pixel_type: PixelType
    info: str | None


def write_plane(
    path: str | PathLike,
    pixels: np.ndarray,
    pixel_type: PixelType,
    info: str,
    *,
    pixel_size_um: float | None = None,
    z_step_um: float | None = None,
    frame_interval_s: float | None = None,
) -> None:
    """Write one image plane with `info` embedded as the ImageJ `Info` property.

    When `pixel_size_um` is positive the file is calibrated in micrometers, and
    the z step and frame interval are recorded as well (if given).
    """
    if pixel_type is PixelType.RGB32:
        # BGRA in memory, RGB on disk
        data = np.ascontiguousarray(pixels[..., 2::-1])
        photometric = "rgb"
    else:
        data = np.ascontiguousarray(pixels, dtype=pixel_type.dtype)
        photometric = "minisblack"

    metadata: dict[str, Any] = {"Info": info}
    kwargs: dict[str, Any] = {}
    if pixel_size_um is not None and pixel_size_um > 0:
        kwargs["resolution"] = (1.0 / pixel_size_um, 1.0 / pixel_size_um)
        metadata["unit"] = "um"
        if frame_interval_s is not None:
            metadata["finterval"] = frame_interval_s
        if z_step_um is not None:
            metadata["spacing"] = z_step_um

    tifffile.imwrite(
        path,
        data,
        imagej=True,
        photometric=photometric,
        metadata=metadata,
        **kwargs,
    )


def read_plane(path: str | PathLike) -> DecodedPlane:
    """Decode the first page of a TIFF file.

    Raises
    ------
    OSError
        If the file cannot be read.
    tifffile.TiffFileError
        If the file is not a valid TIFF or holds no pages.
    UnsupportedPixelTypeError
        If the pixel layout is not one of `PixelType`.
    """
    with tifffile.TiffFile(path) as tif:
        if not tif.pages:
            raise tifffile.TiffFileError(f"{path} contains no image pages")
        data = tif.pages[0].asarray()
        ij_metadata = tif.imagej_metadata or {}

    info = ij_metadata.get("Info")
    if info is not None and not isinstance(info, str):
        info = str(info)
    return DecodedPlane(pixels=data, pixel_type=_pixel_type(data), info=info)


def _pixel_type(data: np.ndarray) -> PixelType:
    if data.ndim == 2 and data.dtype == np.uint8:
        return PixelType.GRAY8
    if data.ndim == 2 and data.dtype == np.uint16:
        return PixelType.GRAY16
    if data.ndim == 3 and data.shape[2] in (3, 4) and data.dtype == np.uint8:
        return PixelType.RGB32
    n_components = data.shape[2] if data.ndim == 3 else 1
    raise UnsupportedPixelTypeError(data.dtype.itemsize * n_components, n_components)


def to_memory_layout(plane: DecodedPlane) -> np.ndarray:
    """Return decoded pixels in the in-memory layout expected by `Image`."""
    if plane.pixel_type is not PixelType.RGB32:
        return plane.pixels
    rgb = plane.pixels[..., :3]
    bgra = np.zeros((*rgb.shape[:2], 4), dtype=np.uint8)
    bgra[..., :3] = rgb[..., ::-1]
    return bgra
