"""Single-plane TIFF series storage for multi-dimensional microscopy data."""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sptiff")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "uninstalled"

from ._coords import ALLOWED_AXES, CHANNEL, STAGE_POSITION, TIME, Z, Coords
from ._errors import (
    DatasetExistsError,
    DatasetNotFoundError,
    MissingPositionNameError,
    PositionNameConflictError,
    SPTiffError,
    UnsupportedPixelTypeError,
)
from ._image import Image
from ._metadata import ImageMetadata, SummaryMetadata
from ._pixel_type import PixelType
from ._storage import LoadState, SinglePlaneTiffSeries

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ALLOWED_AXES",
    "CHANNEL",
    "STAGE_POSITION",
    "TIME",
    "Z",
    "Coords",
    "DatasetExistsError",
    "DatasetNotFoundError",
    "Image",
    "ImageMetadata",
    "LoadState",
    "MissingPositionNameError",
    "PixelType",
    "PositionNameConflictError",
    "SPTiffError",
    "SinglePlaneTiffSeries",
    "SummaryMetadata",
    "UnsupportedPixelTypeError",
]
