"""Summary and per-image metadata models.

Both models are serialized with the JSON keys used in `metadata.txt` and in the
`Info` property embedded in every TIFF, so that datasets written by older
acquisition software (which use the same keys) can be read back.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from sptiff._base import NullableStr, _BaseModel
from sptiff._coords import CHANNEL, STAGE_POSITION, TIME, Z

__all__ = ["DEFAULT_AXIS_ORDER", "ImageMetadata", "SummaryMetadata"]

DEFAULT_AXIS_ORDER = (STAGE_POSITION, TIME, Z, CHANNEL)


class SummaryMetadata(_BaseModel):
    """Dataset-wide metadata, written as the first `"Summary"` record."""

    prefix: NullableStr = Field(default=None, alias="Prefix")
    channel_names: list[str] | None = Field(default=None, alias="ChNames")
    z_step_um: float | None = Field(default=None, alias="z-step_um")
    wait_interval_ms: float | None = Field(
        default=None,
        alias="Interval_ms",
        description="Interval between time points, in milliseconds.",
    )
    start_date: NullableStr = Field(default=None, alias="StartTime")
    axis_order: list[str] | None = Field(default=None, alias="AxisOrder")
    intended_dimensions: dict[str, int] | None = Field(
        default=None, alias="IntendedDimensions"
    )
    user_data: dict[str, Any] | None = Field(default=None, alias="UserData")

    @field_validator("channel_names", mode="before")
    @classmethod
    def _coerce_channel_names(cls, v: Any) -> Any:
        # 1.x summaries occasionally carry a single channel name as a string
        if isinstance(v, str):
            return [v]
        if isinstance(v, list):
            return [str(x) for x in v]
        return v

    @property
    def ordered_axes(self) -> list[str]:
        """Axis order of the dataset, defaulting to position, time, z, channel."""
        if self.axis_order:
            return list(self.axis_order)
        return list(DEFAULT_AXIS_ORDER)


class ImageMetadata(_BaseModel):
    """Metadata of a single image plane."""

    position_name: NullableStr = Field(default=None, alias="PositionName")
    pixel_size_um: float | None = Field(default=None, alias="PixelSizeUm")
    received_time: NullableStr = Field(
        default=None,
        alias="ReceivedTime",
        description="Time the image was received, e.g. '2015-06-01 12:30:00.123'.",
    )
    file_name: NullableStr = Field(default=None, alias="FileName")
    uuid: NullableStr = Field(default=None, alias="UUID")
    exposure_ms: float | None = Field(default=None, alias="Exposure-ms")
    user_data: dict[str, Any] | None = Field(default=None, alias="UserData")
