from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Callable

import numpy as np
import pytest
import tifffile

from sptiff import Coords, Image, ImageMetadata, SinglePlaneTiffSeries

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


def make_image(
    coords: Coords,
    dtype: Any = np.uint16,
    shape: tuple[int, ...] = (16, 24),
    seed: int = 0,
    **metadata: Any,
) -> Image:
    rng = np.random.default_rng(seed)
    info = np.iinfo(dtype)
    pixels = rng.integers(0, info.max, size=shape, dtype=dtype, endpoint=True)
    return Image(pixels, coords, ImageMetadata(**metadata) if metadata else None)


@pytest.fixture
def write_series(tmp_path: Path) -> Callable[..., Path]:
    """Write a closed dataset holding the given images and return its root."""

    def _write(images: Sequence[Image], name: str = "series", **kwargs: Any) -> Path:
        root = tmp_path / name
        with SinglePlaneTiffSeries.create(root, **kwargs) as store:
            for image in images:
                store.put_image(image)
        return root

    return _write


@pytest.fixture
def legacy_dataset(tmp_path: Path) -> Callable[..., tuple[Path, dict]]:
    """Write a dataset in the 1.x layout.

    Files are named `img_<t>_<channel name>_<z>.tif` and `metadata.txt` holds
    `FrameKey-<t>-<c>-<z>` records.  Channel indices follow the sorted channel
    names, as 1.x readers assigned them.
    """

    def _write(
        channels: Sequence[str], n_times: int, name: str = "legacy"
    ) -> tuple[Path, dict[Coords, np.ndarray]]:
        root = tmp_path / name
        root.mkdir()
        ordered = sorted(channels)
        summary = {
            "Prefix": name,
            "ChNames": list(channels),
            "Frames": n_times,
            "Slices": 1,
            "Channels": len(channels),
            "PixelType": "GRAY16",
        }
        records: dict[str, Any] = {"Summary": summary}
        planes: dict[Coords, np.ndarray] = {}
        rng = np.random.default_rng(42)
        for t in range(n_times):
            for channel in channels:
                c = ordered.index(channel)
                pixels = rng.integers(0, 4096, size=(8, 12), dtype=np.uint16)
                info = {
                    "Frame": t,
                    "ChannelIndex": c,
                    "Slice": 0,
                    "Channel": channel,
                    "PositionName": "null",
                    "Summary": summary,
                }
                tifffile.imwrite(
                    root / f"img_{t:09d}_{channel}_000.tif",
                    pixels,
                    imagej=True,
                    metadata={"Info": json.dumps(info)},
                )
                records[f"FrameKey-{t}-{c}-0"] = info
                planes[Coords(time=t, channel=c, z=0)] = pixels

        body = ",\n".join(
            f'"{title}": {json.dumps(value, indent=2)}'
            for title, value in records.items()
        )
        (root / "metadata.txt").write_text("{\n" + body + "\n}\n")
        return root, planes

    return _write
