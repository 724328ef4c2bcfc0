# /// script
# requires-python = ">=3.10"
# dependencies = [
#     "numpy",
#     "sptiff",
# ]
#
# [tool.uv.sources]
# sptiff = { path = "../", editable = true }
# ///
"""Write a small two-position time-lapse with sptiff, then read it back."""

import tempfile
from pathlib import Path

import numpy as np

from sptiff import Coords, Image, ImageMetadata, SinglePlaneTiffSeries, SummaryMetadata

root = Path(tempfile.mkdtemp()) / "timelapse"
summary = SummaryMetadata(
    prefix="timelapse", channel_names=["DAPI", "GFP"], wait_interval_ms=500
)

with SinglePlaneTiffSeries.create(root, summary) as store:
    for p in range(2):
        for t in range(3):
            for c in range(2):
                pixels = np.full((64, 64), 100 * t + c, dtype=np.uint16)
                metadata = ImageMetadata(
                    position_name=f"Pos{p}",
                    pixel_size_um=0.65,
                    received_time=f"2024-05-01 10:00:0{t}.000",
                )
                coords = Coords(position=p, time=t, channel=c)
                store.put_image(Image(pixels, coords, metadata))

store = SinglePlaneTiffSeries.open(root)
print(store)
print("max indices:", store.get_max_indices())
print("positions:", store.position_names)
for image in store.get_images_matching(Coords(position=1, channel=1)):
    print(image.coords, store.get_file_name(image.coords), image.pixels.mean())
