"""Tests for reading datasets written by 1.x acquisition software."""

from __future__ import annotations

import json
from typing import Callable

import numpy as np
import pytest

from sptiff import Coords, SinglePlaneTiffSeries


def test_legacy_dataset(legacy_dataset: Callable) -> None:
    root, planes = legacy_dataset(["DAPI", "Cy5", "GFP"], n_times=2)

    store = SinglePlaneTiffSeries.open(root)
    assert store.get_num_images() == 6
    assert set(store.get_unordered_image_coords()) == set(planes)
    assert store.channel_names == ("Cy5", "DAPI", "GFP")
    assert store.summary_metadata.channel_names == ["DAPI", "Cy5", "GFP"]
    assert store.get_max_indices() == Coords(time=1, channel=2, z=0)

    dapi = Coords(time=1, channel=1, z=0)
    assert store.get_file_name(dapi) == "img_000000001_DAPI_000.tif"
    image = store.get_image(dapi)
    assert image is not None
    np.testing.assert_array_equal(image.pixels, planes[dapi])
    assert image.metadata is not None
    assert image.metadata.position_name is None


def test_legacy_files_with_current_records(legacy_dataset: Callable) -> None:
    root, planes = legacy_dataset(["GFP", "DAPI"], n_times=1)
    # rewrite the stream with "Coords-" records pointing at 1.x file names
    records = {"Summary": {"Prefix": "legacy"}}
    for coords in planes:
        records[f"Coords-{coords.time}-{coords.channel}"] = coords.to_json_dict()
    (root / "metadata.txt").write_text(json.dumps(records))

    store = SinglePlaneTiffSeries.open(root)
    assert store.get_num_images() == 2
    gfp = Coords(time=0, channel=1, z=0)
    assert store.get_file_name(gfp) == "img_000000000_GFP_000.tif"
    image = store.get_image(gfp)
    assert image is not None
    np.testing.assert_array_equal(image.pixels, planes[gfp])


def test_bad_frame_key_is_skipped(
    legacy_dataset: Callable, caplog: pytest.LogCaptureFixture
) -> None:
    root, _ = legacy_dataset(["GFP"], n_times=2)
    md = root / "metadata.txt"
    data = json.loads(md.read_text())
    data["FrameKey-x-0-0"] = data.pop("FrameKey-1-0-0")
    md.write_text(json.dumps(data))

    store = SinglePlaneTiffSeries.open(root)
    assert store.get_num_images() == 1
    assert "Ignoring record 'FrameKey-x-0-0'" in caplog.text
