from pathlib import Path

import pytest

from sptiff import Coords, PositionNameConflictError
from sptiff._index import DatasetIndex


def test_add_keeps_first_mapping_and_updates_max() -> None:
    index = DatasetIndex()
    assert index.add(Coords(time=2), "a.tif")
    assert not index.add(Coords(time=2), "b.tif")
    assert index.file_name(Coords(time=2)) == "a.tif"
    index.add(Coords(time=1, z=4), "c.tif")
    assert index.max_indices == Coords(time=2, z=4)
    assert index.max_index("channel") == -1
    assert len(index) == 2


def test_set_file_name_replaces() -> None:
    index = DatasetIndex()
    index.set_file_name(Coords(time=0), "a.tif")
    index.set_file_name(Coords(time=0), "b.tif")
    assert index.file_name(Coords(time=0)) == "b.tif"


def test_matching() -> None:
    index = DatasetIndex()
    for t in range(2):
        for c in range(3):
            index.add(Coords(time=t, channel=c), f"{t}{c}.tif")
    assert len(index.matching(Coords(channel=1))) == 2
    assert len(index.matching(Coords(time=1))) == 3
    assert len(index.matching(Coords())) == 6
    assert index.matching(Coords(z=0)) == []


def test_position_binding() -> None:
    index = DatasetIndex()
    index.bind_position_name(2, "A")
    index.bind_position_name(2, "A")
    with pytest.raises(PositionNameConflictError) as exc_info:
        index.bind_position_name(2, "B")
    assert exc_info.value.existing == "A"
    assert exc_info.value.requested == "B"
    assert index.position_name(2) == "A"


def test_channel_names_assigned_once(tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (first / "img_000000000_GFP_000.tif").touch()
    (second / "img_000000000_Cy5_000.tif").touch()

    index = DatasetIndex()
    assert index.assign_channel_names(tmp_path) == ()  # nothing found, not final
    assert index.assign_channel_names(first) == ("GFP",)
    assert index.assign_channel_names(second) == ("GFP",)
