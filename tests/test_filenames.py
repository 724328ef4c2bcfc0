from itertools import product
from pathlib import Path

import pytest

from sptiff import Coords
from sptiff._filenames import current_file_name, legacy_file_name, scan_channel_names


@pytest.mark.parametrize(
    ("coords", "expected"),
    [
        (Coords(time=3), "img_time000000003.tif"),
        (
            Coords(time=12, channel=1, z=4, position=2),
            "img_channel001_position002_time000000012_z004.tif",
        ),
        (Coords(z=7, channel=0), "img_channel000_z007.tif"),
        (Coords(), "img.tif"),
    ],
)
def test_current_file_name(coords: Coords, expected: str) -> None:
    assert current_file_name(coords) == expected


def test_current_file_name_is_injective() -> None:
    keys = [
        Coords(time=t, channel=c, z=z, position=p)
        for t, c, z, p in product(range(3), range(3), range(3), range(2))
    ]
    names = {current_file_name(k) for k in keys}
    assert len(names) == len(keys)


def test_legacy_file_name() -> None:
    channels = ["Cy5", "DAPI"]
    coords = Coords(time=2, channel=1, z=3)
    assert legacy_file_name(coords, channels) == "img_000000002_DAPI_003.tif"


def test_legacy_file_name_bad_channel(caplog: pytest.LogCaptureFixture) -> None:
    name = legacy_file_name(Coords(time=0, channel=5, z=0), ["DAPI"])
    assert name == "img_000000000__000.tif"
    assert "Invalid channel index 5" in caplog.text


def test_scan_channel_names(tmp_path: Path) -> None:
    for t, ch in product(range(2), ["GFP", "DAPI", "Cy5"]):
        (tmp_path / f"img_{t:09d}_{ch}_000.tif").touch()
    (tmp_path / "metadata.txt").touch()
    (tmp_path / "img_channel000_time000000000.tif").touch()
    assert scan_channel_names(tmp_path) == ["Cy5", "DAPI", "GFP"]


def test_scan_channel_names_missing_dir(tmp_path: Path) -> None:
    assert scan_channel_names(tmp_path / "nope") == []
