"""Tests for the command-line interface."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

import pytest
from conftest import make_image

from sptiff import Coords, _cli
from sptiff._cli import main

if TYPE_CHECKING:
    from pathlib import Path


def test_cli_no_args() -> None:
    """Test CLI with no arguments shows help."""
    result = main([])
    assert result == 0


def test_cli_info(write_series: Callable, capsys: pytest.CaptureFixture) -> None:
    images = [
        make_image(Coords(time=t, position=p), PositionName=f"Pos{p}")
        for p in range(2)
        for t in range(3)
    ]
    path = write_series(images)
    result = main(["info", str(path)])
    assert result == 0
    out = capsys.readouterr().out
    assert "Images: 6" in out
    assert "Multi-position: True" in out
    assert "time: 3" in out
    assert "Positions: 0=Pos0, 1=Pos1" in out
    assert "GRAY16" in out


def test_cli_info_legacy(
    legacy_dataset: Callable, capsys: pytest.CaptureFixture
) -> None:
    path, _ = legacy_dataset(["DAPI", "GFP"], n_times=1)
    assert main(["-v", "info", str(path)]) == 0
    assert "Channels: DAPI, GFP" in capsys.readouterr().out


def test_cli_info_nonexistent(tmp_path: Path) -> None:
    """Test CLI info command with a directory that holds no dataset."""
    result = main(["info", str(tmp_path / "nonexistent")])
    assert result == 1


def test_cli_info_unexpected_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
) -> None:
    def _boom(path: str) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(_cli, "print_dataset_info", _boom)
    assert main(["info", str(tmp_path)]) == 2
    assert "boom" in capsys.readouterr().err
