from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from sptiff._parse import (
    MetadataFormat,
    ParseOutcome,
    ParseStrategy,
    detect_format,
    parse_metadata_text,
    read_metadata_file,
)

if TYPE_CHECKING:
    from pathlib import Path

STREAM = (
    '{\n"Summary": {"Prefix": "a"},\n'
    '"Coords-img_time000000000.tif": {"FrameIndex": 0},\n'
    '"Coords-img_time000000001.tif": {"FrameIndex": 1}'
)


def test_strict() -> None:
    result = parse_metadata_text(STREAM + "\n}\n")
    assert result.strategy is ParseStrategy.STRICT
    assert len(result.attempts) == 1
    assert result.data is not None
    assert len(result.data) == 3


def test_missing_closing_brace() -> None:
    result = parse_metadata_text(STREAM)
    assert result.strategy is ParseStrategy.CLOSING_BRACE
    assert [a.outcome for a in result.attempts] == [
        ParseOutcome.DECODE_ERROR,
        ParseOutcome.OK,
    ]


@pytest.mark.parametrize("cut", [10, 25, 40])
def test_truncated_mid_record(cut: int) -> None:
    start = STREAM.index('"Coords-img_time000000001.tif"')
    result = parse_metadata_text(STREAM[: start + cut])
    assert result.strategy is ParseStrategy.SALVAGE
    assert result.data == {
        "Summary": {"Prefix": "a"},
        "Coords-img_time000000000.tif": {"FrameIndex": 0},
    }


def test_trailing_separator() -> None:
    result = parse_metadata_text(STREAM + ",\n")
    assert result.data is not None
    assert len(result.data) == 3


def test_last_duplicate_wins() -> None:
    text = '{"Summary": {"Prefix": "a"}, "Summary": {"Prefix": "b"}}'
    result = parse_metadata_text(text)
    assert result.data == {"Summary": {"Prefix": "b"}}


def test_byte_order_mark() -> None:
    assert parse_metadata_text("\ufeff" + STREAM + "}").data is not None


@pytest.mark.parametrize("text", ["", "garbage", "[1, 2]", '{"Summary": {'])
def test_unparsable(text: str) -> None:
    result = parse_metadata_text(text)
    assert result.data is None
    assert result.strategy is None
    assert all(not a.ok for a in result.attempts)
    assert "SALVAGE" in result.describe_failure()


def test_read_error(tmp_path: Path) -> None:
    result = read_metadata_file(tmp_path / "missing.txt")
    assert result.data is None
    assert result.attempts[0].strategy is ParseStrategy.READ
    assert result.attempts[0].outcome is ParseOutcome.READ_ERROR
    assert result.source == str(tmp_path / "missing.txt")


def test_read_file(tmp_path: Path) -> None:
    path = tmp_path / "metadata.txt"
    path.write_text(STREAM, encoding="utf-8")
    result = read_metadata_file(path)
    assert result.data is not None
    assert result.source == str(path)


def test_detect_format() -> None:
    assert detect_format({"Summary": {}, "Coords-x.tif": {}}) is MetadataFormat.CURRENT
    assert detect_format({"Summary": {}, "FrameKey-0-0-0": {}}) is (
        MetadataFormat.LEGACY
    )
    assert detect_format({"Summary": {}}) is MetadataFormat.UNKNOWN
