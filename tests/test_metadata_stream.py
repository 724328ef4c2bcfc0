from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from sptiff._metadata_stream import MetadataStream, MetadataStreams

if TYPE_CHECKING:
    from pathlib import Path


def test_stream_framing(tmp_path: Path) -> None:
    stream = MetadataStream(tmp_path / "Pos0")
    stream.open('{"Prefix": "a"}')
    assert stream.is_open
    stream.write_record("Coords-a.tif", '{"FrameIndex": 0}')
    assert stream.path.read_text() == (
        '{\n"Summary": {"Prefix": "a"},\n"Coords-a.tif": {"FrameIndex": 0}'
    )
    stream.close()
    stream.close()
    assert not stream.is_open
    text = stream.path.read_text()
    assert text.endswith("\n}\n")
    assert json.loads(text)["Coords-a.tif"] == {"FrameIndex": 0}


def test_write_to_closed_stream(tmp_path: Path) -> None:
    stream = MetadataStream(tmp_path)
    with pytest.raises(OSError, match="not open"):
        stream.write_record("Summary", "{}")


def test_streams_log_failures(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    streams = MetadataStreams()
    streams.write_record(3, "Coords-a.tif", "{}")
    assert "Failed to make a stream for location 3" in caplog.text

    streams.open(0, tmp_path / "a", "{}")
    streams.get(0).close()  # type: ignore[union-attr]
    streams.write_record(0, "Coords-a.tif", "{}")
    assert "Unable to write 'Coords-a.tif'" in caplog.text


def test_close_all_continues_after_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    streams = MetadataStreams()
    first = streams.open(0, tmp_path / "Pos0", "{}")
    second = streams.open(1, tmp_path / "Pos1", "{}")
    assert len(streams) == 2
    assert list(streams) == [0, 1]

    def _fail() -> None:
        raise OSError("disk full")

    monkeypatch.setattr(first, "close", _fail)
    streams.close_all()
    assert "disk full" in caplog.text
    assert not second.is_open
    assert json.loads(second.path.read_text()) == {"Summary": {}}


def test_titles_are_escaped(tmp_path: Path) -> None:
    stream = MetadataStream(tmp_path)
    stream.open("{}")
    title = 'Coords-Well "A1"\\img_time000000000.tif'
    stream.write_record(title, '{"FrameIndex": 0}')
    stream.close()
    assert json.loads(stream.path.read_text())[title] == {"FrameIndex": 0}
