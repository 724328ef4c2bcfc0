"""Per-position `metadata.txt` streams.

Each stage position owns one append-only text stream shaped like a JSON object:

    {
    "Summary": {...},
    "Coords-img_time000000000.tif": {...},
    "Metadata-img_time000000000.tif": {...}
    }

Records are appended as they are written and flushed immediately.  The closing
brace is only written when the dataset is finalized, so a crash leaves a file
that is missing its terminator (see `sptiff._parse`).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from typing import TextIO

__all__ = ["METADATA_FILE_NAME", "MetadataStream", "MetadataStreams"]

logger = logging.getLogger(__name__)

METADATA_FILE_NAME = "metadata.txt"


class MetadataStream:
    """Append log of JSON records for one stage position.

    Parameters
    ----------
    directory : Path
        Directory holding the stream's `metadata.txt` (the dataset root for
        single-position datasets, or a position subdirectory).
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._file: TextIO | None = None
        self._first_record = True

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"<{self.__class__.__name__} {self.path} ({state})>"

    @property
    def path(self) -> Path:
        return self._directory / METADATA_FILE_NAME

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def open(self, summary_json: str) -> None:
        """Create the directory and file, then write the `Summary` record.

        Raises
        ------
        OSError
            If the directory or file cannot be created.
        """
        if self._file is not None:
            return
        self._directory.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "w", encoding="utf-8")
        self._first_record = True
        self._file.write("{\n")
        self.write_record("Summary", summary_json)

    def write_record(self, title: str, json_text: str) -> None:
        """Append `"<title>": <json_text>` to the stream and flush it.

        Raises
        ------
        OSError
            If the stream is closed or the write fails.
        """
        if self._file is None:
            raise OSError(f"Metadata stream {self.path} is not open")
        if not self._first_record:
            self._file.write(",\n")
        self._file.write(f"{json.dumps(title, ensure_ascii=False)}: ")
        self._file.write(json_text)
        self._file.flush()
        self._first_record = False

    def close(self) -> None:
        """Write the closing brace and release the file.  No-op if closed."""
        if self._file is None:
            return
        file, self._file = self._file, None
        try:
            file.write("\n}\n")
        finally:
            file.close()


class MetadataStreams:
    """The metadata streams of a dataset, keyed by stage position index."""

    def __init__(self) -> None:
        self._streams: dict[int, MetadataStream] = {}

    def __contains__(self, position: object) -> bool:
        return position in self._streams

    def __iter__(self) -> Iterator[int]:
        return iter(self._streams)

    def __len__(self) -> int:
        return len(self._streams)

    def get(self, position: int) -> MetadataStream | None:
        return self._streams.get(position)

    def open(
        self, position: int, directory: Path, summary_json: str
    ) -> MetadataStream:
        """Open the stream for `position` in `directory`.

        The stream is registered even if opening fails, so that a failed
        position is not retried on every image; writes to it are then logged
        as failures.
        """
        stream = self._streams.setdefault(position, MetadataStream(directory))
        stream.open(summary_json)
        return stream

    def write_record(self, position: int, title: str, json_text: str) -> None:
        """Append a record to the stream of `position`, logging any failure."""
        stream = self._streams.get(position)
        if stream is None:
            logger.error("Failed to make a stream for location %d", position)
            return
        try:
            stream.write_record(title, json_text)
        except OSError as e:
            logger.error("Unable to write %r to %s: %s", title, stream.path, e)

    def close_all(self) -> None:
        """Close every open stream.

        A failure to close one stream is logged and does not prevent the others
        from being closed.
        """
        for position, stream in self._streams.items():
            try:
                stream.close()
            except OSError as e:
                logger.error(
                    "Unable to close metadata stream for position %d at %s: %s",
                    position,
                    stream.path,
                    e,
                )
