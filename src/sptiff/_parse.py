"""Tolerant reader for `metadata.txt` streams.

A stream is parsed by an ordered chain of attempts, stopping at the first that
yields a JSON object:

1. `STRICT`: the text as-is.
2. `CLOSING_BRACE`: the text with a `}` appended.  Writers that crashed (or
   older versions that simply forgot) leave the stream without its terminator.
3. `SALVAGE`: records are read one by one from the start of the object, and
   reading stops at the first record that is incomplete or malformed.  This
   recovers every well-formed record preceding a truncation point, even when
   the writer stopped in the middle of a record.

Every attempt produces a `ParseAttempt` describing its outcome, so callers can
report why a stream could not be read.  When a title occurs more than once, the
last occurrence wins.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from os import PathLike

__all__ = [
    "MetadataFormat",
    "ParseAttempt",
    "ParseOutcome",
    "ParseResult",
    "ParseStrategy",
    "detect_format",
    "parse_metadata_text",
    "read_metadata_file",
]

logger = logging.getLogger(__name__)


class ParseStrategy(Enum):
    READ = auto()
    STRICT = auto()
    CLOSING_BRACE = auto()
    SALVAGE = auto()

    def __str__(self) -> str:
        return self.name


class ParseOutcome(Enum):
    OK = auto()
    READ_ERROR = auto()
    DECODE_ERROR = auto()
    NOT_AN_OBJECT = auto()

    def __str__(self) -> str:
        return self.name


class MetadataFormat(Enum):
    """On-disk metadata encoding of a stream."""

    CURRENT = auto()  # "Coords-<file>" records
    LEGACY = auto()  # 1.x "FrameKey-<t>-<c>-<z>" records
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class ParseAttempt:
    strategy: ParseStrategy
    outcome: ParseOutcome
    data: dict[str, Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is ParseOutcome.OK


@dataclass(slots=True)
class ParseResult:
    """All attempts made to parse one stream, in order."""

    attempts: list[ParseAttempt] = field(default_factory=list)
    source: str | None = None

    @property
    def data(self) -> dict[str, Any] | None:
        """The object from the first successful attempt, or None."""
        for attempt in self.attempts:
            if attempt.ok:
                return attempt.data
        return None

    @property
    def strategy(self) -> ParseStrategy | None:
        """The strategy that succeeded, or None."""
        for attempt in self.attempts:
            if attempt.ok:
                return attempt.strategy
        return None

    def describe_failure(self) -> str:
        return "; ".join(
            f"{a.strategy}: {a.outcome} ({a.error})" for a in self.attempts if not a.ok
        )


def read_metadata_file(path: str | PathLike) -> ParseResult:
    """Read and parse the metadata stream at `path`."""
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            text = f.read()
    except OSError as e:
        attempt = ParseAttempt(
            ParseStrategy.READ, ParseOutcome.READ_ERROR, error=str(e)
        )
        return ParseResult([attempt], source=str(path))
    result = parse_metadata_text(text)
    result.source = str(path)
    return result


def parse_metadata_text(text: str) -> ParseResult:
    """Parse the text of a metadata stream, trying each strategy in turn."""
    text = text.lstrip("\ufeff")
    strategies: list[tuple[ParseStrategy, Callable[[str], ParseAttempt]]] = [
        (ParseStrategy.STRICT, _parse_strict),
        (ParseStrategy.CLOSING_BRACE, _parse_with_closing_brace),
        (ParseStrategy.SALVAGE, _parse_salvage),
    ]
    result = ParseResult()
    for _strategy, attempt_parse in strategies:
        attempt = attempt_parse(text)
        result.attempts.append(attempt)
        if attempt.ok:
            if attempt.strategy is not ParseStrategy.STRICT:
                logger.info("Recovered metadata stream using %s", attempt.strategy)
            break
    return result


def detect_format(data: Mapping[str, Any]) -> MetadataFormat:
    """Guess the encoding of a parsed stream from its record titles."""
    for key in data:
        if key.startswith("Coords-"):
            return MetadataFormat.CURRENT
        if key.startswith("FrameKey-"):
            return MetadataFormat.LEGACY
    return MetadataFormat.UNKNOWN


# ------------------------ strategies --------------------------


def _decode_object(text: str, strategy: ParseStrategy) -> ParseAttempt:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        return ParseAttempt(strategy, ParseOutcome.DECODE_ERROR, error=str(e))
    if not isinstance(obj, dict):
        return ParseAttempt(
            strategy,
            ParseOutcome.NOT_AN_OBJECT,
            error=f"top-level value is {type(obj).__name__}",
        )
    return ParseAttempt(strategy, ParseOutcome.OK, data=obj)


def _parse_strict(text: str) -> ParseAttempt:
    return _decode_object(text, ParseStrategy.STRICT)


def _parse_with_closing_brace(text: str) -> ParseAttempt:
    return _decode_object(text + "}", ParseStrategy.CLOSING_BRACE)


_DECODER = json.JSONDecoder()
_WS = " \t\r\n"


def _parse_salvage(text: str) -> ParseAttempt:
    strategy = ParseStrategy.SALVAGE
    pos = _skip_ws(text, 0)
    if not text.startswith("{", pos):
        return ParseAttempt(
            strategy, ParseOutcome.NOT_AN_OBJECT, error="stream does not start with '{'"
        )
    pos += 1
    records: dict[str, Any] = {}
    error = "no complete records"
    while True:
        pos = _skip_ws(text, pos)
        if pos >= len(text) or text[pos] == "}":
            break
        try:
            key, pos = _DECODER.raw_decode(text, pos)
            pos = _skip_ws(text, pos)
            if not isinstance(key, str) or not text.startswith(":", pos):
                error = f"expected a record title followed by ':' at char {pos}"
                break
            value, pos = _DECODER.raw_decode(text, _skip_ws(text, pos + 1))
        except json.JSONDecodeError as e:
            error = f"truncated record: {e}"
            break
        records[key] = value
        pos = _skip_ws(text, pos)
        if text.startswith(",", pos):
            pos += 1

    if not records:
        return ParseAttempt(strategy, ParseOutcome.DECODE_ERROR, error=error)
    return ParseAttempt(strategy, ParseOutcome.OK, data=records)


def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _WS:
        pos += 1
    return pos
