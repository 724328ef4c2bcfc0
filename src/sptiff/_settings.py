"""Environment-driven settings.

Settings are read from the environment every time `get_settings()` is called,
so tests (and long-running applications) can change them with
`monkeypatch.setenv` / `os.environ`.

- `SPTIFF_JSON_INDENT`: indentation used for JSON written to `metadata.txt` and
  embedded in TIFF files (default 2).
- `SPTIFF_LOG_LEVEL`: log level used by the `sptiff` command line (default
  "WARNING").
"""

from __future__ import annotations

import os
from typing import Annotated

from annotated_types import Ge
from pydantic import Field, field_validator

from sptiff._base import _BaseModel

__all__ = ["Settings", "get_settings"]

_PREFIX = "SPTIFF_"


class Settings(_BaseModel):
    json_indent: Annotated[int, Ge(0)] = Field(
        default=2,
        description="Indentation of JSON records written by the storage engine.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Log level name used by the command line interface.",
    )

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()


def get_settings() -> Settings:
    """Return `Settings` populated from `SPTIFF_*` environment variables."""
    values: dict[str, str] = {}
    for name in Settings.model_fields:
        env_value = os.getenv(f"{_PREFIX}{name.upper()}")
        if env_value:
            values[name] = env_value
    return Settings(**values)
