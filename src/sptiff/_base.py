from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any, ClassVar

from pydantic import VERSION, BaseModel, BeforeValidator, ConfigDict

__all__ = ["NullableStr", "_BaseModel"]

# validate_by_name added in pydantic 2.9, populate_by_name deprecated in 2.11
_PYDANTIC_V2_9 = tuple(int(x) for x in VERSION.split(".")[:2]) >= (2, 9)
_by_name_key = "validate_by_name" if _PYDANTIC_V2_9 else "populate_by_name"


def _none_if_null(v: Any) -> Any:
    # older writers stored missing strings as "" or the literal "null"
    if isinstance(v, str) and v in ("", "null"):
        return None
    return v


NullableStr = Annotated[str | None, BeforeValidator(_none_if_null)]
"""Optional string field that reads `""` and `"null"` as missing."""


class _BaseModel(BaseModel):
    """Base for the metadata models stored in `metadata.txt` and TIFF `Info`.

    Fields are addressed by their python names in code and serialized under the
    (legacy) JSON keys given as aliases.  Unknown keys are ignored so that files
    written by other acquisition software still load.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="ignore",
        validate_assignment=True,
        validate_default=True,
        serialize_by_alias=True,
        **{_by_name_key: True},  # type: ignore[typeddict-item]
    )

    if not TYPE_CHECKING:
        # "by_alias" is required for round-tripping on pydantic <2.10.0
        def model_dump_json(self, **kwargs: Any) -> str:
            kwargs.setdefault("by_alias", True)
            return super().model_dump_json(**kwargs)

        def model_dump(self, **kwargs: Any) -> dict[str, Any]:
            kwargs.setdefault("by_alias", True)
            return super().model_dump(**kwargs)
