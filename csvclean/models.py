from __future__ import annotations

import codecs
import os
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError
from .rules import (
    AUTO_ENCODING,
    CLEAN_SUFFIX,
    DEFAULT_DELIMITER,
    DEFAULT_ENCAPSULATION,
    DEFAULT_ENCODING,
    DEFAULT_PERMISSIONS,
    FORBIDDEN_MARKERS,
    TAB_ALIAS,
)


def resolve_delimiter(raw: str) -> str:
    """
    Resolve a delimiter flag value to a single character.

    The two-character literal ``\\t`` is accepted as an alias for a tab.
    """
    if len(raw) == 1:
        return raw
    if raw == TAB_ALIAS:
        return "\t"
    raise ValueError(f"delimiter must be a single character, saw {raw!r}")


def derive_output_path(input_path: str) -> str:
    """
    Insert ``_clean`` before the first ``.`` of the input basename.

    >>> derive_output_path("/tmp/foo/data.csv")
    '/tmp/foo/data_clean.csv'
    >>> derive_output_path("archive.tar.gz")
    'archive_clean.tar.gz'
    """
    directory, basename = os.path.split(input_path)
    stem, dot, rest = basename.partition(".")
    return os.path.join(directory, f"{stem}{CLEAN_SUFFIX}{dot}{rest}")


class Configuration(BaseModel):
    model_config = ConfigDict(frozen=True)

    input_path: str
    output_path: Optional[str] = None
    delimiter: str = Field(default=DEFAULT_DELIMITER)
    comment: Optional[str] = None
    encapsulation: str = Field(default=DEFAULT_ENCAPSULATION)
    header: bool = False
    in_place: bool = False
    permissions: int = Field(default=DEFAULT_PERMISSIONS, ge=0, le=0o7777)
    truncate: bool = False
    verbose: bool = False
    encoding: str = Field(default=DEFAULT_ENCODING)

    @model_validator(mode="before")
    @classmethod
    def _resolve_output_path(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("input_path") and not data.get("in_place") and not data.get("output_path"):
            data = dict(data)
            data["output_path"] = derive_output_path(data["input_path"])
        return data

    @field_validator("delimiter", mode="before")
    @classmethod
    def _check_delimiter(cls, v: str) -> str:
        return resolve_delimiter(v)

    @field_validator("comment", mode="before")
    @classmethod
    def _check_comment(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        if len(v) != 1:
            raise ValueError(f"comment marker must be a single character, saw {v!r}")
        return v

    @field_validator("encoding")
    @classmethod
    def _check_encoding(cls, v: str) -> str:
        if v == AUTO_ENCODING:
            return v
        try:
            return codecs.lookup(v).name
        except LookupError:
            raise ValueError(f"unknown encoding {v!r}") from None

    @model_validator(mode="after")
    def _check_markers(self) -> "Configuration":
        if self.delimiter in FORBIDDEN_MARKERS:
            raise ValueError(f"invalid field delimiter {self.delimiter!r}")
        if self.comment is not None:
            if self.comment in FORBIDDEN_MARKERS or self.comment == self.delimiter:
                raise ValueError(f"invalid comment marker {self.comment!r}")
        if self.in_place and self.output_path:
            raise ValueError("outfile may not be specified together with in-place mode")
        return self

    @classmethod
    def build(cls, **options: Any) -> "Configuration":
        """Validate options, reporting failures as a ConfigurationError."""
        try:
            return cls(**options)
        except ValidationError as e:
            messages = []
            for item in e.errors():
                msg = item["msg"]
                if msg.startswith("Value error, "):
                    msg = msg[len("Value error, "):]
                field = ".".join(str(p) for p in item.get("loc", ()))
                messages.append(f"{field}: {msg}" if field else msg)
            raise ConfigurationError("; ".join(messages)) from None
