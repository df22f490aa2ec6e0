"""
Core data model for formats and in-memory files.

A Format describes a file representation as a handler understands it, including
whether the handler can read it (`from`) and write it (`to`). Two formats with
the same display id and internal id describe the same representation, even when
declared by different handlers; `merge_formats` folds such duplicates into one
catalog entry.

Classes:
    Format: Pydantic model for a format descriptor, serialized as in snapshots
    FileData: A named in-memory byte buffer passed between handlers

Functions:
    merge_formats: Deduplicate formats by identity, unioning capability flags
    normalize_mime: Lowercase a mime type and strip its parameters
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "FileData",
    "Format",
    "FormatKey",
    "merge_formats",
    "normalize_mime",
]


FormatKey = tuple[str, str]
"""Identity of a format: (display id, internal id)."""


class Format(BaseModel):
    """
    Descriptor of a file format as supported by a handler.

    The `from` and `to` flags are serialized under their plain names so snapshot
    files stay readable; in Python the read flag is `from_`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(description="Long human readable name, e.g. 'Comma Separated'")
    format: str = Field(description="Short display id, e.g. 'csv'")
    internal: str = Field(description="Handler internal id for the format")
    extension: str = Field(description="File extension without the leading dot")
    mime: str = Field(default="", description="Normalized mime type")
    category: Optional[Union[str, tuple[str, ...]]] = Field(
        default=None, description="Category or categories, e.g. 'image'"
    )
    from_: bool = Field(default=False, alias="from", description="Readable as input")
    to: bool = Field(default=False, description="Writable as output")
    lossless: bool = Field(default=False, description="Conversion keeps all data")

    @field_validator("mime", mode="before")
    @classmethod
    def validate_mime(cls, value: Any) -> str:
        """Store the mime type normalized, see `normalize_mime`."""
        return normalize_mime(value)

    @property
    def key(self) -> FormatKey:
        return (self.format, self.internal)

    @property
    def primary_category(self) -> str:
        if not self.category:
            return "other"
        if isinstance(self.category, str):
            return self.category

        return self.category[0] or "other"

    def same_identity(self, other: Format) -> bool:
        return self.key == other.key

    def __str__(self) -> str:
        return f"{self.format} ({self.name})"


@dataclass
class FileData:
    """A named in-memory file."""

    name: str
    bytes: bytes

    @property
    def is_empty(self) -> bool:
        return len(self.bytes) == 0

    @property
    def extension(self) -> str:
        suffix = PurePath(self.name).suffix
        return suffix[1:].lower() if suffix else ""

    def derive(self, extension: str, data: bytes | None = None) -> FileData:
        """
        Create the output file of a conversion step from this file.

        :param extension: Extension of the produced format
        :param data: Produced bytes, defaults to this file's bytes
        :return: New FileData sharing this file's stem
        """
        return FileData(
            name=f"{PurePath(self.name).stem}.{extension}",
            bytes=self.bytes if data is None else data,
        )


def merge_formats(formats) -> list[Format]:
    """
    Merge formats sharing an identity key into a single entry.

    The first occurrence of a key provides the descriptive fields; `from`, `to`
    and `lossless` are OR-ed across all occurrences, so the result flags do not
    depend on input order. Inputs are left untouched.

    :param formats: Iterable of Format objects, possibly with duplicates
    :return: One Format per identity key in first-seen order
    """
    merged: dict[FormatKey, Format] = {}

    for fmt in formats:
        existing = merged.get(fmt.key)
        if existing is None:
            merged[fmt.key] = fmt
            continue

        merged[fmt.key] = existing.model_copy(
            update={
                "from_": existing.from_ or fmt.from_,
                "to": existing.to or fmt.to,
                "lossless": existing.lossless or fmt.lossless,
            }
        )

    return list(merged.values())


def normalize_mime(mime: str | None) -> str:
    """
    Lowercase a mime type and drop any parameters such as a charset.

    :param mime: Raw mime type, may be None or empty
    :return: Normalized mime type, or an empty string if unknown
    """
    if not mime:
        return ""

    normalized = mime.split(";", 1)[0].strip().lower()

    return "" if normalized == "application/octet-stream" else normalized
