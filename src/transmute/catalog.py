"""
Format catalog, input format detection, and handler lookup.

The catalog is the deduplicated set of every format known to the engine, merged
across handlers. It is used to detect the format of incoming files, to resolve
user supplied format names, and to list the formats available as conversion
sources or targets.
"""

from __future__ import annotations

import mimetypes
import os
from collections.abc import Iterable, Sequence
from pathlib import PurePath
from typing import TYPE_CHECKING, Literal, Optional, Union

from transmute.formats import FileData, Format, merge_formats, normalize_mime

if TYPE_CHECKING:
    from transmute.handlers import FormatHandler

__all__ = [
    "Direction",
    "FormatCatalog",
    "detect_input_format",
    "find_handler_for_format",
]


Direction = Literal["from", "to"]


class FormatCatalog:
    """
    Merged, deduplicated collection of formats.

    :param formats: Formats from all handlers, duplicates allowed
    """

    def __init__(self, formats: Iterable[Format] = ()):
        self.formats: list[Format] = merge_formats(formats)

    def __len__(self) -> int:
        return len(self.formats)

    def __iter__(self):
        return iter(self.formats)

    def categories(self) -> list[str]:
        return sorted({fmt.primary_category for fmt in self.formats})

    def filter(
        self,
        direction: Optional[Direction] = None,
        category: Optional[str] = None,
        query: Optional[str] = None,
    ) -> list[Format]:
        """
        Select formats usable in a direction, optionally narrowed by category and
        a case-insensitive search over format id, name, extension, and mime.

        :param direction: "from" for input formats, "to" for output formats,
            None for both
        :param category: Primary category to keep
        :param query: Substring to search for
        :return: Matching formats in catalog order
        """
        selected = self.formats

        if direction == "from":
            selected = [fmt for fmt in selected if fmt.from_]
        elif direction == "to":
            selected = [fmt for fmt in selected if fmt.to]

        if category:
            selected = [fmt for fmt in selected if fmt.primary_category == category]

        if query and query.strip():
            needle = query.strip().lower()
            selected = [
                fmt
                for fmt in selected
                if needle in fmt.format.lower()
                or needle in fmt.name.lower()
                or needle in fmt.extension.lower()
                or needle in fmt.mime.lower()
            ]

        return selected

    def group_by_category(
        self, direction: Optional[Direction] = None
    ) -> dict[str, list[Format]]:
        groups: dict[str, list[Format]] = {}
        for fmt in self.filter(direction):
            groups.setdefault(fmt.primary_category, []).append(fmt)

        return groups

    def find(self, token: str, direction: Optional[Direction] = None) -> Format | None:
        """
        Resolve a user supplied token to a format. The token is compared with
        the format id, internal id, extension and mime, in that order of
        preference. Formats usable in `direction` are preferred.

        :param token: Format id, extension (with or without dot), or mime type
        :param direction: Preferred direction of use
        :return: The best matching format, None if nothing matches
        """
        needle = token.strip().lower().lstrip(".")
        if not needle:
            return None

        preferred = self.filter(direction)
        candidates = preferred + [fmt for fmt in self.formats if fmt not in preferred]

        for attribute in ("format", "internal", "extension", "mime"):
            for fmt in candidates:
                if getattr(fmt, attribute).lower() == needle:
                    return fmt

        return None


def detect_input_format(
    file: Union[FileData, str, os.PathLike],
    catalog: Union[FormatCatalog, Sequence[Format]],
    mime: Optional[str] = None,
) -> Format | None:
    """
    Detect the format of an input file. Strategies, first match wins, all
    restricted to formats that can be read:
    1. extension and mime both match, or extension matches and mime is unknown
    2. extension matches
    3. mime matches

    :param file: The file, or its name or path
    :param catalog: The catalog or plain list of formats to search
    :param mime: The file's mime type if known, otherwise guessed from the name
    :return: The detected format, None if nothing matches
    """
    name = file.name if isinstance(file, FileData) else os.fspath(file)
    extension = PurePath(name).suffix[1:].lower()
    if mime is None:
        mime = mimetypes.guess_type(name)[0]
    mime = normalize_mime(mime)

    readable = [
        fmt
        for fmt in (catalog.formats if isinstance(catalog, FormatCatalog) else catalog)
        if fmt.from_
    ]

    if extension:
        for fmt in readable:
            if fmt.extension.lower() == extension and (not mime or fmt.mime == mime):
                return fmt

        for fmt in readable:
            if fmt.extension.lower() == extension:
                return fmt

    if mime:
        for fmt in readable:
            if fmt.mime == mime:
                return fmt

    return None


def find_handler_for_format(
    format_: Format, handlers: Sequence[FormatHandler]
) -> FormatHandler | None:
    """
    Find the first handler, in registration order, that supports a format.

    :param format_: The format to look up, compared by identity
    :param handlers: Handlers in registration order
    :return: The first supporting handler, None if no handler supports it
    """
    for handler in handlers:
        if handler.supports(format_):
            return handler

    return None
