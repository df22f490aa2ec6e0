"""
Plain text handler.

Handles plain text and markdown as interchangeable UTF-8 text, and renders
either of them into a minimal standalone HTML document.
"""

from __future__ import annotations

import html

from transmute.formats import FileData, Format
from transmute.handlers.base import FormatHandler

__all__ = ["TextHandler"]


HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
</head>
<body>
<pre>{body}</pre>
</body>
</html>
"""


@FormatHandler.register()
class TextHandler(FormatHandler):
    name = "text"

    async def load_formats(self) -> list[Format]:
        return [
            Format(
                name="Plain Text",
                format="txt",
                internal="txt",
                extension="txt",
                mime="text/plain",
                category="text",
                from_=True,
                to=True,
                lossless=True,
            ),
            Format(
                name="Markdown",
                format="md",
                internal="md",
                extension="md",
                mime="text/markdown",
                category=("text", "document"),
                from_=True,
                to=True,
                lossless=True,
            ),
            Format(
                name="HyperText Markup Language",
                format="html",
                internal="html",
                extension="html",
                mime="text/html",
                category=("document", "text"),
                to=True,
            ),
        ]

    async def do_convert(
        self, files: list[FileData], from_format: Format, to_format: Format
    ) -> list[FileData]:
        if to_format.internal == "html":
            return [self._to_html(file) for file in files]

        # txt and md share the same byte representation
        return [file.derive(to_format.extension) for file in files]

    def _to_html(self, file: FileData) -> FileData:
        text = file.bytes.decode("utf-8")
        document = HTML_TEMPLATE.format(
            title=html.escape(file.name), body=html.escape(text)
        )

        return file.derive("html", document.encode("utf-8"))
