"""
Tabular data handler.

Converts between CSV and JSON record lists and renders either as an aligned
plain text table. JSON input must be a list of objects; anything else fails the
conversion step so that the engine can try another route.
"""

from __future__ import annotations

import csv
import io
import json
from typing import Any

from transmute.formats import FileData, Format
from transmute.handlers.base import FormatHandler

__all__ = ["TabularHandler"]


@FormatHandler.register()
class TabularHandler(FormatHandler):
    name = "tabular"

    async def load_formats(self) -> list[Format]:
        return [
            Format(
                name="Comma Separated Values",
                format="csv",
                internal="csv",
                extension="csv",
                mime="text/csv",
                category="data",
                from_=True,
                to=True,
                lossless=True,
            ),
            Format(
                name="JavaScript Object Notation",
                format="json",
                internal="json",
                extension="json",
                mime="application/json",
                category="data",
                from_=True,
                to=True,
                lossless=True,
            ),
            Format(
                name="Plain Text",
                format="txt",
                internal="txt",
                extension="txt",
                mime="text/plain",
                category="text",
                to=True,
            ),
        ]

    async def do_convert(
        self, files: list[FileData], from_format: Format, to_format: Format
    ) -> list[FileData]:
        outputs = []

        for file in files:
            fieldnames, records = self._read(file, from_format)

            if to_format.internal == "json":
                data = json.dumps(records, indent=2, ensure_ascii=False)
            elif to_format.internal == "csv":
                data = self._write_csv(fieldnames, records)
            elif to_format.internal == "txt":
                data = self._write_table(fieldnames, records)
            else:
                raise ValueError(f"Unsupported target format {to_format.format}")

            outputs.append(file.derive(to_format.extension, data.encode("utf-8")))

        return outputs

    def _read(
        self, file: FileData, format_: Format
    ) -> tuple[list[str], list[dict[str, Any]]]:
        if format_.internal == "csv":
            reader = csv.DictReader(io.StringIO(file.bytes.decode("utf-8-sig")))
            records = list(reader)
            return list(reader.fieldnames or []), records

        if format_.internal == "json":
            records = json.loads(file.bytes.decode("utf-8"))
            if not isinstance(records, list) or not all(
                isinstance(record, dict) for record in records
            ):
                raise ValueError(f"{file.name} is not a JSON list of objects")

            fieldnames: list[str] = []
            for record in records:
                fieldnames.extend(key for key in record if key not in fieldnames)
            return fieldnames, records

        raise ValueError(f"Unsupported source format {format_.format}")

    def _write_csv(self, fieldnames: list[str], records: list[dict[str, Any]]) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=fieldnames, lineterminator="\n")
        writer.writeheader()
        writer.writerows(records)

        return buffer.getvalue()

    def _write_table(self, fieldnames: list[str], records: list[dict[str, Any]]) -> str:
        rows = [fieldnames] + [
            ["" if record.get(key) is None else str(record.get(key)) for key in fieldnames]
            for record in records
        ]
        widths = [max(len(row[col]) for row in rows) for col in range(len(fieldnames))]

        lines = [
            "  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip()
            for row in rows
        ]
        if len(lines) > 1:
            lines.insert(1, "  ".join("-" * width for width in widths))

        return "\n".join(lines) + "\n"
