"""
Capability cache and snapshot persistence.

The capability cache maps handler names to the formats each handler supports.
It is filled during engine bootstrap, either from a precomputed snapshot or by
initializing handlers, and seeds the format catalog. A snapshot is a JSON list
of `[handler_name, [format, ...]]` pairs; `dump_snapshot` writes the live cache
back in that shape so it can be regenerated after handlers change.

Loading a snapshot is best effort: a missing or malformed file only logs a
warning and the engine falls back to live handler initialization.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Union

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from transmute.formats import Format

__all__ = [
    "CapabilityCache",
    "dump_snapshot",
    "load_snapshot",
    "parse_snapshot",
    "write_snapshot",
]


CapabilityCache = dict[str, list[Format]]
"""Mapping of handler name to supported formats, in handler registration order."""

_snapshot_adapter = TypeAdapter(list[tuple[str, list[Format]]])


def parse_snapshot(content: Union[str, bytes]) -> CapabilityCache:
    """
    Parse snapshot JSON into a capability cache.

    :param content: The raw snapshot JSON
    :return: The parsed capability cache
    :raises pydantic.ValidationError: If the content does not match the schema
    """
    entries = _snapshot_adapter.validate_json(content)

    return {name: list(formats) for name, formats in entries}


def load_snapshot(path: Union[str, Path, None]) -> CapabilityCache | None:
    """
    Load a capability snapshot from disk.

    :param path: Location of the snapshot, None to skip loading
    :return: The capability cache, or None if no valid snapshot was available
    """
    if path is None:
        return None

    path = Path(path)
    if not path.is_file():
        logger.info(f"No capability snapshot at {path}, initializing handlers")
        return None

    try:
        cache = parse_snapshot(path.read_bytes())
    except (OSError, ValidationError) as err:
        logger.warning(f"Ignoring unreadable capability snapshot {path}: {err}")
        return None

    logger.info(f"Loaded capability snapshot for {len(cache)} handlers from {path}")

    return cache


def dump_snapshot(cache: CapabilityCache, indent: int | None = 2) -> str:
    """
    Serialize a capability cache into the snapshot format.

    :param cache: The capability cache to serialize
    :param indent: JSON indentation, None for compact output
    :return: The snapshot JSON
    """
    entries = [
        [name, [fmt.model_dump(mode="json", by_alias=True) for fmt in formats]]
        for name, formats in cache.items()
    ]

    return json.dumps(entries, indent=indent)


def write_snapshot(cache: CapabilityCache, path: Union[str, Path]) -> Path:
    """
    Write a capability cache to disk in the snapshot format.

    :param cache: The capability cache to write
    :param path: Destination file, parent directories are created
    :return: The path written to
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_snapshot(cache))
    logger.info(f"Wrote capability snapshot for {len(cache)} handlers to {path}")

    return path
