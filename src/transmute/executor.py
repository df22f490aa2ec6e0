"""
Fallback-driven execution of conversion paths.

The executor reads the inputs once, then walks candidate paths from the path
search in order. Each candidate is attempted hop by hop, every hop handing the
previous hop's output to the destination handler. A hop that raises, times out,
or produces an empty file fails only its path: the failure is remembered in the
call's dead-end memory and the next candidate is tried. The first path that
completes is returned; when none does, a NoPathFoundError names both formats.

Progress reports are advisory only and never influence control flow.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional, Union

from loguru import logger

from transmute.dead_ends import DeadEndMemory
from transmute.errors import (
    ConversionCancelledError,
    NoPathFoundError,
    PathExecutionError,
)
from transmute.formats import FileData, Format
from transmute.graph import ConversionPath, PathSignature
from transmute.settings import settings

if TYPE_CHECKING:
    from transmute.engine import Engine

__all__ = [
    "ConversionResult",
    "InputFile",
    "PathAttempt",
    "ProgressCallback",
    "attempt_path",
    "convert_files",
    "read_inputs",
]


ProgressCallback = Callable[[float, str], None]
"""Receives a percentage in [0, 100] and a status message."""

InputFile = Union[FileData, str, os.PathLike]


@dataclass
class PathAttempt:
    """Outcome of executing one candidate path."""

    path: ConversionPath
    success: bool
    files: list[FileData] = field(default_factory=list)
    reason: Optional[str] = None
    failed_hop: Optional[int] = None

    @classmethod
    def succeeded(cls, path: ConversionPath, files: list[FileData]) -> PathAttempt:
        return cls(path=path, success=True, files=files)

    @classmethod
    def failed(cls, path: ConversionPath, hop: int, reason: str) -> PathAttempt:
        return cls(path=path, success=False, reason=reason, failed_hop=hop)

    @property
    def dead_prefix(self) -> ConversionPath:
        """The part of the path up to and including the failed hop."""
        if self.failed_hop is None:
            return self.path

        return self.path.prefix(self.failed_hop + 1)


@dataclass
class ConversionResult:
    """Files produced by a successful conversion and the path that produced them."""

    files: list[FileData]
    path: ConversionPath
    attempts: list[PathAttempt] = field(default_factory=list)


def _report(on_progress: Optional[ProgressCallback], percent: float, message: str):
    if on_progress is None:
        return

    try:
        on_progress(percent, message)
    except Exception as err:  # noqa: BLE001
        logger.warning(f"Progress callback raised {type(err).__name__}: {err}")


async def read_inputs(inputs: Sequence[InputFile]) -> list[FileData]:
    """
    Materialize input files into memory.

    :param inputs: FileData objects, or paths to read from disk
    :return: The inputs as FileData, in the given order
    """

    async def _read(item: InputFile) -> FileData:
        if isinstance(item, FileData):
            return item

        path = Path(item)
        return FileData(name=path.name, bytes=await asyncio.to_thread(path.read_bytes))

    return list(await asyncio.gather(*(_read(item) for item in inputs)))


async def attempt_path(
    path: ConversionPath,
    files: list[FileData],
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
    hop_timeout: Optional[float] = None,
) -> PathAttempt:
    """
    Execute every hop of a path sequentially.

    :param path: The candidate path
    :param files: The materialized inputs, not modified
    :param on_progress: Optional progress sink
    :param cancel_event: Optional event checked before each hop
    :param hop_timeout: Optional per-hop time limit in seconds
    :return: A successful attempt with the produced files, or a failed attempt
        naming the hop that failed and why
    :raises ConversionCancelledError: If the cancel event is set between hops
    """
    current = files

    for index, (source, destination) in enumerate(path.steps()):
        if cancel_event is not None and cancel_event.is_set():
            raise ConversionCancelledError(f"Conversion cancelled before hop {index}")

        _report(
            on_progress,
            30 + ((index + 1) / path.hops) * 60,
            f"Converting: {source.format.format} -> {destination.format.format}",
        )

        try:
            current = await _run_hop(
                destination.handler,
                current,
                source.format,
                destination.format,
                hop_timeout,
            )
        except Exception as err:  # noqa: BLE001
            return PathAttempt.failed(path, index, f"{type(err).__name__}: {err}")

        try:
            _check_output(current, index)
        except PathExecutionError as err:
            return PathAttempt.failed(path, index, str(err))

    return PathAttempt.succeeded(path, current)


async def _run_hop(
    handler,
    files: list[FileData],
    from_format: Format,
    to_format: Format,
    hop_timeout: Optional[float],
) -> Optional[list[FileData]]:
    await handler.init()
    conversion = handler.convert(list(files), from_format, to_format)

    if hop_timeout is None:
        produced = await conversion
    else:
        produced = await asyncio.wait_for(conversion, timeout=hop_timeout)

    return None if produced is None else list(produced)


def _check_output(files: Optional[list[FileData]], hop: int):
    if not files:
        raise PathExecutionError("Handler produced no output files", hop)

    invalid = list(
        dict.fromkeys(
            type(file).__name__ for file in files if not isinstance(file, FileData)
        )
    )
    if invalid:
        raise PathExecutionError(
            f"Handler produced {', '.join(invalid)} instead of files", hop
        )

    empty = [file.name for file in files if file.is_empty]
    if empty:
        raise PathExecutionError(f"Output is empty: {', '.join(empty)}", hop)


async def convert_files(
    inputs: Sequence[InputFile],
    input_format: Format,
    output_format: Format,
    engine: Engine,
    simple: bool = True,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> ConversionResult:
    """
    Convert files between two formats, falling back through candidate paths
    until one succeeds.

    :param inputs: Input files as FileData objects or paths
    :param input_format: The resolved format of the inputs
    :param output_format: The requested output format
    :param engine: A ready engine
    :param simple: True to try minimal-hop routes first, False to explore
        multi-hop routes from the start
    :param on_progress: Optional progress sink receiving (percent, message)
    :param cancel_event: Optional event that cancels the conversion at the next
        hop boundary
    :return: The produced files and the path used
    :raises UnresolvedHandlerError: If no handler supports one of the formats
    :raises NoPathFoundError: If every candidate path failed
    :raises ConversionCancelledError: If the cancel event was set
    """
    _report(on_progress, 10, "Reading input files...")
    files = await read_inputs(inputs)

    _report(on_progress, 20, "Finding conversion path...")
    source = engine.graph.anchor(input_format)
    target = engine.graph.anchor(output_format)

    dead_ends = DeadEndMemory()
    failed: set[PathSignature] = set()
    attempts: list[PathAttempt] = []

    modes = [simple]
    if simple and settings.engine.escalate_simple_mode:
        modes.append(False)

    for simple_mode in modes:
        candidates = engine.graph.search_paths(
            source,
            target,
            simple=simple_mode,
            dead_ends=dead_ends,
            max_hops=settings.engine.max_hops,
            max_paths=settings.engine.max_paths,
        )

        for path in candidates:
            if path.signature in failed:
                continue

            _report(on_progress, 30, f"Trying: {path}")
            logger.debug(f"Trying conversion path {path.describe()}")
            attempt = await attempt_path(
                path,
                files,
                on_progress=on_progress,
                cancel_event=cancel_event,
                hop_timeout=settings.engine.hop_timeout,
            )
            attempts.append(attempt)

            if attempt.success:
                logger.info(
                    f"Converted {input_format.format} to {output_format.format} "
                    f"via {path.describe()}"
                )
                _report(on_progress, 95, "Conversion complete!")
                return ConversionResult(
                    files=attempt.files, path=path, attempts=attempts
                )

            logger.warning(
                f"Path failed at hop {attempt.failed_hop}: {path.describe()} "
                f"({attempt.reason})"
            )
            failed.add(path.signature)
            dead_ends.record(path)
            dead_ends.record(attempt.dead_prefix)

        if simple_mode and len(modes) > 1:
            logger.debug("Simple mode candidates exhausted, exploring longer paths")

    raise NoPathFoundError(input_format, output_format, attempts)
