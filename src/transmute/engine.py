"""
Conversion engine bootstrap.

The engine aggregates the handlers that initialized successfully, the capability
cache, the merged format catalog, and the conversion graph built from them.
Building it can be expensive, since every handler not covered by the capability
snapshot is initialized, so an EngineFactory builds it at most once and lets
concurrent callers share the in-flight build.

Classes:
    Engine: The ready conversion engine
    EngineState: Lifecycle states of an EngineFactory
    EngineFactory: Lazily builds and memoizes one Engine

Functions:
    build_engine: Bootstrap an engine from handlers and an optional snapshot
    get_engine: Return the process wide engine from the default factory
    reset_engine: Discard the default factory and its engine
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from loguru import logger

from transmute.capabilities import CapabilityCache, dump_snapshot, load_snapshot
from transmute.catalog import FormatCatalog, find_handler_for_format
from transmute.errors import HandlerInitError
from transmute.executor import (
    ConversionResult,
    InputFile,
    ProgressCallback,
    convert_files,
)
from transmute.formats import Format
from transmute.graph import ConversionGraph
from transmute.handlers import FormatHandler, default_handlers
from transmute.settings import settings

__all__ = [
    "Engine",
    "EngineFactory",
    "EngineState",
    "build_engine",
    "get_engine",
    "reset_engine",
]


@dataclass
class Engine:
    """
    A ready conversion engine.

    :param handlers: Handlers with known formats, in registration order
    :param graph: The conversion graph over those handlers
    :param catalog: Formats merged across handlers
    :param cache: Capability cache, handler name to formats
    :param excluded: Names of handlers that failed to initialize
    """

    handlers: list[FormatHandler]
    graph: ConversionGraph
    catalog: FormatCatalog
    cache: CapabilityCache
    excluded: list[str] = field(default_factory=list)
    ready: bool = False

    @property
    def formats(self) -> list[Format]:
        return self.catalog.formats

    def find_handler(self, format_: Format) -> FormatHandler | None:
        return find_handler_for_format(format_, self.handlers)

    def snapshot(self) -> str:
        """Serialize the capability cache for regenerating a snapshot file."""
        return dump_snapshot(self.cache)

    async def convert(
        self,
        inputs: Sequence[InputFile],
        input_format: Format,
        output_format: Format,
        simple: bool = True,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ConversionResult:
        """Convert files with this engine, see `transmute.executor.convert_files`."""
        return await convert_files(
            inputs,
            input_format,
            output_format,
            self,
            simple=simple,
            on_progress=on_progress,
            cancel_event=cancel_event,
        )


async def build_engine(
    handlers: Sequence[FormatHandler],
    snapshot: Optional[CapabilityCache] = None,
) -> Engine:
    """
    Bootstrap an engine. Handlers found in the snapshot adopt the cached formats
    and are not initialized; every other handler is initialized, and one that
    fails is left out of the catalog and graph without aborting the build.

    :param handlers: Handler instances in registration order
    :param snapshot: Optional capability snapshot, handler name to formats
    :return: The ready engine, possibly with no usable handlers
    """
    cache: CapabilityCache = {}
    available: list[FormatHandler] = []
    excluded: list[str] = []

    for handler in handlers:
        if snapshot is not None and handler.name in snapshot:
            handler.adopt_formats(snapshot[handler.name])
            logger.debug(f"Using cached formats for handler '{handler.name}'")
        else:
            try:
                await handler.init()
            except HandlerInitError as err:
                logger.warning(f"{err}, skipping")
                excluded.append(handler.name)
                continue
            logger.info(f"Initialized handler '{handler.name}'")

        cache[handler.name] = list(handler.supported_formats or [])
        available.append(handler)

    catalog = FormatCatalog(fmt for formats in cache.values() for fmt in formats)
    graph = ConversionGraph(available)

    if not available:
        logger.warning("No format handlers are available, no conversion will succeed")

    logger.info(
        f"Conversion engine ready with {len(available)} handlers and "
        f"{len(catalog)} formats"
    )

    return Engine(
        handlers=available,
        graph=graph,
        catalog=catalog,
        cache=cache,
        excluded=excluded,
        ready=True,
    )


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    BUILDING = "building"
    READY = "ready"


class EngineFactory:
    """
    Builds an Engine lazily and at most once.

    The first `get` call starts the build; calls made while it runs await the same
    task, and once ready the engine is returned directly. A build that raises
    returns the factory to UNINITIALIZED so a later call can retry.

    :param handlers: Handler instances, or a callable producing them. Defaults to
        one instance of every registered handler class
    :param snapshot_path: Capability snapshot location, defaults to the
        `engine.snapshot_path` setting
    """

    def __init__(
        self,
        handlers: Union[
            Sequence[FormatHandler], Callable[[], Sequence[FormatHandler]], None
        ] = None,
        snapshot_path: Union[str, Path, None] = None,
    ):
        self._handlers = handlers if handlers is not None else default_handlers
        self._snapshot_path = snapshot_path
        self._state = EngineState.UNINITIALIZED
        self._engine: Optional[Engine] = None
        self._build_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def engine(self) -> Engine | None:
        return self._engine

    async def get(self) -> Engine:
        """
        :return: The memoized engine, building it on first use
        """
        if self._engine is not None:
            return self._engine

        if self._build_task is None:
            self._state = EngineState.BUILDING
            self._build_task = asyncio.ensure_future(self._build())
            self._build_task.add_done_callback(_log_build_failure)

        # one caller giving up must not cancel the build shared with others
        return await asyncio.shield(self._build_task)

    async def _build(self) -> Engine:
        try:
            handlers = (
                self._handlers() if callable(self._handlers) else self._handlers
            )
            snapshot_path = (
                self._snapshot_path
                if self._snapshot_path is not None
                else settings.engine.snapshot_path
            )
            engine = await build_engine(list(handlers), load_snapshot(snapshot_path))
        except BaseException:
            self._state = EngineState.UNINITIALIZED
            self._build_task = None
            raise

        self._engine = engine
        self._state = EngineState.READY

        return engine


def _log_build_failure(task: asyncio.Task) -> None:
    # retrieves the exception even when every awaiting caller was cancelled
    if task.cancelled():
        return

    err = task.exception()
    if err is not None:
        logger.error(f"Conversion engine build failed: {type(err).__name__}: {err}")


_default_factory: Optional[EngineFactory] = None


def default_factory() -> EngineFactory:
    global _default_factory  # noqa: PLW0603

    if _default_factory is None:
        _default_factory = EngineFactory()

    return _default_factory


async def get_engine() -> Engine:
    """
    :return: The process wide engine built from the registered handlers
    """
    return await default_factory().get()


def reset_engine() -> None:
    """Discard the process wide engine; the next `get_engine` builds a new one."""
    global _default_factory  # noqa: PLW0603

    _default_factory = None
