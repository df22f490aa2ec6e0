"""
Abstract base handler for the pluggable conversion capability providers.

A handler converts between a bounded, self-declared set of formats. The engine
only relies on the contract defined here: a unique name, a readiness flag, the
list of supported formats (absent until initialized or adopted from a capability
snapshot), an idempotent `init` and a `convert` coroutine that fails by raising.
Concrete handlers register themselves with `@FormatHandler.register()` and are
instantiated by the engine in registration order.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import ClassVar

from loguru import logger

from transmute.errors import HandlerInitError
from transmute.formats import FileData, Format
from transmute.utils import RegistryMixin

__all__ = ["FormatHandler"]


class FormatHandler(ABC, RegistryMixin["type[FormatHandler]"]):
    """
    Abstract base class for all format handlers.

    Subclasses set `name`, implement `load_formats` to report the formats they
    support and `do_convert` to perform a single conversion step.

    Example:
    ::
        @FormatHandler.register()
        class UpperHandler(FormatHandler):
            name = "upper"

            async def load_formats(self) -> list[Format]:
                return [TXT]

            async def do_convert(self, files, from_format, to_format):
                return [file.derive("txt", file.bytes.upper()) for file in files]

    :cvar name: Unique handler name, also the key in capability snapshots
    """

    name: ClassVar[str] = ""

    def __init__(self):
        self.ready: bool = False
        self.supported_formats: list[Format] | None = None
        self._init_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, ready={self.ready})"

    async def init(self) -> None:
        """
        Initialize the handler and populate `supported_formats`.

        Idempotent: once ready, further calls return immediately, and concurrent
        callers wait for the single in-flight initialization.

        :raises HandlerInitError: If the handler cannot be initialized
        """
        if self.ready:
            return

        async with self._init_lock:
            if self.ready:
                return

            try:
                formats = await self.load_formats()
            except Exception as err:
                raise HandlerInitError(self.name, f"{type(err).__name__}: {err}") from err

            if formats is None:
                raise HandlerInitError(self.name, "no supported formats reported")

            self.supported_formats = list(formats)
            self.ready = True
            logger.debug(
                f"Handler '{self.name}' ready with {len(self.supported_formats)} formats"
            )

    def adopt_formats(self, formats: Sequence[Format]) -> None:
        """
        Use formats from a capability snapshot without initializing the handler.
        The handler stays unready and is initialized lazily before converting.

        :param formats: The cached formats for this handler
        """
        self.supported_formats = list(formats)

    def supports(self, format_: Format) -> bool:
        """
        :param format_: The format to look for
        :return: True if a supported format has the same identity
        """
        return any(
            supported.same_identity(format_)
            for supported in self.supported_formats or ()
        )

    def can_convert(self, from_format: Format, to_format: Format) -> bool:
        """
        Whether this handler claims a direct conversion between two of its
        formats. By default every readable format converts to every writable one;
        handlers with a narrower set of pairs override this.

        :param from_format: A readable supported format
        :param to_format: A writable supported format
        :return: True if the pair is declared
        """
        return True

    async def convert(
        self, files: list[FileData], from_format: Format, to_format: Format
    ) -> list[FileData]:
        """
        Convert files from one supported format to another.

        :param files: The input files, all in `from_format`
        :param from_format: The format of the input files
        :param to_format: The format to produce
        :return: The produced files
        :raises HandlerInitError: If the handler has not been initialized
        """
        if not self.ready:
            raise HandlerInitError(self.name, "convert called before init")

        return await self.do_convert(files, from_format, to_format)

    @abstractmethod
    async def load_formats(self) -> list[Format]:
        """
        Discover the formats this handler supports.

        :return: The supported formats with their `from`/`to` flags set
        """
        ...

    @abstractmethod
    async def do_convert(
        self, files: list[FileData], from_format: Format, to_format: Format
    ) -> list[FileData]:
        """
        Perform one conversion step.

        :param files: The input files
        :param from_format: The format of the input files
        :param to_format: The format to produce
        :return: The produced files
        """
        ...
