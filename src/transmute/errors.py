"""
Exception hierarchy for the transmute conversion engine.

Per-handler and per-path failures (HandlerInitError, PathExecutionError) are
recovered inside the engine and only logged. The remaining errors are terminal
and reach the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from transmute.formats import Format

__all__ = [
    "ConversionCancelledError",
    "HandlerInitError",
    "NoPathFoundError",
    "PathExecutionError",
    "TransmuteError",
    "UnresolvedFormatError",
    "UnresolvedHandlerError",
]


class TransmuteError(Exception):
    """Base class for all errors raised by transmute."""


class HandlerInitError(TransmuteError):
    """A handler failed to initialize and cannot report its formats."""

    def __init__(self, handler_name: str, reason: str):
        super().__init__(f"Handler '{handler_name}' failed to initialize: {reason}")
        self.handler_name = handler_name
        self.reason = reason


class PathExecutionError(TransmuteError):
    """A hop of a conversion path raised or produced empty output."""

    def __init__(self, message: str, hop_index: int | None = None):
        super().__init__(message)
        self.hop_index = hop_index


class NoPathFoundError(TransmuteError):
    """Every candidate conversion path was exhausted without success."""

    def __init__(
        self,
        input_format: Format,
        output_format: Format,
        attempts: list[Any] | None = None,
    ):
        super().__init__(
            "Could not find a working conversion path from "
            f"{input_format.format} to {output_format.format}"
        )
        self.input_format = input_format
        self.output_format = output_format
        self.attempts = attempts or []


class UnresolvedFormatError(TransmuteError):
    """A file or user supplied token did not resolve to a known format."""

    def __init__(self, subject: str):
        super().__init__(f"Could not resolve a known format for '{subject}'")
        self.subject = subject


class UnresolvedHandlerError(TransmuteError):
    """No ready handler supports the requested format."""

    def __init__(self, format_: Format):
        super().__init__(
            f"No handler supports format '{format_.format}' "
            f"(internal id '{format_.internal}')"
        )
        self.format = format_


class ConversionCancelledError(TransmuteError):
    """The caller cancelled a conversion between two hops."""
