"""
Transmute: multi-step file format conversion over a graph of pluggable handlers.

No single converter supports every pair of formats, and some conversions a
handler declares only fail once they run. Transmute models formats and the
handlers that read and write them as a graph, enumerates candidate conversion
paths lazily from the shortest up, and executes them one after the other until
one produces output, remembering failed routes so they are not retried.

The library offers:
- An engine bootstrapped from handler capabilities or a precomputed snapshot.
- Format detection and lookup over a merged catalog of every known format.
- Simple (shortest routes) and advanced (multi-hop) path search.
- A fallback-driven executor with advisory progress reporting.
"""

from .capabilities import CapabilityCache, dump_snapshot, load_snapshot, write_snapshot
from .catalog import FormatCatalog, detect_input_format, find_handler_for_format
from .dead_ends import DeadEndMemory
from .engine import (
    Engine,
    EngineFactory,
    EngineState,
    build_engine,
    get_engine,
    reset_engine,
)
from .errors import (
    ConversionCancelledError,
    HandlerInitError,
    NoPathFoundError,
    PathExecutionError,
    TransmuteError,
    UnresolvedFormatError,
    UnresolvedHandlerError,
)
from .executor import ConversionResult, PathAttempt, convert_files
from .formats import FileData, Format, merge_formats
from .graph import ConversionGraph, ConversionPath, Vertex
from .handlers import FormatHandler
from .logging import configure_logger

__all__ = [
    "CapabilityCache",
    "ConversionCancelledError",
    "ConversionGraph",
    "ConversionPath",
    "ConversionResult",
    "DeadEndMemory",
    "Engine",
    "EngineFactory",
    "EngineState",
    "FileData",
    "Format",
    "FormatCatalog",
    "FormatHandler",
    "HandlerInitError",
    "NoPathFoundError",
    "PathAttempt",
    "PathExecutionError",
    "TransmuteError",
    "UnresolvedFormatError",
    "UnresolvedHandlerError",
    "Vertex",
    "build_engine",
    "configure_logger",
    "convert_files",
    "detect_input_format",
    "dump_snapshot",
    "find_handler_for_format",
    "get_engine",
    "load_snapshot",
    "merge_formats",
    "reset_engine",
    "write_snapshot",
]
