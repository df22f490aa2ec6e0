"""
Conversion graph and lazy path search.

Vertices are (handler, format) pairs: a format as reachable through a specific
handler. A vertex holding format A connects to the vertex (H, B) whenever
handler H declares A as readable, B as writable, and claims the A to B
conversion. When both vertices belong to the same handler the edge is an
intra-handler capability; otherwise it is a hand-off, passing the intermediate
bytes to another handler that also understands A. Every hop is executed by the
handler of its destination vertex.

Path search is a breadth-first generator. Candidates come out ordered by hop
count, with ties broken by handler registration order and then by the order in
which a handler declares its formats, so cheap routes are tried first. Simple
mode stops after the minimal hop count; advanced mode keeps going to longer
routes through intermediate formats.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loguru import logger

from transmute.catalog import find_handler_for_format
from transmute.dead_ends import DeadEndMemory
from transmute.errors import UnresolvedHandlerError
from transmute.formats import Format, FormatKey
from transmute.handlers import FormatHandler
from transmute.settings import settings

__all__ = [
    "ConversionGraph",
    "ConversionPath",
    "EdgeKind",
    "PathSignature",
    "Vertex",
]


VertexSignature = tuple[str, str, str]
PathSignature = tuple[VertexSignature, ...]


class EdgeKind(str, Enum):
    INTRA_HANDLER = "intra_handler"
    HAND_OFF = "hand_off"


@dataclass(frozen=True)
class Vertex:
    """A format as reachable through a specific handler."""

    handler: FormatHandler
    format: Format

    @property
    def signature(self) -> VertexSignature:
        return (self.handler.name, self.format.format, self.format.internal)

    def __str__(self) -> str:
        return f"{self.handler.name}:{self.format.format}"


@dataclass(frozen=True)
class ConversionPath:
    """
    Ordered vertices of a candidate conversion. The first vertex is the input
    anchor, the last one carries the output format.
    """

    vertices: tuple[Vertex, ...]

    def __len__(self) -> int:
        return len(self.vertices)

    def __iter__(self) -> Iterator[Vertex]:
        return iter(self.vertices)

    def __getitem__(self, index: int) -> Vertex:
        return self.vertices[index]

    def __str__(self) -> str:
        return " -> ".join(vertex.format.format for vertex in self.vertices)

    @property
    def hops(self) -> int:
        return len(self.vertices) - 1

    @property
    def signature(self) -> PathSignature:
        return tuple(vertex.signature for vertex in self.vertices)

    @property
    def last(self) -> Vertex:
        return self.vertices[-1]

    def steps(self) -> Iterator[tuple[Vertex, Vertex]]:
        """Yield each hop as a (source, destination) vertex pair."""
        return zip(self.vertices, self.vertices[1:])

    def edge_kinds(self) -> list[EdgeKind]:
        return [
            EdgeKind.INTRA_HANDLER
            if source.handler is destination.handler
            else EdgeKind.HAND_OFF
            for source, destination in self.steps()
        ]

    def prefix(self, hops: int) -> ConversionPath:
        """
        :param hops: Number of hops to keep
        :return: The path truncated after `hops` hops
        """
        return ConversionPath(self.vertices[: hops + 1])

    def extend(self, vertex: Vertex) -> ConversionPath:
        return ConversionPath((*self.vertices, vertex))

    def describe(self) -> str:
        """Render the path with the handler performing each hop."""
        return " -> ".join(str(vertex) for vertex in self.vertices)


class ConversionGraph:
    """
    Graph of (handler, format) vertices built from the ready handlers.

    :param handlers: Handlers in registration order; handlers without known
        formats are ignored
    """

    def __init__(self, handlers: Sequence[FormatHandler] = ()):
        self.handlers: list[FormatHandler] = []
        self.vertices: list[Vertex] = []
        self._successors: dict[FormatKey, list[Vertex]] = {}
        self._predecessors: dict[FormatKey, set[FormatKey]] = {}
        self.init(handlers)

    def init(self, handlers: Sequence[FormatHandler]) -> None:
        """
        (Re)build the graph from handler capabilities.

        :param handlers: Handlers in registration order
        """
        self.handlers = [
            handler for handler in handlers if handler.supported_formats is not None
        ]
        self.vertices = []
        self._successors = {}
        self._predecessors = {}

        for handler in self.handlers:
            formats = handler.supported_formats or []
            vertices = [Vertex(handler, fmt) for fmt in formats]
            self.vertices.extend(vertices)
            writable = [vertex for vertex in vertices if vertex.format.to]

            for fmt in formats:
                if not fmt.from_:
                    continue
                successors = self._successors.setdefault(fmt.key, [])
                successors.extend(
                    vertex
                    for vertex in writable
                    if vertex.format.key != fmt.key
                    and handler.can_convert(fmt, vertex.format)
                )

        for key, successors in self._successors.items():
            for vertex in successors:
                self._predecessors.setdefault(vertex.format.key, set()).add(key)

        logger.debug(
            f"Built conversion graph with {len(self.vertices)} vertices over "
            f"{len(self.handlers)} handlers"
        )

    def successors(self, vertex: Vertex) -> list[Vertex]:
        """
        :param vertex: The vertex to expand
        :return: Vertices reachable in one hop, in search order
        """
        return self._successors.get(vertex.format.key, [])

    def anchor(self, format_: Format) -> Vertex:
        """
        Bind a requested format to the first handler supporting it.

        :param format_: The input or output format of a request
        :return: The anchor vertex
        :raises UnresolvedHandlerError: If no handler supports the format
        """
        handler = find_handler_for_format(format_, self.handlers)
        if handler is None:
            raise UnresolvedHandlerError(format_)

        return Vertex(handler, format_)

    def search_paths(
        self,
        source: Vertex,
        target: Vertex,
        simple: bool = True,
        dead_ends: Optional[DeadEndMemory] = None,
        max_hops: Optional[int] = None,
        max_paths: Optional[int] = None,
    ) -> Iterator[ConversionPath]:
        """
        Lazily enumerate candidate paths from source to target in breadth-first
        order. A path never revisits a format, and the target is reached by any
        vertex carrying the target's format, whichever handler produced it.

        The dead-end memory is checked every time a path is expanded or yielded,
        so failures recorded by the consumer between two steps take effect
        immediately.

        Vertices that cannot reach the target within the remaining hop budget are
        never expanded, so an unreachable target finishes without exploring the
        source's neighborhood.

        :param source: The input anchor
        :param target: The output anchor
        :param simple: True to stop after the minimal hop count, False to
            continue into longer routes
        :param dead_ends: Memory of failed paths for the current conversion
        :param max_hops: Longest path to consider, in hops
        :param max_paths: Maximum number of paths to yield, None for no limit
        :return: Iterator over candidate paths
        """
        if max_hops is None:
            max_hops = settings.engine.max_hops

        target_key = target.format.key
        if source.format.key == target_key:
            return

        distances = self.distances_to(target_key, max_hops)
        if source.format.key not in distances:
            return

        frontier: deque[ConversionPath] = deque([ConversionPath((source,))])
        minimal_hops: Optional[int] = None
        yielded = 0

        while frontier:
            path = frontier.popleft()

            if simple and minimal_hops is not None and path.hops >= minimal_hops:
                break
            if path.hops >= max_hops:
                continue
            if dead_ends is not None and dead_ends.is_dead(path):
                continue

            visited = {vertex.format.key for vertex in path}

            for successor in self.successors(path.last):
                key = successor.format.key
                if key in visited or key not in distances:
                    continue
                if path.hops + 1 + distances[key] > max_hops:
                    continue

                candidate = path.extend(successor)
                if dead_ends is not None and dead_ends.is_dead(candidate):
                    continue

                if key != target_key:
                    frontier.append(candidate)
                    continue

                if minimal_hops is None:
                    minimal_hops = candidate.hops

                yield candidate
                yielded += 1

                if max_paths is not None and yielded >= max_paths:
                    return

    def distances_to(
        self, target: FormatKey, max_hops: Optional[int] = None
    ) -> dict[FormatKey, int]:
        """
        Hop distances to a target format, found by walking the edges backwards.

        :param target: Identity key of the target format
        :param max_hops: Farthest distance to record, None for no limit
        :return: Mapping of every format key that can reach the target to its
            minimal hop count, the target itself included at distance 0
        """
        distances = {target: 0}
        queue = deque([target])

        while queue:
            key = queue.popleft()
            distance = distances[key] + 1
            if max_hops is not None and distance > max_hops:
                continue
            for predecessor in self._predecessors.get(key, ()):
                if predecessor not in distances:
                    distances[predecessor] = distance
                    queue.append(predecessor)

        return distances

    def reachable_formats(
        self, source: Format, max_hops: Optional[int] = None
    ) -> list[Format]:
        """
        List every format reachable from a source format.

        :param source: The starting format
        :param max_hops: Longest route to follow, defaults to the setting
        :return: Reachable formats ordered by hop distance
        """
        if max_hops is None:
            max_hops = settings.engine.max_hops

        seen: dict[FormatKey, Format] = {}
        level = [source]
        distance = 0

        while level and distance < max_hops:
            next_level = []
            for fmt in level:
                for successor in self._successors.get(fmt.key, []):
                    key = successor.format.key
                    if key == source.key or key in seen:
                        continue
                    seen[key] = successor.format
                    next_level.append(successor.format)
            level = next_level
            distance += 1

        return list(seen.values())
