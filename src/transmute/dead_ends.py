"""
Memory of conversion paths proven to fail within one conversion call.

A handler's declared capability is a claim, not a guarantee, so failures are
discovered at runtime and remembered for the rest of the call. Path search
consults the memory before yielding or expanding a candidate, which keeps the
executor from retrying a route, or any route sharing a failed prefix, twice.

Each top-level conversion call owns its own memory; it is never shared between
calls, so overlapping conversions cannot erase each other's progress.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from transmute.graph import ConversionPath, PathSignature

__all__ = ["DeadEndMemory"]


class DeadEndMemory:
    """
    Set of failed path signatures with prefix matching.

    Recording a path marks that exact route and every extension of it as dead.
    """

    def __init__(self):
        self._signatures: set[PathSignature] = set()

    def __len__(self) -> int:
        return len(self._signatures)

    def __contains__(self, path: Union[ConversionPath, PathSignature]) -> bool:
        return self.is_dead(path)

    def clear(self) -> None:
        self._signatures.clear()

    def record(self, path: Union[ConversionPath, PathSignature]) -> None:
        self._signatures.add(_signature(path))

    def is_dead(self, path: Union[ConversionPath, PathSignature]) -> bool:
        """
        :param path: A path or path signature
        :return: True if the path or one of its prefixes was recorded
        """
        if not self._signatures:
            return False

        signature = _signature(path)

        return any(
            signature[:length] in self._signatures
            for length in range(1, len(signature) + 1)
        )


def _signature(path: Union[ConversionPath, PathSignature]) -> PathSignature:
    return path if isinstance(path, tuple) else path.signature
