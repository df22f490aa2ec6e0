"""
Format handlers: the pluggable capability providers of the conversion engine.

Importing this package registers the built-in handlers with `FormatHandler` in a
fixed order. Registration order is the tie-breaker between equally short
conversion paths, so handlers registered earlier are tried first.
"""

from __future__ import annotations

from .base import FormatHandler
from .text import TextHandler
from .tabular import TabularHandler

__all__ = ["FormatHandler", "TabularHandler", "TextHandler", "default_handlers"]


def default_handlers() -> list[FormatHandler]:
    """
    Instantiate every registered handler class in registration order.

    :return: Fresh, uninitialized handler instances
    """
    return [handler_cls() for handler_cls in FormatHandler.registered_objects()]
