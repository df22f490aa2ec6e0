from .handlers import FakeHandler, make_format

__all__ = ["FakeHandler", "make_format"]
