"""
Registry system for explicit object registration and lookup.

Classes that mix in RegistryMixin keep their own registry of implementations,
populated through the `register` decorator at import time. Registration order is
preserved, which transmute relies on to rank handlers when several of them offer
equally short conversion paths.
"""

from __future__ import annotations

from typing import Callable, ClassVar, Generic, TypeVar, cast

__all__ = ["RegisterT", "RegistryMixin", "RegistryObjT"]


RegistryObjT = TypeVar("RegistryObjT")
"""Generic type variable for objects managed by the registry system."""
RegisterT = TypeVar("RegisterT")
"""Generic type variable for the args and return values within the registry."""


class RegistryMixin(Generic[RegistryObjT]):
    """
    Generic mixin for creating ordered object registries.

    Example:
    ::
        class BaseHandler(RegistryMixin):
            pass

        @BaseHandler.register()
        class ImageHandler(BaseHandler):
            name = "image"

        @BaseHandler.register("legacy_audio")
        class AudioHandler(BaseHandler):
            pass

        handlers = BaseHandler.registered_objects()

    :cvar registry: Dictionary mapping names to registered objects, in
        registration order
    """

    registry: ClassVar[dict[str, RegistryObjT] | None] = None  # type: ignore[misc]

    @classmethod
    def register(
        cls, name: str | list[str] | None = None
    ) -> Callable[[RegisterT], RegisterT]:
        """
        Decorator for registering objects with the registry.

        :param name: Optional name(s) to register the object under. If None, uses
            the object's `name` attribute when it is a string, else its __name__
        :return: Decorator function that registers the decorated object
        """

        def _decorator(obj: RegisterT) -> RegisterT:
            cls.register_decorator(obj, name=name)
            return obj

        return _decorator

    @classmethod
    def register_decorator(
        cls, obj: RegisterT, name: str | list[str] | None = None
    ) -> RegisterT:
        """
        Register an object directly with the registry.

        :param obj: The object to register
        :param name: Optional name(s) to register the object under
        :return: The registered object
        :raises ValueError: If the name is invalid or already registered
        """
        if name is None:
            declared = getattr(obj, "name", None)
            if isinstance(declared, str) and declared:
                name = declared
            else:
                name = obj.__name__ if hasattr(obj, "__name__") else str(obj)
        elif not isinstance(name, (str, list)):
            raise ValueError(
                "RegistryMixin.register_decorator name must be a string or "
                f"a list of strings. Got {name}."
            )

        if cls.registry is None:
            cls.registry = {}

        names = [name] if isinstance(name, str) else list(name)

        for register_name in names:
            if not isinstance(register_name, str):
                raise ValueError(
                    "RegistryMixin.register_decorator name must be a string or "
                    f"a list of strings. Got {register_name}."
                )

            if register_name in cls.registry:
                raise ValueError(
                    f"RegistryMixin.register_decorator cannot register an object "
                    f"{obj} with the name {register_name} because it is already "
                    "registered."
                )

            cls.registry[register_name] = cast("RegistryObjT", obj)

        return obj

    @classmethod
    def registered_objects(cls) -> tuple[RegistryObjT, ...]:
        """
        Get all registered objects in registration order.

        :return: Tuple of all registered objects
        :raises ValueError: If called before any objects have been registered
        """
        if cls.registry is None:
            raise ValueError(
                "RegistryMixin.registered_objects() must be called after "
                "registering objects with RegistryMixin.register()."
            )

        return tuple(cls.registry.values())

    @classmethod
    def is_registered(cls, name: str) -> bool:
        """
        Check if an object is registered under the given name.
        It matches first by exact name, then by str.lower().

        :param name: The name to check for registration.
        :return: True if the object is registered, False otherwise.
        """
        return cls.get_registered_object(name) is not None

    @classmethod
    def get_registered_object(cls, name: str) -> RegistryObjT | None:
        """
        Get a registered object by its name. It matches first by exact name,
        then by str.lower().

        :param name: The name of the registered object.
        :return: The registered object if found, None otherwise.
        """
        if cls.registry is None:
            return None

        if name in cls.registry:
            return cls.registry[name]

        lower_key_map = {key.lower(): key for key in cls.registry}

        return (
            cls.registry[lower_key_map[name.lower()]]
            if name.lower() in lower_key_map
            else None
        )
