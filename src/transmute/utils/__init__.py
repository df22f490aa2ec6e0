from .registry import RegistryMixin

__all__ = ["RegistryMixin"]
