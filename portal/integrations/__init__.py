"""External integration adapters."""

from .backend import BackendClient

__all__ = ["BackendClient"]
