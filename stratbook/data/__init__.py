"""Content backends: the abstract interface, the in-memory and SQL implementations."""

from stratbook.data.backend import ContentBackend
from stratbook.data.memory import (
    InMemoryContentBackend,
    get_memory_backend,
    reset_memory_backend,
)

__all__ = [
    "ContentBackend",
    "InMemoryContentBackend",
    "get_memory_backend",
    "reset_memory_backend",
]
