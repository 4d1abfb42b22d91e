"""
Delivery layer: persistence backends and export accessors.
"""

from certprep.delivery.state_store import (
    JsonFileBackend,
    KeyValueBackend,
    MemoryBackend,
    PerformanceStore,
    SqliteBackend,
    create_backend,
)

__all__ = [
    "JsonFileBackend",
    "KeyValueBackend",
    "MemoryBackend",
    "PerformanceStore",
    "SqliteBackend",
    "create_backend",
]
