"""Rate table storage adapters.

The limiter only depends on the abstract store, so the JSON file backend used
in production can be replaced by the in-memory one in tests or single-process
deployments.
"""

from __future__ import annotations

from pathlib import Path

from traffic_limiter.adapters.rate_table.base import AbstractRateTableStore, RateTable
from traffic_limiter.adapters.rate_table.file_store import FileRateTableStore
from traffic_limiter.adapters.rate_table.in_memory import InMemoryRateTableStore


def build_rate_table_store(backend: str, directory: Path) -> AbstractRateTableStore:
    """Create the store selected by the ``backend`` setting."""

    if backend == "memory":
        return InMemoryRateTableStore()
    return FileRateTableStore(directory)


__all__ = [
    "AbstractRateTableStore",
    "FileRateTableStore",
    "InMemoryRateTableStore",
    "RateTable",
    "build_rate_table_store",
]
