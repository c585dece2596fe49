"""Rate table store interface.

A store persists one opaque mapping of client digest to the epoch second the
client was last admitted. The limiter runs its whole load/purge/decide/store
cycle inside ``lock(name)`` so concurrent checks cannot both admit the same
client within one window.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

RateTable = dict[str, int]


class AbstractRateTableStore(ABC):
    """Interface for rate table persistence."""

    def __init__(self) -> None:
        self._locks_guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _thread_lock(self, name: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(name, threading.Lock())

    @contextmanager
    def lock(self, name: str) -> Iterator[None]:
        """Serialize access to the table ``name`` within this process."""

        with self._thread_lock(name):
            yield

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Return whether a table called ``name`` has been stored."""
        raise NotImplementedError

    @abstractmethod
    def load(self, name: str) -> RateTable:
        """Load a stored table.

        Raises:
            StorageAppError: If the table exists but cannot be read or parsed.
        """
        raise NotImplementedError

    @abstractmethod
    def store(self, name: str, table: RateTable) -> None:
        """Durably replace the table ``name``.

        Raises:
            StorageAppError: If the table cannot be written.
        """
        raise NotImplementedError
