"""In-memory rate table store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Tables are copied on load and store, so callers never share mutable state
  with the store.
"""

from __future__ import annotations

from traffic_limiter.adapters.rate_table.base import AbstractRateTableStore, RateTable
from traffic_limiter.core.errors import StorageAppError


class InMemoryRateTableStore(AbstractRateTableStore):
    """Keeps rate tables in a process-local dict.

    Also counts loads and stores, which tests use to assert that a request
    never touched the table.
    """

    def __init__(self) -> None:
        super().__init__()
        self._tables: dict[str, RateTable] = {}
        self.loads = 0
        self.stores = 0

    def exists(self, name: str) -> bool:
        return name in self._tables

    def load(self, name: str) -> RateTable:
        self.loads += 1
        try:
            return dict(self._tables[name])
        except KeyError as exc:
            raise StorageAppError(
                code="rate_table_missing",
                message="Rate table has not been stored yet",
                details={"table": name},
            ) from exc

    def store(self, name: str, table: RateTable) -> None:
        self.stores += 1
        self._tables[name] = dict(table)
