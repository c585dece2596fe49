"""Per-client traffic limiter.

Allows at most one admitted request per client address within ``limit``
seconds. Clients are identified by a keyed digest of their address, and the
last admission time per digest lives in a rate table that is purged of
expired entries on every check.

Usage:
    config = TrafficLimiterConfig.from_settings(settings.traffic)
    limiter = TrafficLimiter(config, store=store, secret=salt, environ=environ)
    if not limiter.can_pass():
        ...  # reject with 429
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable

from traffic_limiter.adapters.rate_table.base import AbstractRateTableStore, RateTable
from traffic_limiter.core.address_match import matches
from traffic_limiter.core.config import TrafficSettings
from traffic_limiter.core.identity import DigestAlgorithm, digest

logger = logging.getLogger(__name__)

REMOTE_ADDR = "REMOTE_ADDR"
TABLE_NAME = "traffic_limiter.json"


def parse_exempted_ip(raw: str | None) -> tuple[str, ...]:
    """Split the comma-separated exemption option into entries.

    Entries are kept untrimmed; matching trims them.

    Examples:
        >>> parse_exempted_ip("10.0.0.0/8, 127.0.0.1")
        ('10.0.0.0/8', ' 127.0.0.1')
        >>> parse_exempted_ip(None)
        ()
    """

    if raw is None:
        return ()
    return tuple(raw.split(","))


def header_to_environ_key(header: str) -> str:
    """Map a header name to its CGI-style key, e.g. ``X-Real-IP`` -> ``HTTP_X_REAL_IP``."""

    return "HTTP_" + header.strip().upper().replace("-", "_")


@dataclass(frozen=True)
class TrafficLimiterConfig:
    """Immutable limiter configuration.

    Attributes:
        limit: Seconds between admissions per client; below 1 disables limiting.
        exempted_ranges: Addresses or ranges that bypass the limiter.
        header: Optional alternate request header holding the client address.
        table_name: Name of the rate table inside the store.
    """

    limit: int = 10
    exempted_ranges: tuple[str, ...] = ()
    header: str | None = None
    table_name: str = TABLE_NAME

    @classmethod
    def from_settings(cls, traffic: TrafficSettings) -> "TrafficLimiterConfig":
        return cls(
            limit=traffic.limit,
            exempted_ranges=parse_exempted_ip(traffic.exempted_ip),
            header=traffic.header or None,
        )


class TrafficLimiter:
    """Admission check for one request context.

    A limiter is bound to the request's ``environ`` (CGI-style mapping with
    ``REMOTE_ADDR`` and ``HTTP_*`` keys). The configured header is adopted as
    the address source only if it is present and non-empty at bind time;
    otherwise ``REMOTE_ADDR`` is used.
    """

    def __init__(
        self,
        config: TrafficLimiterConfig,
        *,
        store: AbstractRateTableStore,
        secret: bytes,
        environ: Mapping[str, str],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._store = store
        self._secret = secret
        self._environ = environ
        self._clock = clock
        self._address_key = self._resolve_address_key()

    def _resolve_address_key(self) -> str:
        if self._config.header:
            key = header_to_environ_key(self._config.header)
            if self._environ.get(key):
                return key
        return REMOTE_ADDR

    @property
    def config(self) -> TrafficLimiterConfig:
        return self._config

    @property
    def address_key(self) -> str:
        return self._address_key

    @property
    def address(self) -> str:
        """Raw client address from the resolved source ("" when absent)."""
        return self._environ.get(self._address_key) or ""

    def digest(self, algorithm: DigestAlgorithm = DigestAlgorithm.STRONG) -> str:
        """Keyed digest of the client address."""
        return digest(self.address, algorithm, secret=self._secret)

    def retry_after(self) -> int:
        """Seconds a denied client is told to wait."""
        return max(self._config.limit, 0)

    def is_exempted(self) -> bool:
        return any(matches(self.address, entry) for entry in self._config.exempted_ranges)

    def _purge(self, table: RateTable, now: int) -> RateTable:
        limit = self._config.limit
        return {key: last for key, last in table.items() if last + limit >= now}

    def can_pass(self) -> bool:
        """Decide whether the current client may proceed.

        Loads the rate table, drops expired entries, admits the client if it
        has no live entry and writes the table back. The table is written even
        when the client is denied; a denied client's timestamp is left as is.

        Returns:
            True when the request is admitted.

        Raises:
            StorageAppError: If the rate table cannot be read or written.
        """

        limit = self._config.limit
        if limit < 1:
            logger.debug("traffic.disabled", extra={"limit": limit})
            return True

        if self.is_exempted():
            logger.info(
                "traffic.exempted",
                extra={"client_hash": self.digest()[:16], "address_source": self._address_key},
            )
            return True

        name = self._config.table_name
        with self._store.lock(name):
            table = self._store.load(name) if self._store.exists(name) else {}

            now = int(self._clock())
            table = self._purge(table, now)

            key = self.digest(DigestAlgorithm.COMPACT)
            last = table.get(key)
            if last is not None and last + limit >= now:
                allowed = False
            else:
                table[key] = now
                allowed = True

            self._store.store(name, table)

        logger.info(
            "traffic.allowed" if allowed else "traffic.denied",
            extra={
                "client_hash": key[:16],
                "address_source": self._address_key,
                "limit": limit,
                "table_entries": len(table),
            },
        )
        return allowed
