"""Server salt providers.

The salt keys every client digest. It is either configured explicitly or
generated once and persisted next to the rate table.
"""

from __future__ import annotations

from traffic_limiter.adapters.salt.providers import (
    AbstractSaltProvider,
    FileSaltProvider,
    StaticSaltProvider,
    build_salt_provider,
)

__all__ = [
    "AbstractSaltProvider",
    "FileSaltProvider",
    "StaticSaltProvider",
    "build_salt_provider",
]
