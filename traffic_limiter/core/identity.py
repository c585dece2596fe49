"""Keyed client digests.

Client addresses are never stored or logged in raw form. Instead they are
turned into an HMAC under the server salt:

- ``STRONG`` (sha512) identifies a client in logs and responses.
- ``COMPACT`` (sha256) keys the rate table, keeping the table file small.

Rotating the salt changes every digest, which effectively resets the rate
limit history.
"""

from __future__ import annotations

import hmac
from enum import Enum


class DigestAlgorithm(str, Enum):
    """Digest variants supported for client identities."""

    STRONG = "sha512"
    COMPACT = "sha256"


def digest(
    raw_address: str | None,
    algorithm: DigestAlgorithm = DigestAlgorithm.STRONG,
    *,
    secret: bytes,
) -> str:
    """Return the hex HMAC of ``raw_address`` keyed with ``secret``.

    A missing address hashes as the empty string.
    """

    message = (raw_address or "").encode("utf-8")
    return hmac.new(secret, message, DigestAlgorithm(algorithm).value).hexdigest()
