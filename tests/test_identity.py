"""Unit tests for keyed client digests."""

import hashlib
import hmac

from traffic_limiter.core.identity import DigestAlgorithm, digest

SECRET = b"server-salt"


def test_digest_is_stable_for_same_address_and_secret() -> None:
    assert digest("198.51.100.7", secret=SECRET) == digest("198.51.100.7", secret=SECRET)


def test_digest_differs_across_addresses() -> None:
    assert digest("198.51.100.7", secret=SECRET) != digest("198.51.100.8", secret=SECRET)


def test_changing_secret_changes_digest() -> None:
    assert digest("198.51.100.7", secret=SECRET) != digest("198.51.100.7", secret=b"rotated")


def test_variants_use_sha512_and_sha256() -> None:
    strong = digest("198.51.100.7", DigestAlgorithm.STRONG, secret=SECRET)
    compact = digest("198.51.100.7", DigestAlgorithm.COMPACT, secret=SECRET)

    assert len(strong) == 128
    assert len(compact) == 64
    assert compact == hmac.new(SECRET, b"198.51.100.7", hashlib.sha256).hexdigest()


def test_missing_address_hashes_as_empty_string() -> None:
    assert digest(None, secret=SECRET) == digest("", secret=SECRET)


def test_algorithm_accepts_plain_names() -> None:
    assert digest("x", "sha256", secret=SECRET) == digest("x", DigestAlgorithm.COMPACT, secret=SECRET)
