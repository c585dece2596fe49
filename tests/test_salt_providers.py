"""Unit tests for server salt providers."""

from pathlib import Path

import pytest

from traffic_limiter.adapters.salt import (
    FileSaltProvider,
    StaticSaltProvider,
    build_salt_provider,
)
from traffic_limiter.adapters.salt.providers import SALT_FILENAME
from traffic_limiter.core.errors import StorageAppError, ValidationAppError


def test_static_salt_is_returned_as_bytes() -> None:
    assert StaticSaltProvider("s3cret").get() == b"s3cret"


def test_static_salt_must_not_be_empty() -> None:
    with pytest.raises(ValidationAppError):
        StaticSaltProvider("")


def test_file_salt_is_generated_once_and_persisted(tmp_path: Path) -> None:
    provider = FileSaltProvider(tmp_path / "data")

    salt = provider.get()

    assert len(salt) == 64
    assert provider.get() == salt
    assert (tmp_path / "data" / SALT_FILENAME).read_text(encoding="utf-8") == salt.decode()


def test_file_salt_survives_restart(tmp_path: Path) -> None:
    first = FileSaltProvider(tmp_path).get()

    assert FileSaltProvider(tmp_path).get() == first


def test_existing_salt_file_is_used(tmp_path: Path) -> None:
    (tmp_path / SALT_FILENAME).write_text("provisioned\n", encoding="utf-8")

    assert FileSaltProvider(tmp_path).get() == b"provisioned"


def test_empty_salt_file_raises_storage_error(tmp_path: Path) -> None:
    (tmp_path / SALT_FILENAME).write_text("", encoding="utf-8")

    with pytest.raises(StorageAppError):
        FileSaltProvider(tmp_path).get()


def test_build_salt_provider_prefers_configured_salt(tmp_path: Path) -> None:
    assert isinstance(build_salt_provider("configured", tmp_path), StaticSaltProvider)
    assert isinstance(build_salt_provider(None, tmp_path), FileSaltProvider)
