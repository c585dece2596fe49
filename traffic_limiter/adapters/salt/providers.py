"""Salt provider implementations.

``StaticSaltProvider`` wraps ``TRAFFIC_SALT``; ``FileSaltProvider`` keeps a
generated salt in ``<dir>/server_salt`` so digests survive restarts.
"""

from __future__ import annotations

import logging
import os
import secrets
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from traffic_limiter.core.errors import StorageAppError, ValidationAppError

logger = logging.getLogger(__name__)

SALT_FILENAME = "server_salt"
_SALT_BYTES = 32


class AbstractSaltProvider(ABC):
    """Interface for the secret used to key client digests."""

    @abstractmethod
    def get(self) -> bytes:
        raise NotImplementedError


class StaticSaltProvider(AbstractSaltProvider):
    """Salt supplied through configuration."""

    def __init__(self, salt: str) -> None:
        if not salt:
            raise ValidationAppError(
                code="invalid_salt",
                message="Configured salt must not be empty",
                details={"hint": "Unset TRAFFIC_SALT to generate one automatically"},
            )
        self._salt = salt.encode("utf-8")

    def get(self) -> bytes:
        return self._salt


class FileSaltProvider(AbstractSaltProvider):
    """Random salt generated on first use and kept in ``directory``.

    The file is written in full before it is linked into place, so when
    several processes race to create it, all of them end up with the
    winner's salt.
    """

    def __init__(self, directory: Path | str) -> None:
        self._path = Path(directory) / SALT_FILENAME
        self._lock = threading.Lock()
        self._salt: bytes | None = None

    def get(self) -> bytes:
        with self._lock:
            if self._salt is None:
                self._salt = self._read() if self._path.is_file() else self._create()
            return self._salt

    def _read(self) -> bytes:
        try:
            value = self._path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise StorageAppError(
                code="storage_error",
                message="Unable to read the server salt",
                details={"path": str(self._path)},
            ) from exc
        if not value:
            raise StorageAppError(
                code="storage_error",
                message="Server salt file is empty",
                details={"path": str(self._path)},
            )
        return value.encode("utf-8")

    def _create(self) -> bytes:
        value = secrets.token_hex(_SALT_BYTES)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{SALT_FILENAME}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                # link() refuses to overwrite, so the first writer wins
                os.link(tmp_name, self._path)
            finally:
                Path(tmp_name).unlink(missing_ok=True)
        except FileExistsError:
            return self._read()
        except OSError as exc:
            raise StorageAppError(
                code="storage_error",
                message="Unable to create the server salt",
                details={"path": str(self._path)},
            ) from exc

        logger.info("salt.generated", extra={"path": str(self._path)})
        return value.encode("utf-8")


def build_salt_provider(salt: str | None, directory: Path | str) -> AbstractSaltProvider:
    """Prefer the configured salt, otherwise persist a generated one."""

    if salt is not None:
        return StaticSaltProvider(salt)
    return FileSaltProvider(directory)
