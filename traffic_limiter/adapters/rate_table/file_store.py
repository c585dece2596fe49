"""JSON file rate table store.

Tables live as ``<dir>/<name>`` JSON documents. Writes go to a temporary file
in the same directory which then replaces the table atomically, so a reader
never observes a half-written table. ``lock`` adds an exclusive OS file lock
on ``<dir>/<name>.lock`` so several worker processes sharing the directory
serialize their read/purge/write cycles.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

from pydantic import ValidationError

from traffic_limiter.adapters.rate_table.base import AbstractRateTableStore, RateTable
from traffic_limiter.core.errors import StorageAppError, ValidationAppError
from traffic_limiter.schemas.rate_table import RateTableDocument

logger = logging.getLogger(__name__)


def _lock_file(handle: BinaryIO) -> None:
    if os.name == "nt":
        import msvcrt

        handle.seek(0)
        msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)
    else:
        import fcntl

        fcntl.flock(handle.fileno(), fcntl.LOCK_EX)


def _unlock_file(handle: BinaryIO) -> None:
    if os.name == "nt":
        import msvcrt

        handle.seek(0)
        msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl

        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


class FileRateTableStore(AbstractRateTableStore):
    """Persists rate tables as JSON files inside ``directory``."""

    def __init__(self, directory: Path | str) -> None:
        super().__init__()
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path(self, name: str) -> Path:
        """Resolve the file backing table ``name``.

        Raises:
            ValidationAppError: If ``name`` is not a plain file name.
        """

        if not name or Path(name).name != name or name in {".", ".."}:
            raise ValidationAppError(
                code="invalid_table_name",
                message="Rate table name must be a plain file name",
                details={"table": name},
            )
        return self._directory / name

    def exists(self, name: str) -> bool:
        return self.path(name).is_file()

    def load(self, name: str) -> RateTable:
        path = self.path(name)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error(
                "rate_table.load_failed",
                extra={"table": name, "error_type": type(exc).__name__},
            )
            raise StorageAppError(
                code="storage_error",
                message="Unable to read the rate table",
                details={"table": name, "path": str(path)},
            ) from exc

        try:
            document = RateTableDocument.model_validate_json(raw)
        except ValidationError as exc:
            logger.error(
                "rate_table.corrupt",
                extra={"table": name, "error_count": exc.error_count()},
            )
            raise StorageAppError(
                code="storage_error",
                message="Rate table is not a valid table document",
                details={"table": name, "path": str(path)},
            ) from exc

        return dict(document.entries)

    def store(self, name: str, table: RateTable) -> None:
        path = self.path(name)
        payload = RateTableDocument(entries=table).model_dump_json()

        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._directory, prefix=f".{name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.error(
                "rate_table.store_failed",
                extra={"table": name, "error_type": type(exc).__name__},
            )
            raise StorageAppError(
                code="storage_error",
                message="Unable to write the rate table",
                details={"table": name, "path": str(path)},
            ) from exc

        logger.debug("rate_table.stored", extra={"table": name, "entries": len(table)})

    @contextmanager
    def lock(self, name: str) -> Iterator[None]:
        """Hold the in-process lock and an exclusive file lock for ``name``."""

        lock_path = self.path(name).with_name(f"{name}.lock")
        with super().lock(name):
            try:
                self._directory.mkdir(parents=True, exist_ok=True)
                handle = open(lock_path, "a+b")
            except OSError as exc:
                raise StorageAppError(
                    code="storage_error",
                    message="Unable to open the rate table lock",
                    details={"table": name, "path": str(lock_path)},
                ) from exc

            with handle:
                try:
                    _lock_file(handle)
                except OSError as exc:
                    raise StorageAppError(
                        code="storage_error",
                        message="Unable to lock the rate table",
                        details={"table": name, "path": str(lock_path)},
                    ) from exc
                try:
                    yield
                finally:
                    _unlock_file(handle)
