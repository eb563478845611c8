"""
Persistence for shortage batches.

The analytics core never touches storage; the app loads a batch through a
repository, hands it to the core, and saves imports back. Records are stored
in their compressed form (short field aliases) to keep files small.
"""

import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from core.records import ShortageRecord

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_records_adapter = TypeAdapter(list[ShortageRecord])


class RepositoryError(Exception):
    """Raised when a batch can't be read from or written to storage."""


@dataclass(frozen=True)
class SaveResult:
    saved: int
    location: str
    saved_at: datetime


class ShortageRepository(Protocol):
    def load(self) -> list[ShortageRecord]: ...

    def save(self, records: list[ShortageRecord]) -> SaveResult: ...

    def clear(self) -> None: ...


class InMemoryRepository:
    """Keeps the batch in process memory (tests, throwaway sessions)."""

    def __init__(self, records: list[ShortageRecord] | None = None):
        self._records = list(records or [])

    def load(self) -> list[ShortageRecord]:
        return list(self._records)

    def save(self, records: list[ShortageRecord]) -> SaveResult:
        self._records = list(records)
        return SaveResult(saved=len(self._records), location="memory", saved_at=datetime.now(timezone.utc))

    def clear(self) -> None:
        self._records = []


class JsonFileRepository:
    """
    Stores the batch as one JSON document.

    Writes go to a temp file that replaces the target, and the previous file
    is kept as ``<name>.bak`` so a damaged file can be recovered on load.
    """

    def __init__(self, path: Path | str, keep_backup: bool = True):
        self.path = Path(path)
        self.keep_backup = keep_backup

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + ".bak")

    def load(self) -> list[ShortageRecord]:
        if not self.path.exists():
            return []

        try:
            return self._read(self.path)
        except RepositoryError as primary_error:
            if not (self.keep_backup and self.backup_path.exists()):
                raise
            logger.warning("%s is unreadable (%s), loading backup", self.path, primary_error)
            return self._read(self.backup_path)

    def save(self, records: list[ShortageRecord]) -> SaveResult:
        saved_at = datetime.now(timezone.utc)
        payload = {
            "version": FORMAT_VERSION,
            "saved_at": saved_at.isoformat(),
            "records": _records_adapter.dump_python(
                list(records), mode="json", by_alias=True, exclude_defaults=True
            ),
        }

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self.keep_backup and self.path.exists():
                shutil.copy2(self.path, self.backup_path)

            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise RepositoryError(f"Could not save {len(records)} records to {self.path}: {e}") from e

        logger.info("Saved %d records to %s", len(records), self.path)
        return SaveResult(saved=len(records), location=str(self.path), saved_at=saved_at)

    def clear(self) -> None:
        try:
            for path in (self.path, self.backup_path):
                path.unlink(missing_ok=True)
        except OSError as e:
            raise RepositoryError(f"Could not clear {self.path}: {e}") from e
        logger.info("Cleared %s", self.path)

    def _read(self, path: Path) -> list[ShortageRecord]:
        try:
            with open(path, encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RepositoryError(f"Could not read {path}: {e}") from e

        if not isinstance(payload, dict) or "records" not in payload:
            raise RepositoryError(f"{path} is not a shortage batch file")
        if payload.get("version") != FORMAT_VERSION:
            raise RepositoryError(f"{path} has unsupported format version {payload.get('version')!r}")

        try:
            records = _records_adapter.validate_python(payload["records"])
        except ValidationError as e:
            raise RepositoryError(f"{path} contains invalid records: {e.error_count()} errors") from e

        logger.info("Loaded %d records from %s", len(records), path)
        return records
