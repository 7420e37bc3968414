"""
JSON file configuration backend.

Stores the configuration record as one JSON document.
Writes go to a temporary file first and are then renamed into
place, so a crash never leaves a half-written record.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from ledger_assistant.storage.interface import (
    ConfigStorageInterface,
    CorruptRecordError,
    StorageError,
)


class JsonFileConfigStorage(ConfigStorageInterface):
    """Configuration record kept in a local JSON file."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Optional[dict]:
        if not self._path.exists():
            return None
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot read {self._path}: {e}") from e
        try:
            record = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptRecordError(f"{self._path} is not valid JSON: {e}") from e
        if not isinstance(record, dict):
            raise CorruptRecordError(f"{self._path} does not hold a JSON object")
        return record

    def write(self, record: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            dir=str(self._path.parent),
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(record, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Cannot write {self._path}: {e}") from e
