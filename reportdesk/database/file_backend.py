import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from reportdesk.database.base import StateBackend
from reportdesk.database.exceptions import StateBackendError


class JsonFileStateBackend(StateBackend):
    """Stores every key in a single JSON document on local disk.

    Writes go to a temp file in the same directory followed by os.replace,
    so a crash mid-write leaves the previous document intact.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self, key: str) -> Any | None:
        with self._lock:
            return self._read().get(key)

    def save(self, key: str, value: Any) -> None:
        with self._lock:
            document = self._read()
            document[key] = value
            self._write(document)

    def delete(self, key: str) -> None:
        with self._lock:
            document = self._read()
            if key in document:
                del document[key]
                self._write(document)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StateBackendError(f"Cannot read state file {self._path}: {exc}") from exc
        if not raw.strip():
            return {}
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StateBackendError(f"State file {self._path} is not valid JSON: {exc}") from exc
        if not isinstance(document, dict):
            raise StateBackendError(f"State file {self._path} must contain a JSON object")
        return document

    def _write(self, document: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise StateBackendError(f"Cannot write state file {self._path}: {exc}") from exc
