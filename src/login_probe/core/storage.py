"""Record stores used to persist analyses, attempts, forms and batch jobs."""

from __future__ import annotations

import copy
import json
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from .artifacts import utc_now
from .errors import PersistenceError

DETECTED_FIELDS = "detected_fields"
SECURITY_FEATURES = "security_features"
LOGIN_ATTEMPTS = "login_attempts"
GENERATED_FORMS = "generated_forms"
BATCH_JOBS = "batch_jobs"
TABLES = (DETECTED_FIELDS, SECURITY_FEATURES, LOGIN_ATTEMPTS, GENERATED_FORMS, BATCH_JOBS)


class Store(Protocol):
    def insert(self, table: str, record: Mapping[str, Any]) -> str: ...

    def insert_many(self, table: str, records: Iterable[Mapping[str, Any]]) -> List[str]: ...

    def select(self, table: str, filter: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]: ...

    def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]: ...

    def update(self, table: str, record_id: str, patch: Mapping[str, Any]) -> Dict[str, Any]: ...


def _stamp(record: Mapping[str, Any]) -> Dict[str, Any]:
    stamped = dict(record)
    stamped.setdefault("id", uuid.uuid4().hex)
    stamped.setdefault("created_at", utc_now())
    return stamped


def _matches(record: Mapping[str, Any], filter: Optional[Mapping[str, Any]]) -> bool:
    if not filter:
        return True
    return all(record.get(key) == value for key, value in filter.items())


class MemoryStore:
    """Thread-safe in-process store keyed by table name."""

    def __init__(self) -> None:
        self._tables: Dict[str, List[Dict[str, Any]]] = {name: [] for name in TABLES}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Hooks overridden by the file-backed store
    # ------------------------------------------------------------------
    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        return self._tables

    def _flush(self, tables: Dict[str, List[Dict[str, Any]]]) -> None:
        self._tables = tables

    # ------------------------------------------------------------------
    # Store API
    # ------------------------------------------------------------------
    def insert(self, table: str, record: Mapping[str, Any]) -> str:
        return self.insert_many(table, [record])[0]

    def insert_many(self, table: str, records: Iterable[Mapping[str, Any]]) -> List[str]:
        stamped = [_stamp(record) for record in records]
        if not stamped:
            return []
        with self._lock:
            tables = self._load()
            tables.setdefault(table, []).extend(stamped)
            self._flush(tables)
        return [record["id"] for record in stamped]

    def select(self, table: str, filter: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        with self._lock:
            rows = self._load().get(table, [])
            return [copy.deepcopy(row) for row in rows if _matches(row, filter)]

    def get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        rows = self.select(table, {"id": record_id})
        return rows[0] if rows else None

    def update(self, table: str, record_id: str, patch: Mapping[str, Any]) -> Dict[str, Any]:
        with self._lock:
            tables = self._load()
            for row in tables.get(table, []):
                if row.get("id") == record_id:
                    row.update(copy.deepcopy(dict(patch)))
                    self._flush(tables)
                    return copy.deepcopy(row)
        raise PersistenceError(f"{table} record {record_id} not found")


class JsonFileStore(MemoryStore):
    """Keeps every table inside a single JSON document on disk."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.path.exists():
            return {name: [] for name in TABLES}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Unable to read store {self.path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise PersistenceError(f"Store {self.path} is not a JSON object")
        return {name: list(raw.get(name, [])) for name in set(TABLES) | set(raw)}

    def _flush(self, tables: Dict[str, List[Dict[str, Any]]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(tables, indent=4, default=str), encoding="utf-8")
        except (OSError, TypeError) as exc:
            raise PersistenceError(f"Unable to write store {self.path}: {exc}") from exc
