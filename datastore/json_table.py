from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from pydantic import TypeAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WriteBatch(Generic[T]):
    """Records staged for a single all-or-nothing commit to a table."""

    def __init__(self, table: "JsonTable[T]") -> None:
        self._table = table
        self._items: List[T] = []

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item: T) -> None:
        self._items.append(item)

    def add_range(self, items: Iterable[T]) -> None:
        self._items.extend(items)

    def save_changes(self) -> int:
        """Commit every staged record, or none of them if persistence fails."""
        committed = self._table._commit(self._items)
        self._items = []
        return committed


class JsonTable(Generic[T]):
    """Thread-safe keyed record table with optional JSON file persistence.

    Records are keyed by their ``id`` attribute. Reads hand out deep copies so
    callers can never mutate stored state.
    """

    def __init__(
        self,
        name: str,
        record_type: type,
        persistence_path: Optional[Path] = None,
    ) -> None:
        self.name = name
        self.persistence_path = persistence_path
        self._adapter: TypeAdapter = TypeAdapter(record_type)
        self._items: Dict[str, T] = {}
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def batch(self) -> WriteBatch[T]:
        return WriteBatch(self)

    def put_item(self, item: T) -> None:
        batch = self.batch()
        batch.add(item)
        batch.save_changes()

    def get_item(self, key: str) -> Optional[T]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            return copy.deepcopy(item)

    def scan(self) -> list[T]:
        return self._select(lambda _item: True)

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def _select(self, predicate: Callable[[T], bool]) -> list[T]:
        with self._lock:
            return [copy.deepcopy(item) for item in self._items.values() if predicate(item)]

    def _commit(self, items: List[T]) -> int:
        if not items:
            return 0
        staged = {getattr(item, "id"): copy.deepcopy(item) for item in items}
        with self._lock:
            updated = dict(self._items)
            updated.update(staged)
            self._persist(updated)
            self._items = updated
        logger.debug("Committed %d record(s) to table %s", len(staged), self.name)
        return len(staged)

    def _persist(self, items: Dict[str, T]) -> None:
        if not self.persistence_path:
            return
        payload = {
            key: self._adapter.dump_python(item, mode="json") for key, item in items.items()
        }
        staging = self.persistence_path.with_name(self.persistence_path.name + ".tmp")
        staging.write_text(json.dumps(payload, indent=2, sort_keys=True))
        staging.replace(self.persistence_path)

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable table file %s", self.persistence_path)
            data = {}

        for key, payload in data.items():
            try:
                self._items[key] = self._adapter.validate_python(payload)
            except ValueError as exc:
                logger.warning(
                    "Skipping invalid record %s in table %s",
                    key,
                    self.name,
                    extra={"table": self.name, "reason": str(exc)},
                )
