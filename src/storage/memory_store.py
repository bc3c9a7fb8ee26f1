"""In-process typed record store.

Implements the store contract the engine relies on: per-entity tables with
put/get/delete, bulk variants and equality lookups, an all-or-nothing
``transaction()`` for multi-record batches, and a change-notification channel
for subscribers that mirror the data elsewhere.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, Set, Type, TypeVar

from loguru import logger
from pydantic import BaseModel

from src.storage.schemas import (
    AppSettings,
    Claim,
    Contradiction,
    Document,
    KnowledgeGap,
    ResearchQuestion,
    TextChunk,
    Topic,
    TopicRelationship,
)

M = TypeVar("M", bound=BaseModel)

ChangeListener = Callable[[str], None]


class Table(Generic[M]):
    """A keyed collection of one record type.

    Records are copied on the way in and out, so callers never hold a reference
    to stored state.
    """

    def __init__(self, name: str, model: Type[M], store: "MemoryStore") -> None:
        self.name = name
        self.model = model
        self._store = store
        self._rows: Dict[str, M] = {}

    # -----------------------
    # Writes
    # -----------------------
    def put(self, record: M) -> str:
        with self._store._write(self.name):
            key = str(getattr(record, "id"))
            self._rows[key] = record.model_copy(deep=True)
            return key

    def bulk_put(self, records: Iterable[M]) -> int:
        count = 0
        with self._store._write(self.name):
            for record in records:
                self._rows[str(getattr(record, "id"))] = record.model_copy(deep=True)
                count += 1
        return count

    def update(self, key: str, **changes: Any) -> Optional[M]:
        """Apply field changes to a stored record; returns the new value or None."""
        with self._store._write(self.name):
            current = self._rows.get(key)
            if current is None:
                return None
            updated = current.model_copy(update=changes, deep=True)
            self._rows[key] = updated
            return updated.model_copy(deep=True)

    def delete(self, key: str) -> bool:
        with self._store._write(self.name):
            return self._rows.pop(key, None) is not None

    def bulk_delete(self, keys: Iterable[str]) -> int:
        removed = 0
        with self._store._write(self.name):
            for key in keys:
                if self._rows.pop(key, None) is not None:
                    removed += 1
        return removed

    def clear(self) -> int:
        with self._store._write(self.name):
            removed = len(self._rows)
            self._rows.clear()
            return removed

    # -----------------------
    # Reads
    # -----------------------
    def get(self, key: str) -> Optional[M]:
        with self._store._lock:
            record = self._rows.get(key)
            return record.model_copy(deep=True) if record is not None else None

    def all(self) -> List[M]:
        with self._store._lock:
            return [r.model_copy(deep=True) for r in self._rows.values()]

    def where(self, field: str, value: Any) -> List[M]:
        """Equality lookup; for list-valued fields, membership."""
        with self._store._lock:
            return [r.model_copy(deep=True) for r in self._rows.values() if _matches(r, field, value)]

    def first(self, field: str, value: Any) -> Optional[M]:
        with self._store._lock:
            for record in self._rows.values():
                if _matches(record, field, value):
                    return record.model_copy(deep=True)
            return None

    def count(self) -> int:
        with self._store._lock:
            return len(self._rows)

    def __len__(self) -> int:
        return self.count()


def _matches(record: BaseModel, field: str, value: Any) -> bool:
    current = getattr(record, field)
    if isinstance(current, list):
        return value in current
    return current == value


class MemoryStore:
    """Typed store with one table per record kind."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._listeners: List[ChangeListener] = []
        self._tx_depth = 0
        self._pending_changes: Set[str] = set()

        self.documents: Table[Document] = Table("documents", Document, self)
        self.chunks: Table[TextChunk] = Table("chunks", TextChunk, self)
        self.claims: Table[Claim] = Table("claims", Claim, self)
        self.topics: Table[Topic] = Table("topics", Topic, self)
        self.relationships: Table[TopicRelationship] = Table(
            "relationships", TopicRelationship, self
        )
        self.contradictions: Table[Contradiction] = Table("contradictions", Contradiction, self)
        self.gaps: Table[KnowledgeGap] = Table("gaps", KnowledgeGap, self)
        self.questions: Table[ResearchQuestion] = Table("questions", ResearchQuestion, self)
        self.settings: Table[AppSettings] = Table("settings", AppSettings, self)

    @property
    def tables(self) -> Dict[str, Table[Any]]:
        return {
            table.name: table
            for table in (
                self.documents,
                self.chunks,
                self.claims,
                self.topics,
                self.relationships,
                self.contradictions,
                self.gaps,
                self.questions,
                self.settings,
            )
        }

    # -----------------------
    # Transactions
    # -----------------------
    @contextmanager
    def transaction(self) -> Iterator["MemoryStore"]:
        """Run a multi-record batch atomically.

        Other threads' writes are blocked for the duration. If the block raises,
        every table is restored to its state at entry and the error propagates.
        Change notifications are delivered once, after the outermost commit.
        """
        with self._lock:
            outermost = self._tx_depth == 0
            snapshot = {name: dict(t._rows) for name, t in self.tables.items()} if outermost else None
            self._tx_depth += 1
            try:
                yield self
            except BaseException:
                self._tx_depth -= 1
                if outermost and snapshot is not None:
                    for name, rows in snapshot.items():
                        self.tables[name]._rows = rows
                    self._pending_changes.clear()
                    logger.debug("Store transaction rolled back")
                raise
            self._tx_depth -= 1
            changed = set()
            if outermost:
                changed = set(self._pending_changes)
                self._pending_changes.clear()
        for name in sorted(changed):
            self._notify(name)

    @contextmanager
    def locked(self) -> Iterator["MemoryStore"]:
        """Block other threads' reads and writes without snapshotting.

        For read-modify-write sequences whose individual writes cannot fail
        halfway. Notifications still go out per write.
        """
        with self._lock:
            yield self

    @contextmanager
    def _write(self, table_name: str) -> Iterator[None]:
        with self._lock:
            yield
            if self._tx_depth > 0:
                self._pending_changes.add(table_name)
                return
        self._notify(table_name)

    # -----------------------
    # Change notification
    # -----------------------
    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a callback receiving the table name after each committed write.

        Returns a function that removes the subscription.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, table_name: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(table_name)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Store change listener failed", table=table_name, error=str(exc))

    # -----------------------
    # Settings singleton
    # -----------------------
    def ensure_settings(self) -> AppSettings:
        """Return the settings record, inserting defaults when absent."""
        with self._lock:
            existing = self.settings.get("settings")
            if existing is not None:
                return existing
            defaults = AppSettings()
            self.settings.put(defaults)
            return defaults
