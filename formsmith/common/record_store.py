"""
Record Store

Storage seam for FormRecords. The retriever only needs fetch_candidates and
fetch_recent; the rest serves the form service and maintenance scripts.

Two implementations ship with the package:
- InMemoryRecordStore: process-local, used in tests and ephemeral servers
- JsonFileRecordStore: persisted to ~/.formsmith/forms.json

Both return copies so callers can never mutate stored records in place.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from .config import STORE_PATH
from .errors import RecordStoreError
from .schemas import FormRecord

logger = logging.getLogger("formsmith.common.record_store")


def _newest_first(records: List[FormRecord]) -> List[FormRecord]:
    return sorted(records, key=lambda r: r.created_at, reverse=True)


class RecordStore(ABC):
    """Abstract record store"""

    @abstractmethod
    def fetch_candidates(self, owner_id: str, limit: int) -> List[FormRecord]:
        """Most recent `limit` records of owner_id that have a vector."""

    @abstractmethod
    def fetch_recent(self, owner_id: str, limit: int) -> List[FormRecord]:
        """Most recent `limit` records of owner_id, with or without vector."""

    @abstractmethod
    def add(self, record: FormRecord) -> FormRecord:
        """Persist a new record."""

    @abstractmethod
    def get(self, owner_id: str, record_id: str) -> Optional[FormRecord]:
        """Fetch one record, scoped to its owner."""

    @abstractmethod
    def get_by_shareable_id(self, shareable_id: str) -> Optional[FormRecord]:
        """Public lookup by shareable id."""

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> List[FormRecord]:
        """All records of owner_id, newest first."""

    @abstractmethod
    def delete(self, owner_id: str, record_id: str) -> bool:
        """Hard delete. Returns False when no such record exists for owner."""

    @abstractmethod
    def list_missing_vectors(self, owner_id: Optional[str] = None) -> List[FormRecord]:
        """Records without a vector, optionally scoped to one owner."""

    @abstractmethod
    def attach_vector(
        self,
        owner_id: str,
        record_id: str,
        vector: List[float],
        descriptive_text: str,
    ) -> bool:
        """
        Set vector and descriptive text on a record that has none yet.

        Returns False when the record is missing or already has a vector.
        """


class InMemoryRecordStore(RecordStore):
    """Process-local store guarded by a lock"""

    def __init__(self, records: Optional[List[FormRecord]] = None):
        self._lock = threading.Lock()
        self._records: List[FormRecord] = [r.model_copy(deep=True) for r in (records or [])]

    def _snapshot(self) -> List[FormRecord]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._records]

    def _persist(self) -> None:
        """
        Hook for subclasses; called with the lock held after mutations.

        Raising here makes the caller undo the mutation, so memory never
        holds state that was not persisted.
        """

    def fetch_candidates(self, owner_id: str, limit: int) -> List[FormRecord]:
        if limit <= 0:
            return []
        owned = [r for r in self._snapshot() if r.owner_id == owner_id and r.vector is not None]
        return _newest_first(owned)[:limit]

    def fetch_recent(self, owner_id: str, limit: int) -> List[FormRecord]:
        if limit <= 0:
            return []
        owned = [r for r in self._snapshot() if r.owner_id == owner_id]
        return _newest_first(owned)[:limit]

    def add(self, record: FormRecord) -> FormRecord:
        with self._lock:
            if any(r.id == record.id for r in self._records):
                raise RecordStoreError(f"Record {record.id} already exists")
            if any(r.shareable_id == record.shareable_id for r in self._records):
                raise RecordStoreError(f"Shareable id {record.shareable_id} already in use")
            self._records.append(record.model_copy(deep=True))
            try:
                self._persist()
            except RecordStoreError:
                self._records.pop()
                raise
        logger.debug("Stored record %s for owner %s", record.id, record.owner_id)
        return record

    def get(self, owner_id: str, record_id: str) -> Optional[FormRecord]:
        for r in self._snapshot():
            if r.id == record_id and r.owner_id == owner_id:
                return r
        return None

    def get_by_shareable_id(self, shareable_id: str) -> Optional[FormRecord]:
        for r in self._snapshot():
            if r.shareable_id == shareable_id:
                return r
        return None

    def list_for_owner(self, owner_id: str) -> List[FormRecord]:
        return _newest_first([r for r in self._snapshot() if r.owner_id == owner_id])

    def delete(self, owner_id: str, record_id: str) -> bool:
        with self._lock:
            for idx, r in enumerate(self._records):
                if r.id == record_id and r.owner_id == owner_id:
                    removed = self._records.pop(idx)
                    try:
                        self._persist()
                    except RecordStoreError:
                        self._records.insert(idx, removed)
                        raise
                    return True
        return False

    def list_missing_vectors(self, owner_id: Optional[str] = None) -> List[FormRecord]:
        return [
            r for r in self._snapshot()
            if not r.has_vector and (owner_id is None or r.owner_id == owner_id)
        ]

    def attach_vector(
        self,
        owner_id: str,
        record_id: str,
        vector: List[float],
        descriptive_text: str,
    ) -> bool:
        with self._lock:
            for r in self._records:
                if r.id == record_id and r.owner_id == owner_id:
                    if r.vector is not None:
                        return False
                    previous_text = r.descriptive_text
                    r.vector = list(vector)
                    r.descriptive_text = descriptive_text
                    try:
                        self._persist()
                    except RecordStoreError:
                        r.vector = None
                        r.descriptive_text = previous_text
                        raise
                    return True
        return False


class JsonFileRecordStore(InMemoryRecordStore):
    """
    Record store persisted as a JSON list.

    The whole file is rewritten (via a temp file) after every mutation.
    """

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path or STORE_PATH).expanduser()
        super().__init__(self._load())

    def _load(self) -> List[FormRecord]:
        if not self._path.exists():
            return []
        try:
            with open(self._path) as f:
                data = json.load(f)
            return [FormRecord.model_validate(item) for item in data]
        except (json.JSONDecodeError, IOError, ValueError) as e:
            raise RecordStoreError(f"Failed to load record store {self._path}: {e}") from e

    def _persist(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = [r.model_dump(mode="json", by_alias=True) for r in self._records]
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            with open(tmp_path, "w") as f:
                json.dump(data, f, indent=2)
            tmp_path.replace(self._path)
        except IOError as e:
            raise RecordStoreError(f"Failed to write record store {self._path}: {e}") from e


def create_record_store(backend: str = "json", path: Optional[str] = None) -> RecordStore:
    """Build a record store from config values"""
    if backend == "memory":
        return InMemoryRecordStore()
    if backend == "json":
        return JsonFileRecordStore(Path(path) if path else None)
    raise ValueError(f"Unsupported store backend: {backend}")
