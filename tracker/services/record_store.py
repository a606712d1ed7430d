from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from tracker.config import settings
from tracker.db import SessionLocal
from tracker.errors import StoreError
from tracker.models.record import ApplicationRecord, ApplicationStatus, RecordSet
from tracker.models.sql_store import SqlDocumentStore
from tracker.models.store import DocumentSnapshot, store
from tracker.utils.logger import get_logger

logger = get_logger(__name__)

_CLOSED = object()


def collection_path(user_id: str) -> str:
    return f"users/{user_id}/internships"


@dataclass(frozen=True)
class RecordFields:
    company: str
    role: str
    status: ApplicationStatus = ApplicationStatus.APPLIED
    notes: str = ""

    def to_document(self) -> Dict[str, Any]:
        return {
            "company": self.company,
            "role": self.role,
            "status": ApplicationStatus.coerce(self.status).value,
            "notes": self.notes,
        }


class Subscription:
    """Live view of one user's records as a lazy sequence of snapshots.

    Every snapshot is the complete record set and replaces the previous one.
    ``close()`` releases the backend listener; nothing is delivered after it.
    """

    def __init__(self, backend: Any, user_id: str) -> None:
        self.user_id = user_id
        self.closed = False
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=1)
        self._lock = threading.Lock()
        try:
            self._unsubscribe = backend.listen(collection_path(user_id), self._on_snapshot, self._on_error)
        except Exception as exc:
            logger.exception("Failed to subscribe to records of %s", user_id)
            raise StoreError("Failed to load internships.") from exc
        logger.debug("Subscribed to records of %s", user_id)

    def _on_snapshot(self, documents: DocumentSnapshot) -> None:
        if self.closed:
            return
        self._replace_pending(tuple(ApplicationRecord.from_document(doc_id, data) for doc_id, data in documents))

    def _on_error(self, exc: Exception) -> None:
        logger.error("Record subscription for %s failed: %s", self.user_id, exc)
        if not self.closed:
            self._replace_pending(StoreError("Failed to load internships."))

    def _replace_pending(self, item: Any) -> None:
        # Only the newest undelivered item is kept.
        with self._lock:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                pass
            self._queue.put_nowait(item)

    def __iter__(self) -> Iterator[RecordSet]:
        return self

    def __next__(self) -> RecordSet:
        if self.closed:
            raise StopIteration
        item = self._queue.get()
        if item is _CLOSED or self.closed:
            raise StopIteration
        if isinstance(item, StoreError):
            raise item
        return item

    def poll(self) -> Optional[RecordSet]:
        """Return the newest undelivered snapshot, or None when there is none."""
        latest: Optional[RecordSet] = None
        while not self.closed:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is _CLOSED:
                break
            if isinstance(item, StoreError):
                raise item
            latest = item
        return latest

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._unsubscribe()
        self._replace_pending(_CLOSED)
        logger.debug("Released record subscription of %s", self.user_id)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class RecordStoreAdapter:
    def __init__(self, backend: Any = store) -> None:
        self.backend = backend

    def subscribe(self, user_id: str) -> Subscription:
        return Subscription(self.backend, user_id)

    def create(self, user_id: str, fields: RecordFields) -> str:
        try:
            record_id = self.backend.add(collection_path(user_id), fields.to_document())
        except Exception as exc:
            logger.exception("Error saving internship for %s", user_id)
            raise StoreError("Failed to save internship. Please try again.") from exc
        logger.info("Created internship %s for %s", record_id, user_id)
        return record_id

    def update(self, user_id: str, record_id: str, fields: RecordFields) -> None:
        try:
            self.backend.update(collection_path(user_id), record_id, fields.to_document())
        except Exception as exc:
            logger.exception("Error updating internship %s for %s", record_id, user_id)
            raise StoreError("Failed to save internship. Please try again.") from exc

    def delete(self, user_id: str, record_id: str) -> None:
        try:
            self.backend.delete(collection_path(user_id), record_id)
        except Exception as exc:
            logger.exception("Error deleting internship %s for %s", record_id, user_id)
            raise StoreError("Failed to delete internship. Please try again.") from exc


def default_backend() -> Any:
    if settings.DATABASE_URL:
        return SqlDocumentStore(SessionLocal)
    return store


record_store = RecordStoreAdapter(default_backend())
