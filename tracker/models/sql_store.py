from __future__ import annotations

import uuid
from datetime import timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from tracker.models.db_models import StoredDocument
from tracker.models.store import (
    Document,
    DocumentSnapshot,
    ErrorListener,
    ListenerRegistry,
    SnapshotListener,
    order_newest_first,
    utcnow,
)


class SqlDocumentStore:
    """Document store kept in a single SQL table.

    Listeners are notified after each committed write made through this
    instance; writes from other processes are not observed.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory
        self.listeners = ListenerRegistry()

    def _session(self) -> Session:
        return self.session_factory()

    def add(self, path: str, data: Document) -> str:
        doc_id = uuid.uuid4().hex
        payload = {key: value for key, value in data.items() if key != "createdAt"}
        with self._session() as db:
            db.add(StoredDocument(id=doc_id, collection=path, data=payload, created_at=utcnow()))
            db.commit()
        self.listeners.notify(path, lambda: self.snapshot(path))
        return doc_id

    def update(self, path: str, doc_id: str, data: Document) -> None:
        with self._session() as db:
            row = db.get(StoredDocument, doc_id)
            if row is None or row.collection != path:
                raise KeyError(f"No document {doc_id} in {path}")
            # Reassign so the JSON column registers the change.
            row.data = {**row.data, **{key: value for key, value in data.items() if key != "createdAt"}}
            db.commit()
        self.listeners.notify(path, lambda: self.snapshot(path))

    def delete(self, path: str, doc_id: str) -> None:
        with self._session() as db:
            row = db.get(StoredDocument, doc_id)
            if row is None or row.collection != path:
                return
            db.delete(row)
            db.commit()
        self.listeners.notify(path, lambda: self.snapshot(path))

    def snapshot(self, path: str) -> DocumentSnapshot:
        with self._session() as db:
            rows = db.query(StoredDocument).filter(StoredDocument.collection == path).all()
            documents = []
            for row in rows:
                created_at = row.created_at
                if created_at is not None and created_at.tzinfo is None:
                    created_at = created_at.replace(tzinfo=timezone.utc)
                documents.append((row.id, {**row.data, "createdAt": created_at}))
        return order_newest_first(documents)

    def listen(
        self, path: str, on_snapshot: SnapshotListener, on_error: Optional[ErrorListener] = None
    ) -> Callable[[], None]:
        unsubscribe = self.listeners.add(path, on_snapshot, on_error)
        try:
            snapshot = self.snapshot(path)
        except Exception:
            unsubscribe()
            raise
        on_snapshot(snapshot)
        return unsubscribe
