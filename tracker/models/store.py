from __future__ import annotations

import hashlib
import hmac
import secrets
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from tracker.utils.logger import get_logger

logger = get_logger(__name__)

Document = Dict[str, Any]
DocumentSnapshot = List[Tuple[str, Document]]
SnapshotListener = Callable[[DocumentSnapshot], None]
ErrorListener = Callable[[Exception], None]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    id: str
    email: str
    password_hash: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


def _timestamp_key(item: Tuple[str, Document]) -> float:
    created_at = item[1].get("createdAt")
    if created_at is None:
        return 0.0
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return created_at.timestamp()


def order_newest_first(documents: DocumentSnapshot) -> DocumentSnapshot:
    """Order documents by ``createdAt`` descending, unstamped ones last."""
    return sorted(documents, key=_timestamp_key, reverse=True)


class ListenerRegistry:
    """Per-collection snapshot listeners shared by the document stores."""

    def __init__(self) -> None:
        self._listeners: Dict[str, Dict[str, Tuple[SnapshotListener, Optional[ErrorListener]]]] = {}
        self._lock = threading.Lock()

    def add(self, path: str, on_snapshot: SnapshotListener, on_error: Optional[ErrorListener]) -> Callable[[], None]:
        token = str(uuid.uuid4())
        with self._lock:
            self._listeners.setdefault(path, {})[token] = (on_snapshot, on_error)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(path, {})
                listeners.pop(token, None)
                if not listeners:
                    self._listeners.pop(path, None)

        return unsubscribe

    def count(self, path: str) -> int:
        with self._lock:
            return len(self._listeners.get(path, {}))

    def notify(self, path: str, snapshot_factory: Callable[[], DocumentSnapshot]) -> None:
        with self._lock:
            listeners = list(self._listeners.get(path, {}).values())
        if not listeners:
            return
        try:
            snapshot = snapshot_factory()
        except Exception as exc:
            logger.exception("Failed to build snapshot for %s", path)
            for _, on_error in listeners:
                if on_error is None:
                    continue
                try:
                    on_error(exc)
                except Exception:
                    logger.exception("Error listener for %s raised", path)
            return
        for on_snapshot, _ in listeners:
            try:
                on_snapshot(snapshot)
            except Exception:
                logger.exception("Snapshot listener for %s raised", path)


class InMemoryStore:
    """Very small in-memory auth provider and document store."""

    def __init__(self) -> None:
        self.users: Dict[str, User] = {}
        self.users_by_email: Dict[str, str] = {}
        self.tokens: Dict[str, Tuple[str, datetime]] = {}
        self.refresh_tokens: Dict[str, Tuple[str, datetime]] = {}
        self.collections: Dict[str, Dict[str, Document]] = {}
        self.listeners = ListenerRegistry()
        self._lock = threading.RLock()

    # -- auth --------------------------------------------------------------

    def hash_password(self, password: str, salt: Optional[str] = None) -> str:
        salt = salt or secrets.token_hex(16)
        digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), 100_000)
        return f"{salt}${digest.hex()}"

    def create_user(self, email: str, password: str) -> User:
        email = email.lower()
        with self._lock:
            if email in self.users_by_email:
                raise ValueError("User already exists")
            user_id = str(uuid.uuid4())
            user = User(id=user_id, email=email, password_hash=self.hash_password(password))
            self.users[user_id] = user
            self.users_by_email[email] = user_id
        return user

    def verify_user(self, email: str, password: str) -> Optional[User]:
        user_id = self.users_by_email.get(email.lower())
        if not user_id:
            return None
        user = self.users[user_id]
        salt, _ = user.password_hash.split("$", 1)
        if not hmac.compare_digest(user.password_hash, self.hash_password(password, salt)):
            return None
        return user

    def issue_tokens(self, user_id: str, access_ttl: timedelta, refresh_ttl: timedelta) -> TokenPair:
        access_token = secrets.token_urlsafe(32)
        refresh_token = secrets.token_urlsafe(32)
        access_expires = utcnow() + access_ttl
        refresh_expires = utcnow() + refresh_ttl
        with self._lock:
            self.tokens[access_token] = (user_id, access_expires)
            self.refresh_tokens[refresh_token] = (user_id, refresh_expires)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_expires_at=access_expires,
            refresh_expires_at=refresh_expires,
        )

    def refresh(self, refresh_token: str, access_ttl: timedelta, refresh_ttl: timedelta) -> Optional[TokenPair]:
        with self._lock:
            stored = self.refresh_tokens.pop(refresh_token, None)
        if not stored:
            return None
        user_id, expires_at = stored
        if utcnow() >= expires_at:
            return None
        return self.issue_tokens(user_id, access_ttl, refresh_ttl)

    def user_for_token(self, access_token: str) -> Optional[User]:
        stored = self.tokens.get(access_token)
        if not stored:
            return None
        user_id, expires_at = stored
        if utcnow() >= expires_at:
            # Expired access token, discard it.
            self.tokens.pop(access_token, None)
            return None
        return self.users.get(user_id)

    def revoke(self, access_token: str) -> None:
        self.tokens.pop(access_token, None)

    # -- documents ---------------------------------------------------------

    def add(self, path: str, data: Document) -> str:
        doc_id = uuid.uuid4().hex
        with self._lock:
            self.collections.setdefault(path, {})[doc_id] = {**data, "createdAt": utcnow()}
        self.listeners.notify(path, lambda: self.snapshot(path))
        return doc_id

    def update(self, path: str, doc_id: str, data: Document) -> None:
        with self._lock:
            document = self.collections.get(path, {}).get(doc_id)
            if document is None:
                raise KeyError(f"No document {doc_id} in {path}")
            document.update({key: value for key, value in data.items() if key != "createdAt"})
        self.listeners.notify(path, lambda: self.snapshot(path))

    def delete(self, path: str, doc_id: str) -> None:
        with self._lock:
            removed = self.collections.get(path, {}).pop(doc_id, None)
        if removed is not None:
            self.listeners.notify(path, lambda: self.snapshot(path))

    def snapshot(self, path: str) -> DocumentSnapshot:
        with self._lock:
            documents = [(doc_id, dict(data)) for doc_id, data in self.collections.get(path, {}).items()]
        return order_newest_first(documents)

    def listen(
        self, path: str, on_snapshot: SnapshotListener, on_error: Optional[ErrorListener] = None
    ) -> Callable[[], None]:
        unsubscribe = self.listeners.add(path, on_snapshot, on_error)
        on_snapshot(self.snapshot(path))
        return unsubscribe


store = InMemoryStore()
