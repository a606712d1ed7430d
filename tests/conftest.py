from datetime import datetime, timedelta, timezone
import itertools

import pytest

from tracker.models import sql_store as sql_store_module
from tracker.models import store as store_module
from tracker.models.store import InMemoryStore
from tracker.services.auth import AuthService
from tracker.services.record_store import RecordStoreAdapter
from tracker.services.session import Session

EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clock(monkeypatch):
    """Server clock that advances one second per reading."""
    ticks = itertools.count()

    def fake_now():
        return EPOCH + timedelta(seconds=next(ticks))

    monkeypatch.setattr(store_module, "utcnow", fake_now)
    monkeypatch.setattr(sql_store_module, "utcnow", fake_now)
    return fake_now


@pytest.fixture()
def memory_store():
    return InMemoryStore()


@pytest.fixture()
def auth(memory_store):
    return AuthService(memory_store)


@pytest.fixture()
def adapter(memory_store):
    return RecordStoreAdapter(memory_store)


@pytest.fixture()
def session(auth):
    return Session(auth)


@pytest.fixture()
def signed_in(session):
    session.restore(None)
    session.sign_up("ada@example.com", "secret123")
    return session
