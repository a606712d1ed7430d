import pytest

from tracker.errors import StoreError
from tracker.models.record import ApplicationStatus
from tracker.services.record_store import RecordFields, RecordStoreAdapter, collection_path
from tracker.services.view_state import SortOption, derive_view


class BrokenBackend:
    def listen(self, path, on_snapshot, on_error=None):
        raise ConnectionError("offline")

    def add(self, path, data):
        raise PermissionError("denied")

    def update(self, path, doc_id, data):
        raise ConnectionError("offline")

    def delete(self, path, doc_id):
        raise ConnectionError("offline")


def test_collection_is_scoped_by_user():
    assert collection_path("u1") == "users/u1/internships"


def test_create_writes_fields_and_server_timestamp(adapter, memory_store):
    record_id = adapter.create(
        "u1", RecordFields(company="Acme", role="SWE", status=ApplicationStatus.INTERVIEW, notes="n")
    )
    (doc_id, data), = memory_store.snapshot("users/u1/internships")
    assert doc_id == record_id
    assert data["company"] == "Acme"
    assert data["status"] == "interview"
    assert data["createdAt"] is not None


def test_update_overwrites_editable_fields_only(adapter, memory_store):
    record_id = adapter.create("u1", RecordFields(company="Acme", role="SWE"))
    created_at = memory_store.snapshot("users/u1/internships")[0][1]["createdAt"]
    adapter.update("u1", record_id, RecordFields(company="Acme Corp", role="SWE", status=ApplicationStatus.OFFER))
    (doc_id, data), = memory_store.snapshot("users/u1/internships")
    assert doc_id == record_id
    assert data["company"] == "Acme Corp"
    assert data["status"] == "offer"
    assert data["createdAt"] == created_at


def test_subscription_delivers_full_snapshots(adapter):
    subscription = adapter.subscribe("u1")
    assert next(subscription) == ()

    first = adapter.create("u1", RecordFields(company="Acme", role="SWE"))
    assert [record.id for record in next(subscription)] == [first]
    second = adapter.create("u1", RecordFields(company="Zen", role="PM"))
    adapter.create("u2", RecordFields(company="Other", role="x"))
    assert [record.id for record in next(subscription)] == [second, first]

    adapter.delete("u1", first)
    assert [record.id for record in subscription.poll()] == [second]
    assert subscription.poll() is None
    subscription.close()


def test_poll_returns_latest_snapshot(adapter):
    with adapter.subscribe("u1") as subscription:
        adapter.create("u1", RecordFields(company="Acme", role="SWE"))
        adapter.create("u1", RecordFields(company="Zen", role="PM"))
        latest = subscription.poll()
    assert [record.company for record in latest] == ["Zen", "Acme"]


def test_only_the_newest_pending_snapshot_is_kept(adapter):
    subscription = adapter.subscribe("u1")
    for company in ["Acme", "Beta", "Zen"]:
        adapter.create("u1", RecordFields(company=company, role="SWE"))
    assert subscription._queue.qsize() == 1
    assert [record.company for record in next(subscription)] == ["Zen", "Beta", "Acme"]
    assert subscription.poll() is None
    subscription.close()


def test_close_releases_listener_and_stops_iteration(adapter, memory_store):
    subscription = adapter.subscribe("u1")
    assert memory_store.listeners.count("users/u1/internships") == 1

    subscription.close()
    subscription.close()
    assert memory_store.listeners.count("users/u1/internships") == 0

    adapter.create("u1", RecordFields(company="Acme", role="SWE"))
    assert list(subscription) == []
    assert subscription.poll() is None


def test_stored_bad_status_is_coerced(adapter, memory_store):
    memory_store.add("users/u1/internships", {"company": "Acme", "role": "SWE", "status": "ghosted"})
    with adapter.subscribe("u1") as subscription:
        (record,) = subscription.poll()
    assert record.status is ApplicationStatus.APPLIED


@pytest.mark.parametrize("sort", list(SortOption))
def test_malformed_documents_still_derive_a_view(adapter, memory_store, sort):
    path = "users/u1/internships"
    memory_store.add(path, {"company": 42, "role": "Intern", "status": "offer"})
    memory_store.add(path, {"company": "Acme", "role": None, "notes": 7, "status": "applied"})
    with adapter.subscribe("u1") as subscription:
        records = subscription.poll()
    view = derive_view(records, sort=sort)
    assert sorted(record.company for record in view.items) == ["42", "Acme"]
    assert [record.company for record in derive_view(records, sort=sort, search="4").items] == ["42"]
    assert view.counts["offer"] == 1
    assert view.total == 2


def test_backend_errors_become_store_errors():
    adapter = RecordStoreAdapter(BrokenBackend())
    fields = RecordFields(company="Acme", role="SWE")
    with pytest.raises(StoreError):
        adapter.subscribe("u1")
    with pytest.raises(StoreError) as excinfo:
        adapter.create("u1", fields)
    assert excinfo.value.message == "Failed to save internship. Please try again."
    with pytest.raises(StoreError):
        adapter.update("u1", "r1", fields)
    with pytest.raises(StoreError) as excinfo:
        adapter.delete("u1", "r1")
    assert excinfo.value.message == "Failed to delete internship. Please try again."


def test_update_of_missing_record_is_a_store_error(adapter):
    with pytest.raises(StoreError):
        adapter.update("u1", "missing", RecordFields(company="Acme", role="SWE"))


class CapturingBackend:
    def listen(self, path, on_snapshot, on_error=None):
        self.on_snapshot, self.on_error = on_snapshot, on_error
        on_snapshot([])
        return lambda: None


def test_listener_errors_surface_from_subscription():
    backend = CapturingBackend()
    subscription = RecordStoreAdapter(backend).subscribe("u1")
    assert subscription.poll() == ()
    backend.on_error(ConnectionError("stream dropped"))
    with pytest.raises(StoreError):
        subscription.poll()
    subscription.close()
