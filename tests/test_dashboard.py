import pytest

from tracker.errors import StoreError
from tracker.models.record import ApplicationStatus
from tracker.services.dashboard import Creating, DashboardController, Draft, Editing, Idle
from tracker.services.record_store import RecordFields, RecordStoreAdapter


class Confirm:
    def __init__(self, answer):
        self.answer = answer
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        return self.answer


class FlakyAdapter(RecordStoreAdapter):
    """Adapter whose writes fail while ``failing`` is set."""

    failing = True

    def create(self, user_id, fields):
        if self.failing:
            raise StoreError("Failed to save internship. Please try again.")
        return super().create(user_id, fields)

    def delete(self, user_id, record_id):
        if self.failing:
            raise StoreError("Failed to delete internship. Please try again.")
        return super().delete(user_id, record_id)


@pytest.fixture()
def dashboard(signed_in, adapter):
    controller = DashboardController(signed_in, adapter, confirm=Confirm(True))
    controller.mount()
    yield controller
    controller.unmount()


def add(dashboard, company, role="Intern", **changes):
    dashboard.edit_draft(company=company, role=role, **changes)
    assert dashboard.submit()
    dashboard.refresh()


def test_mount_loads_empty_set(dashboard):
    assert dashboard.loading is False
    assert dashboard.records == ()
    assert dashboard.view.total == 0


def test_create_round_trips_through_subscription(dashboard):
    dashboard.edit_draft(company="  Acme ", role=" SWE Intern ", notes="  referral  ")
    assert isinstance(dashboard.form, Creating)
    assert dashboard.submit()
    assert isinstance(dashboard.form, Idle)

    # Nothing in the cache until the next snapshot arrives.
    assert dashboard.records == ()
    dashboard.refresh()
    (record,) = dashboard.records
    assert record.company == "Acme"
    assert record.role == "SWE Intern"
    assert record.notes == "referral"
    assert record.status is ApplicationStatus.APPLIED


def test_blank_company_or_role_is_rejected(dashboard, memory_store):
    dashboard.edit_draft(company="   ", role="SWE")
    assert not dashboard.submit()
    assert dashboard.error == "Please enter both company and role."
    assert isinstance(dashboard.form, Creating)
    assert memory_store.collections == {}


def test_submit_requires_a_user(session, adapter, memory_store):
    session.restore(None)
    controller = DashboardController(session, adapter)
    controller.mount()
    controller.edit_draft(company="Acme", role="SWE")
    assert not controller.submit()
    assert controller.error == "You must be logged in to add or edit internships."
    assert memory_store.collections == {}


def test_edit_seeds_form_from_cache_and_updates(dashboard):
    add(dashboard, "Acme", "SWE", notes="first")
    record = dashboard.records[0]

    assert dashboard.begin_edit(record.id)
    assert dashboard.form == Editing(record.id, Draft("Acme", "SWE", ApplicationStatus.APPLIED, "first"))

    dashboard.edit_draft(status=ApplicationStatus.INTERVIEW)
    assert isinstance(dashboard.form, Editing)
    assert dashboard.submit()
    dashboard.refresh()

    (updated,) = dashboard.records
    assert updated.id == record.id
    assert updated.status is ApplicationStatus.INTERVIEW
    assert updated.created_at == record.created_at


def test_begin_edit_unknown_record(dashboard):
    assert not dashboard.begin_edit("missing")
    assert isinstance(dashboard.form, Idle)


def test_cancel_clears_form(dashboard):
    add(dashboard, "Acme")
    dashboard.begin_edit(dashboard.records[0].id)
    dashboard.cancel()
    assert dashboard.form == Idle()


def test_delete_requires_confirmation(signed_in, adapter):
    confirm = Confirm(False)
    controller = DashboardController(signed_in, adapter, confirm=confirm)
    controller.mount()
    add(controller, "Acme")

    assert not controller.request_delete(controller.records[0].id)
    assert confirm.prompts == ["Delete this internship?"]
    controller.refresh()
    assert len(controller.records) == 1

    confirm.answer = True
    assert controller.request_delete(controller.records[0].id)
    controller.refresh()
    assert controller.records == ()
    controller.unmount()


def test_delete_without_user_is_ignored(session, adapter):
    confirm = Confirm(True)
    session.restore(None)
    controller = DashboardController(session, adapter, confirm=confirm)
    assert not controller.request_delete("r1")
    assert confirm.prompts == []


def test_store_failures_set_error_and_keep_state(signed_in, memory_store):
    adapter = FlakyAdapter(memory_store)
    controller = DashboardController(signed_in, adapter, confirm=Confirm(True))
    controller.mount()

    controller.edit_draft(company="Acme", role="SWE")
    assert not controller.submit()
    assert controller.error == "Failed to save internship. Please try again."
    assert controller.saving is False
    assert isinstance(controller.form, Creating)

    adapter.failing = False
    assert controller.submit()
    assert controller.error is None
    controller.refresh()

    adapter.failing = True
    assert not controller.request_delete(controller.records[0].id)
    assert controller.error == "Failed to delete internship. Please try again."
    controller.refresh()
    assert len(controller.records) == 1


def test_submit_is_ignored_while_saving(dashboard, memory_store):
    dashboard.edit_draft(company="Acme", role="SWE")
    dashboard.saving = True
    assert not dashboard.submit()
    assert memory_store.collections == {}


def test_selections_drive_the_view(dashboard):
    add(dashboard, "Zen", status=ApplicationStatus.OFFER)
    add(dashboard, "Acme")
    add(dashboard, "Beta", notes="remote")

    assert [r.company for r in dashboard.view.items] == ["Beta", "Acme", "Zen"]

    dashboard.set_sort("company-az")
    assert [r.company for r in dashboard.view.items] == ["Acme", "Beta", "Zen"]

    dashboard.set_status_filter("offer")
    assert [r.company for r in dashboard.view.items] == ["Zen"]
    assert dashboard.view.counts["applied"] == 2

    dashboard.set_status_filter("all")
    dashboard.set_search("REMOTE")
    assert [r.company for r in dashboard.view.items] == ["Beta"]

    with pytest.raises(ValueError):
        dashboard.set_sort("random")
    with pytest.raises(ValueError):
        dashboard.set_status_filter("ghosted")


def test_user_switch_replaces_subscription(dashboard, signed_in, adapter, memory_store):
    add(dashboard, "Acme")
    ada_id = signed_in.user.id
    assert memory_store.listeners.count(f"users/{ada_id}/internships") == 1

    dashboard.sign_out()
    assert dashboard.records == ()
    assert memory_store.listeners.count(f"users/{ada_id}/internships") == 0

    signed_in.sign_up("grace@example.com", "secret123")
    grace_id = signed_in.user.id
    assert dashboard.records == ()
    assert memory_store.listeners.count(f"users/{grace_id}/internships") == 1

    adapter.create(ada_id, RecordFields(company="Leak", role="x"))
    dashboard.refresh()
    assert dashboard.records == ()


def test_unmount_releases_subscription(signed_in, adapter, memory_store):
    controller = DashboardController(signed_in, adapter)
    controller.mount()
    path = f"users/{signed_in.user.id}/internships"
    assert memory_store.listeners.count(path) == 1
    controller.unmount()
    assert memory_store.listeners.count(path) == 0
    signed_in.sign_out()
    assert controller.records == ()


def test_subscription_failure_is_reported(signed_in):
    class Offline:
        def listen(self, path, on_snapshot, on_error=None):
            raise ConnectionError("offline")

    controller = DashboardController(signed_in, RecordStoreAdapter(Offline()))
    controller.mount()
    assert controller.error == "Failed to load internships."
    assert controller.loading is False
