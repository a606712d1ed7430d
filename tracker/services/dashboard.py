from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Optional, Union

from tracker.errors import AuthError, AuthRequiredError, StoreError, ValidationError
from tracker.models.record import ApplicationRecord, ApplicationStatus, RecordSet
from tracker.models.store import User
from tracker.services.record_store import RecordFields, RecordStoreAdapter, Subscription, record_store
from tracker.services.session import Session, SessionState
from tracker.services.view_state import ALL, SortOption, StatusFilter, ViewState, derive_view, parse_status_filter
from tracker.utils.logger import get_logger

logger = get_logger(__name__)

DELETE_PROMPT = "Delete this internship?"


@dataclass(frozen=True)
class Draft:
    company: str = ""
    role: str = ""
    status: ApplicationStatus = ApplicationStatus.APPLIED
    notes: str = ""

    @classmethod
    def from_record(cls, record: ApplicationRecord) -> "Draft":
        return cls(company=record.company, role=record.role, status=record.status, notes=record.notes or "")

    def to_fields(self) -> RecordFields:
        company, role = self.company.strip(), self.role.strip()
        if not company or not role:
            raise ValidationError()
        return RecordFields(
            company=company,
            role=role,
            status=ApplicationStatus.coerce(self.status),
            notes=self.notes.strip(),
        )


@dataclass(frozen=True)
class Idle:
    draft: Draft = Draft()


@dataclass(frozen=True)
class Creating:
    draft: Draft


@dataclass(frozen=True)
class Editing:
    record_id: str
    draft: Draft


FormState = Union[Idle, Creating, Editing]


class DashboardController:
    """State behind the dashboard page.

    The record cache is written only by the live subscription; form submits
    and deletes go to the store and come back through the next snapshot.
    """

    def __init__(
        self,
        session: Session,
        store: RecordStoreAdapter = record_store,
        confirm: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self.session = session
        self.store = store
        self.confirm = confirm or (lambda prompt: False)

        self.records: RecordSet = ()
        self.loading = True
        self.saving = False
        self.error: Optional[str] = None
        self.form: FormState = Idle()

        self.status_filter: StatusFilter = ALL
        self.search = ""
        self.sort = SortOption.NEWEST

        self._user_id: Optional[str] = None
        self._subscription: Optional[Subscription] = None
        self._unsubscribe_session: Optional[Callable[[], None]] = None

    # -- lifecycle ---------------------------------------------------------

    def mount(self) -> None:
        if self._unsubscribe_session is None:
            self._unsubscribe_session = self.session.subscribe(self._on_session)

    def unmount(self) -> None:
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None
        self._release()

    def _release(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self._user_id = None
        self.records = ()

    def _on_session(self, state: SessionState) -> None:
        if state.resolving:
            return
        user_id = state.user.id if state.user else None
        if user_id is not None and user_id == self._user_id:
            return
        self._release()
        if user_id is None:
            self.loading = False
            return
        self.loading = True
        try:
            self._subscription = self.store.subscribe(user_id)
        except StoreError as exc:
            self.error = exc.message
            self.loading = False
            return
        self._user_id = user_id
        self.refresh()

    def refresh(self) -> RecordSet:
        if self._subscription is None:
            return self.records
        try:
            snapshot = self._subscription.poll()
        except StoreError as exc:
            self.error = exc.message
            self.loading = False
            return self.records
        if snapshot is not None:
            self.records = snapshot
            self.loading = False
        return self.records

    # -- form --------------------------------------------------------------

    def start_create(self) -> None:
        self.form = Creating(Draft())

    def edit_draft(self, **changes) -> FormState:
        draft = replace(self.form.draft, **changes)
        if isinstance(self.form, Editing):
            self.form = Editing(self.form.record_id, draft)
        else:
            self.form = Creating(draft)
        return self.form

    def begin_edit(self, record_id: str) -> bool:
        record = next((item for item in self.records if item.id == record_id), None)
        if record is None:
            return False
        self.form = Editing(record.id, Draft.from_record(record))
        return True

    def cancel(self) -> None:
        self.form = Idle()

    def _require_user(self) -> User:
        user = self.session.user
        if user is None:
            raise AuthRequiredError()
        return user

    def submit(self) -> bool:
        """Create or update from the form; returns True once the write is issued."""
        if self.saving:
            return False
        self.error = None
        try:
            fields = self.form.draft.to_fields()
            user = self._require_user()
        except (ValidationError, AuthRequiredError) as exc:
            self.error = exc.message
            return False

        self.saving = True
        try:
            if isinstance(self.form, Editing):
                self.store.update(user.id, self.form.record_id, fields)
            else:
                self.store.create(user.id, fields)
        except StoreError as exc:
            self.error = exc.message
            return False
        finally:
            self.saving = False
        self.form = Idle()
        return True

    def request_delete(self, record_id: str) -> bool:
        user = self.session.user
        if user is None:
            return False
        if not self.confirm(DELETE_PROMPT):
            return False
        try:
            self.store.delete(user.id, record_id)
        except StoreError as exc:
            self.error = exc.message
            return False
        return True

    # -- selections --------------------------------------------------------

    def set_status_filter(self, value: StatusFilter) -> None:
        self.status_filter = parse_status_filter(value)

    def set_search(self, value: str) -> None:
        self.search = value

    def set_sort(self, value: Union[str, SortOption]) -> None:
        self.sort = SortOption(value)

    @property
    def view(self) -> ViewState:
        return derive_view(self.records, self.status_filter, self.search, self.sort)

    def sign_out(self) -> None:
        try:
            self.session.sign_out()
        except AuthError:
            logger.exception("Error signing out")
