"""
Entity list view: the page-level workflow for one resource kind.

States:

    idle -> loading -> loaded | load_error

with two overlay sub-states that never trigger a refetch when dismissed:
- a form is open (create or edit)
- a delete is waiting for confirmation

Every user action maps to one method. Failures never escape: they become
notifications (drained and shown by the UI) and the view stays usable.

Calls are blocking and issued one at a time from the UI loop. Nothing sequences
or cancels list fetches; if fetches were ever issued concurrently, whichever
response arrived last would win.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from enrolldesk.api import CourseClient, InstructorClient, ResourceClient, StudentClient
from enrolldesk.errors import ApiError, AuthError, AuthRequired, ConsoleError, NetworkError, ValidationError
from enrolldesk.forms import AuthForm, EntityForm, schema_for
from enrolldesk.logging_config import get_logger
from enrolldesk.model import COURSE, INSTRUCTOR, Record, can_manage
from enrolldesk.session import SessionStore

log = get_logger("ui")

IDLE = "idle"
LOADING = "loading"
LOADED = "loaded"
LOAD_ERROR = "load_error"

CHECK_FIELDS = "Please check all required fields"


@dataclass(frozen=True)
class Notification:
    level: str  # success | info | warning | error
    text: str


def failure_text(exc: ConsoleError, fallback: str) -> str:
    """
    Server-reported reason when there is one, otherwise the generic fallback.
    Transport and 401 failures always get the generic text.
    """
    if isinstance(exc, (NetworkError, AuthRequired)):
        return fallback
    if isinstance(exc, ApiError) and exc.detail:
        return exc.detail
    return fallback


class ListView:
    def __init__(
        self,
        client: ResourceClient,
        store: SessionStore,
        page_size: int = 10,
        today: date | None = None,
    ) -> None:
        self.client = client
        self.kind = client.kind
        self.store = store
        self.today = today

        self.state = IDLE
        self.loading = False
        self.rows: list[Record] = []
        self.page = 1
        self.page_size = page_size
        self.total = 0
        self.search_text = ""

        self.form: Optional[EntityForm] = None
        self.editing: Optional[Record] = None
        self.editing_profile = False
        self.delete_target: Optional[Record] = None

        self.notifications: list[Notification] = []

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def notify(self, level: str, text: str) -> None:
        self.notifications.append(Notification(level, text))
        if level == "error":
            log.warning("[%s] %s", self.kind.plural, text)
        else:
            log.info("[%s] %s", self.kind.plural, text)

    def drain_notifications(self) -> list[Notification]:
        out, self.notifications = self.notifications, []
        return out

    def _report_invalid(self, exc: ValidationError) -> None:
        self.notify("error", CHECK_FIELDS)
        for message in exc.errors.values():
            self.notify("error", message)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def fetch(self, page: int, page_size: int, search: str) -> bool:
        """
        Load one page. On failure the previous rows stay and state is load_error.
        """
        self.state = LOADING
        self.loading = True
        try:
            result = self.client.list(page=page, page_size=page_size, search=search)
        except ConsoleError as exc:
            log.error("fetching %s failed: %s", self.kind.plural, exc.message)
            self.state = LOAD_ERROR
            self.notify("error", f"Failed to fetch {self.kind.plural}")
            return False
        finally:
            self.loading = False

        self.rows = result.items
        self.page = result.page
        self.page_size = page_size
        self.total = result.total
        self.state = LOADED
        return True

    def mount(self) -> bool:
        return self.fetch(1, self.page_size, "")

    def search(self, text: str) -> bool:
        self.search_text = (text or "").strip()
        return self.fetch(1, self.page_size, self.search_text)

    def change_page(self, page: int, page_size: int | None = None) -> bool:
        size = page_size if page_size is not None else self.page_size
        if page < 1 or size < 1:
            self.notify("warning", "Page and page size must be positive numbers")
            return False
        return self.fetch(page, size, self.search_text)

    def refresh(self) -> bool:
        return self.fetch(self.page, self.page_size, self.search_text)

    @property
    def page_count(self) -> int:
        return max(1, -(-self.total // self.page_size)) if self.page_size > 0 else 1

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def can_manage(self, record: Record) -> bool:
        return can_manage(self.store.current_principal(), record, self.kind)

    # ------------------------------------------------------------------
    # Create / edit
    # ------------------------------------------------------------------

    def open_create(self) -> bool:
        if self.kind is COURSE and not self.store.is_authenticated():
            self.notify("warning", "Please login as an instructor to create courses")
            return False
        if self.kind is INSTRUCTOR:
            self.notify("info", "Please use the Register option to create new instructors")
            return False
        self.editing_profile = False
        self.editing = None
        self.form = EntityForm(schema_for(self.kind), today=self.today)
        return True

    def open_edit(self, record: Record) -> bool:
        if not self.can_manage(record):
            self.notify("warning", f"You can only edit your own {self.kind.plural}")
            return False
        self.editing = record
        self.editing_profile = False
        self.form = EntityForm(schema_for(self.kind), record=record, today=self.today)
        return True

    def _save(self, payload: dict[str, Any]) -> Record:
        if self.editing_profile and isinstance(self.client, InstructorClient):
            updated = self.client.update_profile(payload)
            self.store.update_principal(updated if isinstance(updated, dict) else payload)
            return updated
        if self.editing is not None:
            return self.client.update(self.kind.record_id(self.editing), payload)
        return self.client.create(payload)

    def submit_form(self, values: dict[str, Any] | None = None) -> bool:
        """
        Validate + send the open form. Success closes it and refetches the
        current page; any failure keeps it open for another try.
        """
        form = self.form
        if form is None:
            return False
        if values:
            form.update(values)

        try:
            form.submit(self._save)
        except ValidationError as exc:
            self._report_invalid(exc)
            return False
        except ConsoleError as exc:
            self.notify("error", failure_text(exc, "Operation failed"))
            return False

        verb = "updated" if self.editing is not None else "created"
        label = "Profile" if self.editing_profile else self.kind.label
        self.form = None
        self.editing = None
        self.editing_profile = False
        self.notify("success", f"{label} {verb} successfully")
        self.refresh()
        return True

    def close_form(self) -> None:
        if self.form is not None:
            self.form.cancel()
        self.form = None
        self.editing = None
        self.editing_profile = False

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def request_delete(self, record: Record) -> bool:
        if not self.can_manage(record):
            self.notify("warning", f"You can only delete your own {self.kind.plural}")
            return False
        self.delete_target = record
        return True

    def cancel_delete(self) -> None:
        self.delete_target = None

    def confirm_delete(self) -> bool:
        target = self.delete_target
        self.delete_target = None
        if target is None:
            return False

        try:
            self.client.delete_by_id(self.kind.record_id(target))
        except ConsoleError as exc:
            self.notify("error", failure_text(exc, f"Failed to delete {self.kind.name}"))
            return False

        self.notify("success", f"{self.kind.label} deleted successfully")
        # Same page number even if it is now past the end.
        self.refresh()
        return True

    # ------------------------------------------------------------------
    # Related data (sub-queries)
    # ------------------------------------------------------------------

    def related(self, record: Record) -> dict[str, Any]:
        """
        Fetch the resource-specific extras shown in the detail view.
        Each failing sub-query is reported and skipped.
        """
        record_id = self.kind.record_id(record)
        queries: dict[str, Any] = {}
        if isinstance(self.client, StudentClient):
            queries["enrollments"] = lambda: self.client.enrollments(record_id)
        elif isinstance(self.client, CourseClient):
            queries["enrollments"] = lambda: self.client.enrollments(record_id)
            queries["available_spots"] = lambda: self.client.available_spots(record_id)
        elif isinstance(self.client, InstructorClient):
            queries["courses"] = lambda: self.client.courses(record_id)
            queries["students"] = lambda: self.client.students(record_id)

        out: dict[str, Any] = {}
        for name, call in queries.items():
            try:
                out[name] = call()
            except ConsoleError as exc:
                self.notify("error", failure_text(exc, f"Failed to load {name.replace('_', ' ')}"))
        return out

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, credentials: dict[str, Any]) -> bool:
        try:
            AuthForm(self.store).login(credentials)
        except ValidationError as exc:
            self._report_invalid(exc)
            return False
        except AuthError as exc:
            self.notify("error", exc.message)
            return False
        if not self.store.is_authenticated():
            self.notify("error", "The session could not be saved; you are not logged in.")
            return False
        self.notify("success", "Login successful")
        self.refresh()
        return True

    def register(self, profile: dict[str, Any]) -> bool:
        try:
            AuthForm(self.store, mode="register").register(profile)
        except ValidationError as exc:
            self._report_invalid(exc)
            return False
        except AuthError as exc:
            self.notify("error", exc.message)
            return False
        self.notify("success", "Registration successful! Please login.")
        self.refresh()
        return True

    def logout(self) -> bool:
        if self.store.logout():
            self.notify("success", "Logged out successfully")
            ok = True
        else:
            self.notify("error", "Logged out for now, but the saved session could not be removed")
            ok = False
        self.refresh()
        return ok

    # ------------------------------------------------------------------
    # Own profile (instructors view only)
    # ------------------------------------------------------------------

    def open_profile(self) -> bool:
        """
        Open the instructor form in edit mode on the logged-in principal.
        Saved through PUT /instructors/profile instead of /instructors/{id}.
        """
        principal = self.store.current_principal()
        if not isinstance(self.client, InstructorClient) or not principal:
            self.notify("warning", "Please login to edit your profile")
            return False
        self.editing = principal
        self.editing_profile = True
        self.form = EntityForm(schema_for(INSTRUCTOR), record=principal, today=self.today)
        return True

    def analytics(self) -> Optional[Any]:
        if not isinstance(self.client, InstructorClient) or not self.store.is_authenticated():
            self.notify("warning", "Please login to see your analytics")
            return None
        try:
            return self.client.analytics()
        except ConsoleError as exc:
            self.notify("error", failure_text(exc, "Failed to load analytics"))
            return None
