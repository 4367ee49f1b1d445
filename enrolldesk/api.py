"""
HTTP gateway to the enrollment API.

- ApiClient: one requests.Session, base URL, bearer token, status -> exception mapping
- ResourceClient: list / get / create / update / delete for one resource collection
- StudentClient, CourseClient, InstructorClient: resource-specific sub-queries

Clients are stateless per call; the only thing they read from outside is the
current token (through `token_provider`).
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

import requests

from enrolldesk.errors import (
    AuthRequired,
    Conflict,
    NetworkError,
    NotFound,
    ServerRejection,
    ServerValidationError,
)
from enrolldesk.logging_config import get_logger
from enrolldesk.model import COURSE, INSTRUCTOR, STUDENT, EntityKind, Page, Record

log = get_logger("http")

TokenProvider = Callable[[], Optional[str]]


def _server_message(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    for key in ("error", "message"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    errors = body.get("errors")
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict):
            msg = first.get("msg") or first.get("message")
            if msg:
                return str(msg)
        return str(first)
    return None


def _decode(resp: Any) -> Any:
    text = resp.text or ""
    if not text.strip():
        return None
    try:
        return resp.json()
    except ValueError:
        return None


class ApiClient:
    """
    Thin wrapper around requests.Session that speaks the API's JSON conventions.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider | None = None,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self._http = session if session is not None else requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        Raises:
            NetworkError          transport failure
            AuthRequired          401
            NotFound              404
            Conflict              409
            ServerValidationError 400 / 422
            ServerRejection       any other non-2xx, or a body with success: false
        """
        url = f"{self.base_url}{path}"
        started = time.monotonic()
        try:
            resp = self._http.request(
                method,
                url,
                params=params,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log.warning("%s %s failed: %s", method, path, exc.__class__.__name__)
            raise NetworkError(f"Could not reach the API server ({exc.__class__.__name__})") from exc

        duration_ms = int((time.monotonic() - started) * 1000)
        status = resp.status_code
        log.debug("%s %s -> %s (%d ms)", method, path, status, duration_ms)

        body = _decode(resp)
        detail = _server_message(body)

        if status == 401:
            raise AuthRequired(detail or "Authentication required", status, detail)
        if status == 404:
            raise NotFound(detail or f"Not found: {path}", status, detail)
        if status == 409:
            raise Conflict(detail or "The request conflicts with existing data", status, detail)
        if status in (400, 422):
            raise ServerValidationError(detail or "The server rejected the data", status, detail)
        if not 200 <= status < 300:
            raise ServerRejection(detail or f"Request failed with status {status}", status, detail)
        if isinstance(body, dict) and body.get("success") is False:
            raise ServerRejection(detail or "The server reported a failure", status, detail)

        return body

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, payload: dict[str, Any] | None = None) -> Any:
        return self.request("POST", path, payload=payload)

    def put(self, path: str, payload: dict[str, Any] | None = None) -> Any:
        return self.request("PUT", path, payload=payload)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)


def _unwrap(body: Any) -> Any:
    """
    Most endpoints answer {success, data}; return `data` when present.
    """
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


class ResourceClient:
    """
    Typed gateway to one REST resource collection.
    """

    kind: EntityKind

    def __init__(self, api: ApiClient) -> None:
        self.api = api

    def _item_path(self, record_id: Any) -> str:
        return f"{self.kind.path}/{record_id}"

    def clean_payload(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Drop server-assigned / immutable fields so they can never be sent.
        """
        return {k: v for k, v in payload.items() if k not in self.kind.read_only}

    def list(self, page: int = 1, page_size: int = 10, search: str = "") -> Page:
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive integers")
        params = {"page": page, "limit": page_size, "search": search or ""}
        body = self.api.get(self.kind.path, params=params)
        return Page.from_response(body, self.kind, page=page, page_size=page_size)

    def get_by_id(self, record_id: Any) -> Record:
        return _unwrap(self.api.get(self._item_path(record_id)))

    def create(self, payload: dict[str, Any]) -> Record:
        return _unwrap(self.api.post(self.kind.path, self.clean_payload(payload)))

    def update(self, record_id: Any, payload: dict[str, Any]) -> Record:
        return _unwrap(self.api.put(self._item_path(record_id), self.clean_payload(payload)))

    def delete_by_id(self, record_id: Any) -> None:
        self.api.delete(self._item_path(record_id))


class StudentClient(ResourceClient):
    kind = STUDENT

    def enrollments(self, student_id: Any) -> list[Record]:
        return _unwrap(self.api.get(f"{self._item_path(student_id)}/enrollments")) or []


class CourseClient(ResourceClient):
    kind = COURSE

    def enrollments(self, course_id: Any) -> list[Record]:
        return _unwrap(self.api.get(f"{self._item_path(course_id)}/enrollments")) or []

    def available_spots(self, course_id: Any) -> Any:
        return _unwrap(self.api.get(f"{self._item_path(course_id)}/available-spots"))


class InstructorClient(ResourceClient):
    kind = INSTRUCTOR

    def clean_payload(self, payload: dict[str, Any]) -> dict[str, Any]:
        # password is write-only: send it only when the user actually typed one
        out = super().clean_payload(payload)
        if not out.get("password"):
            out.pop("password", None)
        return out

    def login(self, credentials: dict[str, Any]) -> dict[str, Any]:
        """
        POST /instructors/login -> {success, token, data}. Returns the raw body.
        """
        body = self.api.post(f"{self.kind.path}/login", credentials)
        return body if isinstance(body, dict) else {}

    def register(self, profile: dict[str, Any]) -> dict[str, Any]:
        body = self.api.post(f"{self.kind.path}/register", self.clean_payload(profile))
        return body if isinstance(body, dict) else {}

    def courses(self, instructor_id: Any) -> list[Record]:
        return _unwrap(self.api.get(f"{self._item_path(instructor_id)}/courses")) or []

    def students(self, instructor_id: Any) -> list[Record]:
        return _unwrap(self.api.get(f"{self._item_path(instructor_id)}/students")) or []

    def my_courses(self) -> list[Record]:
        return _unwrap(self.api.get(f"{self.kind.path}/my-courses")) or []

    def analytics(self) -> Any:
        return _unwrap(self.api.get(f"{self.kind.path}/analytics"))

    def update_profile(self, payload: dict[str, Any]) -> Record:
        return _unwrap(self.api.put(f"{self.kind.path}/profile", self.clean_payload(payload)))

