"""
In-memory stand-in for the enrollment API server.

FakeApiServer exposes the one method ApiClient uses on requests.Session
(`request(method, url, params=..., json=..., headers=..., timeout=...)`) and
answers like the real server: {success, data, pagination}, bearer-token auth,
404/400/401/409 error bodies with an `error` field.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import requests

BASE_URL = "http://api.test/api"

TOTAL_KEYS = {
    "students": "totalStudents",
    "courses": "totalCourses",
    "instructors": "totalInstructors",
}
ID_FIELDS = {
    "students": "student_id",
    "courses": "course_id",
    "instructors": "instructor_id",
}


class FakeResponse:
    def __init__(self, status_code: int, body: Any = None) -> None:
        self.status_code = status_code
        self.text = "" if body is None else json.dumps(body)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        return json.loads(self.text)


class FakeApiServer:
    def __init__(self) -> None:
        self.tables: dict[str, dict[int, dict[str, Any]]] = {k: {} for k in TOTAL_KEYS}
        self.passwords: dict[str, str] = {}
        self.tokens: dict[str, int] = {}
        self.enrollments: list[dict[str, Any]] = []
        self.undeletable: set[tuple[str, int]] = set()
        self.calls: list[dict[str, Any]] = []
        self.omit_pagination = False
        self.fail_network = False
        self.scripted: list[tuple[int, Any]] = []
        self._next_id = 1

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def _new_id(self) -> int:
        n = self._next_id
        self._next_id += 1
        return n

    def add(self, resource: str, **fields: Any) -> dict[str, Any]:
        rid = fields.pop(ID_FIELDS[resource], None) or self._new_id()
        self._next_id = max(self._next_id, rid + 1)
        record = {ID_FIELDS[resource]: rid, **fields}
        self.tables[resource][rid] = record
        return record

    def add_instructor(self, email: str, password: str, **fields: Any) -> dict[str, Any]:
        fields.setdefault("first_name", "Test")
        fields.setdefault("last_name", "Instructor")
        fields.setdefault("department", "Computer Science")
        fields.setdefault("is_active", True)
        record = self.add("instructors", email=email, **fields)
        self.passwords[email] = password
        return record

    def script(self, status: int, body: Any = None) -> None:
        """Queue a canned response for the next request."""
        self.scripted.append((status, body))

    # ------------------------------------------------------------------
    # requests.Session surface
    # ------------------------------------------------------------------

    def request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        timeout: Any = None,
    ) -> FakeResponse:
        path = url[len(BASE_URL):] if url.startswith(BASE_URL) else url
        self.calls.append(
            {"method": method, "path": path, "params": dict(params or {}), "json": json, "headers": dict(headers or {})}
        )
        if self.fail_network:
            raise requests.ConnectionError("connection refused")
        if self.scripted:
            status, body = self.scripted.pop(0)
            return FakeResponse(status, body)
        return self._route(method, path, params or {}, json or {}, headers or {})

    @property
    def last_call(self) -> dict[str, Any]:
        return self.calls[-1]

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def _principal_id(self, headers: dict[str, str]) -> Optional[int]:
        auth = headers.get("Authorization", "")
        if not auth.startswith("Bearer "):
            return None
        return self.tokens.get(auth[len("Bearer "):])

    def _route(
        self, method: str, path: str, params: dict[str, Any], body: dict[str, Any], headers: dict[str, str]
    ) -> FakeResponse:
        parts = [p for p in path.split("/") if p]
        if not parts or parts[0] not in self.tables:
            return FakeResponse(404, {"success": False, "error": "Route not found"})
        resource = parts[0]

        if resource == "instructors" and len(parts) == 2 and parts[1] in ("login", "register", "my-courses", "analytics", "profile"):
            return self._instructor_special(method, parts[1], body, headers)

        if len(parts) == 1:
            if method == "GET":
                return self._list(resource, params)
            if method == "POST":
                return self._create(resource, body, headers)

        if len(parts) >= 2:
            try:
                rid = int(parts[1])
            except ValueError:
                return FakeResponse(404, {"success": False, "error": "Not found"})
            if len(parts) == 3:
                return self._sub(resource, rid, parts[2])
            if method == "GET":
                return self._get(resource, rid)
            if method == "PUT":
                return self._update(resource, rid, body, headers)
            if method == "DELETE":
                return self._delete(resource, rid, headers)

        return FakeResponse(405, {"success": False, "error": "Method not allowed"})

    def _list(self, resource: str, params: dict[str, Any]) -> FakeResponse:
        page = int(params.get("page", 1))
        limit = int(params.get("limit", 10))
        search = str(params.get("search", "")).lower()

        rows = [self._public(r) for r in self.tables[resource].values()]
        if search:
            rows = [r for r in rows if any(search in str(v).lower() for v in r.values())]

        start = (page - 1) * limit
        body: dict[str, Any] = {"success": True, "data": rows[start : start + limit]}
        if not self.omit_pagination:
            body["pagination"] = {
                "currentPage": page,
                "totalPages": max(1, -(-len(rows) // limit)),
                TOTAL_KEYS[resource]: len(rows),
            }
        return FakeResponse(200, body)

    def _public(self, record: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in record.items() if k != "password"}

    def _get(self, resource: str, rid: int) -> FakeResponse:
        record = self.tables[resource].get(rid)
        if record is None:
            return FakeResponse(404, {"success": False, "error": f"{resource[:-1].capitalize()} not found"})
        return FakeResponse(200, {"success": True, "data": self._public(record)})

    def _email_taken(self, resource: str, email: Any, exclude: Optional[int] = None) -> bool:
        for rid, r in self.tables[resource].items():
            if rid != exclude and email and r.get("email") == email:
                return True
        return False

    def _create(self, resource: str, body: dict[str, Any], headers: dict[str, str]) -> FakeResponse:
        principal = self._principal_id(headers)
        if resource == "courses":
            if principal is None:
                return FakeResponse(401, {"success": False, "error": "Access denied. No token provided."})
            body = {**body, "instructor_id": principal, "enrolled_count": 0}
        if self._email_taken(resource, body.get("email")):
            return FakeResponse(400, {"success": False, "error": "Email already exists"})
        record = self.add(resource, **body, created_at="2026-01-01T00:00:00.000Z")
        return FakeResponse(201, {"success": True, "data": self._public(record)})

    def _update(self, resource: str, rid: int, body: dict[str, Any], headers: dict[str, str]) -> FakeResponse:
        record = self.tables[resource].get(rid)
        if record is None:
            return FakeResponse(404, {"success": False, "error": "Not found"})
        if resource != "students" and self._principal_id(headers) is None:
            return FakeResponse(401, {"success": False, "error": "Access denied. No token provided."})
        if self._email_taken(resource, body.get("email"), exclude=rid):
            return FakeResponse(400, {"success": False, "error": "Email already exists"})
        record.update(body)
        return FakeResponse(200, {"success": True, "data": self._public(record)})

    def _delete(self, resource: str, rid: int, headers: dict[str, str]) -> FakeResponse:
        if rid not in self.tables[resource]:
            return FakeResponse(404, {"success": False, "error": "Not found"})
        if resource != "students" and self._principal_id(headers) is None:
            return FakeResponse(401, {"success": False, "error": "Access denied. No token provided."})
        if (resource, rid) in self.undeletable:
            return FakeResponse(
                409, {"success": False, "error": f"Cannot delete {resource[:-1]} with existing enrollments"}
            )
        del self.tables[resource][rid]
        return FakeResponse(200, {"success": True, "message": "Deleted"})

    def _sub(self, resource: str, rid: int, name: str) -> FakeResponse:
        if rid not in self.tables[resource]:
            return FakeResponse(404, {"success": False, "error": "Not found"})
        if resource == "courses" and name == "available-spots":
            course = self.tables["courses"][rid]
            taken = len([e for e in self.enrollments if e.get("course_id") == rid])
            return FakeResponse(
                200,
                {"success": True, "data": {"max_capacity": course.get("max_capacity"), "available_spots": course.get("max_capacity", 0) - taken}},
            )
        if name == "enrollments":
            key = ID_FIELDS[resource]
            rows = [e for e in self.enrollments if e.get(key) == rid]
            return FakeResponse(200, {"success": True, "data": rows})
        if resource == "instructors" and name == "courses":
            rows = [c for c in self.tables["courses"].values() if c.get("instructor_id") == rid]
            return FakeResponse(200, {"success": True, "data": rows})
        if resource == "instructors" and name == "students":
            return FakeResponse(200, {"success": True, "data": []})
        return FakeResponse(404, {"success": False, "error": "Route not found"})

    def _instructor_special(
        self, method: str, name: str, body: dict[str, Any], headers: dict[str, str]
    ) -> FakeResponse:
        if name == "login" and method == "POST":
            email = body.get("email")
            if email not in self.passwords or self.passwords[email] != body.get("password"):
                return FakeResponse(401, {"success": False, "error": "Invalid email or password"})
            instructor = next(r for r in self.tables["instructors"].values() if r.get("email") == email)
            token = f"t{len(self.tokens) + 1}"
            self.tokens[token] = instructor["instructor_id"]
            return FakeResponse(
                200, {"success": True, "message": "Login successful", "token": token, "data": self._public(instructor)}
            )
        if name == "register" and method == "POST":
            if self._email_taken("instructors", body.get("email")):
                return FakeResponse(400, {"success": False, "error": "Instructor with this email already exists"})
            password = body.get("password", "")
            fields = {k: v for k, v in body.items() if k != "password"}
            record = self.add_instructor(password=password, **fields)
            return FakeResponse(201, {"success": True, "data": self._public(record)})
        if name == "my-courses" and method == "GET":
            principal = self._principal_id(headers)
            if principal is None:
                return FakeResponse(401, {"success": False, "error": "Access denied. No token provided."})
            rows = [c for c in self.tables["courses"].values() if c.get("instructor_id") == principal]
            return FakeResponse(200, {"success": True, "data": rows})
        if name == "analytics" and method == "GET":
            principal = self._principal_id(headers)
            if principal is None:
                return FakeResponse(401, {"success": False, "error": "Access denied. No token provided."})
            owned = [c for c in self.tables["courses"].values() if c.get("instructor_id") == principal]
            return FakeResponse(
                200,
                {"success": True, "data": {"totalCourses": len(owned), "totalEnrollments": sum(c.get("enrolled_count", 0) for c in owned)}},
            )
        if name == "profile" and method == "PUT":
            principal = self._principal_id(headers)
            if principal is None:
                return FakeResponse(401, {"success": False, "error": "Access denied. No token provided."})
            record = self.tables["instructors"][principal]
            record.update(body)
            return FakeResponse(200, {"success": True, "data": self._public(record)})
        return FakeResponse(405, {"success": False, "error": "Method not allowed"})
