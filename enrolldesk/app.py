"""
Object wiring shared by the CLI and the interactive console.

    settings -> SessionStore -> ApiClient (reads the store's token)
             -> Student/Course/Instructor clients -> list views
"""

from __future__ import annotations

from dataclasses import dataclass

import requests

from enrolldesk.api import ApiClient, CourseClient, InstructorClient, ResourceClient, StudentClient
from enrolldesk.config import Settings
from enrolldesk.listview import ListView
from enrolldesk.model import EntityKind
from enrolldesk.session import SessionStore


@dataclass
class AppContext:
    settings: Settings
    store: SessionStore
    api: ApiClient
    students: StudentClient
    courses: CourseClient
    instructors: InstructorClient

    def client(self, kind: EntityKind) -> ResourceClient:
        return {
            "students": self.students,
            "courses": self.courses,
            "instructors": self.instructors,
        }[kind.plural]

    def view(self, kind: EntityKind) -> ListView:
        return ListView(self.client(kind), self.store, page_size=self.settings.page_size)


def build_context(settings: Settings, http: requests.Session | None = None) -> AppContext:
    store = SessionStore(settings.session_path)
    api = ApiClient(settings.api_url, token_provider=store.token, session=http, timeout=settings.http_timeout)
    instructors = InstructorClient(api)
    store.client = instructors
    return AppContext(
        settings=settings,
        store=store,
        api=api,
        students=StudentClient(api),
        courses=CourseClient(api),
        instructors=instructors,
    )
