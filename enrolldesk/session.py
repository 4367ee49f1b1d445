"""
Session store: the only client-side state that outlives a single screen.

Holds the bearer token and the authenticated instructor's profile snapshot
(the "principal"). The pair is hydrated from session.json when the store is
created and written/cleared together on login/logout.

If the durable store is unusable (read-only home, disk full...) the console
keeps working but behaves as if nobody were logged in.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from enrolldesk.api import InstructorClient
from enrolldesk.errors import ApiError, AuthError
from enrolldesk.logging_config import get_logger
from enrolldesk.model import Principal
from enrolldesk.storage import clear_session, load_session, save_session

log = get_logger("session")


@dataclass(frozen=True)
class Session:
    token: str
    principal: Principal


class SessionStore:
    def __init__(self, path: str | Path | None = None, client: InstructorClient | None = None) -> None:
        self.path = path
        # Set after construction when the API client itself needs `self.token`
        self.client = client
        self._token: Optional[str] = None
        self._principal: Optional[Principal] = None
        self.hydrate()

    def hydrate(self) -> None:
        """
        Reload token + principal from durable storage.
        """
        token, principal = load_session(self.path)
        if token and principal is not None:
            self._token, self._principal = token, principal
        else:
            self._token, self._principal = None, None

    def _require_client(self) -> InstructorClient:
        if self.client is None:
            raise RuntimeError("SessionStore has no InstructorClient attached")
        return self.client

    def login(self, credentials: dict[str, Any]) -> Session:
        """
        Authenticate and persist the session.

        On failure the current session is left untouched and AuthError carries
        the server's reason verbatim.
        """
        client = self._require_client()
        try:
            body = client.login(credentials)
        except ApiError as exc:
            log.warning("login refused: %s", exc.message)
            raise AuthError(exc.detail or "Login failed") from exc

        token = body.get("token")
        principal = body.get("data")
        if not body.get("success") or not isinstance(token, str) or not token:
            raise AuthError(str(body.get("error") or "Login failed"))
        if not isinstance(principal, dict):
            principal = {}

        session = Session(token=token, principal=principal)
        try:
            save_session(token, principal, self.path)
        except OSError as exc:
            log.error("could not persist session, staying logged out: %s", exc)
            self._token, self._principal = None, None
            return session

        self._token, self._principal = token, principal
        log.info("logged in as instructor_id=%s", principal.get("instructor_id"))
        return session

    def register(self, profile: dict[str, Any]) -> None:
        """
        Create a new instructor account. Does NOT log in; call login() afterwards.
        """
        client = self._require_client()
        try:
            client.register(profile)
        except ApiError as exc:
            log.warning("registration refused: %s", exc.message)
            raise AuthError(exc.detail or "Registration failed") from exc
        log.info("registered instructor %s", profile.get("email"))

    def logout(self) -> bool:
        """
        Forget the session, in memory and on disk. No network call. Idempotent.

        Returns False when the saved session could not be cleared; the next
        start would then still be logged in.
        """
        self._token, self._principal = None, None
        try:
            clear_session(self.path)
        except OSError as exc:
            log.error("could not clear session file: %s", exc)
            return False
        log.info("logged out")
        return True

    def update_principal(self, changes: dict[str, Any]) -> None:
        """
        Merge profile changes into the principal snapshot and persist it.
        """
        if not self._token or self._principal is None:
            return
        principal = {**self._principal, **changes}
        try:
            save_session(self._token, principal, self.path)
        except OSError as exc:
            log.error("could not persist updated profile: %s", exc)
        self._principal = principal

    def token(self) -> Optional[str]:
        return self._token

    def is_authenticated(self) -> bool:
        return bool(self._token)

    def current_principal(self) -> Optional[Principal]:
        if not self._token or self._principal is None:
            return None
        return dict(self._principal)
