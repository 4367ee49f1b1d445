"""
Persistent storage for the authenticated session.

This module manages the file:

    <ENROLLDESK_HOME>/session.json

with the schema:

    {"token": "<opaque bearer token>", "instructor": {...principal snapshot...}}

Both entries are always written and removed together, so a token can never
exist on disk without its principal (and vice versa).
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from enrolldesk.config import load_settings

StoredSession = tuple[Optional[str], Optional[dict[str, Any]]]


def _default_session_path() -> Path:
    """
    Return the default path of session.json.

    Using a function instead of a constant makes testing easier,
    because tests can override the path (or ENROLLDESK_HOME).
    """
    return load_settings().session_path


def load_session(path: str | Path | None = None) -> StoredSession:
    """
    Load (token, principal) from session.json.

    Returns (None, None) if the file does not exist, cannot be read or is invalid.
    A token without a principal snapshot is treated as no session at all.
    """
    session_path = Path(path) if path is not None else _default_session_path()

    # First run: file does not exist yet -> not logged in
    if not session_path.exists():
        return None, None

    try:
        data = json.loads(session_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        return None, None

    if not isinstance(data, dict):
        return None, None

    token = data.get("token")
    principal = data.get("instructor")
    if not isinstance(token, str) or not token.strip():
        return None, None
    if not isinstance(principal, dict):
        return None, None

    return token, principal


def save_session(token: str, principal: dict[str, Any], path: str | Path | None = None) -> None:
    """
    Save token + principal atomically (write temp file, then replace).

    Raises OSError if the storage location is not writable; callers decide
    how to degrade.
    """
    session_path = Path(path) if path is not None else _default_session_path()
    session_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {"token": token, "instructor": principal}
    text = json.dumps(payload, indent=2, ensure_ascii=False)

    fd, tmp_name = tempfile.mkstemp(prefix=".session-", suffix=".json", dir=str(session_path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp_name, session_path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def clear_session(path: str | Path | None = None) -> None:
    """
    Remove session.json. Missing file is fine (idempotent).

    If the file cannot be removed it is overwritten with "{}", which
    load_session() reads as logged out. Raises OSError only if both fail.
    """
    session_path = Path(path) if path is not None else _default_session_path()
    try:
        session_path.unlink(missing_ok=True)
    except OSError:
        session_path.write_text("{}", encoding="utf-8")
