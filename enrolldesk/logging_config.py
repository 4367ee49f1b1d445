"""
Logging setup.

The interactive screen owns stdout, so log records go to a file inside
ENROLLDESK_HOME (stderr if that file cannot be opened).

Channels:
- http     outbound API calls
- session  login / logout / durable session state
- ui       notifications shown to the user
"""

from __future__ import annotations

import logging
from pathlib import Path

CHANNELS = ("http", "session", "ui")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "WARNING", log_path: str | Path | None = None) -> logging.Logger:
    """
    Configure the `enrolldesk` logger tree once and return its root.
    """
    root = logging.getLogger("enrolldesk")
    root.setLevel(getattr(logging, str(level).upper(), logging.WARNING))

    handler: logging.Handler
    if log_path is not None:
        try:
            path = Path(log_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8")
        except OSError:
            handler = logging.StreamHandler()
    else:
        handler = logging.StreamHandler()

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.addHandler(handler)
    root.propagate = False

    for channel in CHANNELS:
        get_logger(channel).setLevel(logging.NOTSET)

    return root


def get_logger(channel: str) -> logging.Logger:
    return logging.getLogger(f"enrolldesk.{channel}")
