"""Logging setup for the CLI and any long-running relay process.

Modules log through ``logging.getLogger(__name__)`` and pass context via
``extra=``; with JSON output enabled those extras become fields.
"""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    root = logging.getLogger("marketplace")
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    if json:
        handler.setFormatter(JsonFormatter(_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
