from __future__ import annotations

import logging
import sys

from flask import g, has_request_context

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (req:%(request_id)s) %(message)s"


class RequestIdFilter(logging.Filter):
    """Stamp every record with the current request id ('-' outside requests)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = getattr(g, "request_id", "-") if has_request_context() else "-"
        return True


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    for handler in root.handlers:
        if getattr(handler, "_smart_attendance", False):
            break
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(RequestIdFilter())
        handler._smart_attendance = True
        root.addHandler(handler)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
