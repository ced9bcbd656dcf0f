"""Logging filters that scrub credentials from log output."""

from __future__ import annotations

import logging
import re

_SENSITIVE_PATTERN = re.compile(
    r"(Authorization:\s*(?:Bearer|Basic)\s+[\w\.\-+/=]+"
    r"|X-Admin-Token:\s*\S+"
    r"|admin_api_token[\"']?\s*[:=]\s*[\"']?[^\"'\s,]+"
    r"|password[\"']?\s*[:=]\s*[\"']?[^\"'\s,]+)",
    re.IGNORECASE,
)

REDACTED = "**REDACTED**"


class SensitiveFilter(logging.Filter):
    """Redact tokens and passwords from the rendered log message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _SENSITIVE_PATTERN.sub(REDACTED, message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def install(logger_names: tuple[str, ...] = ("uvicorn", "uvicorn.access", "uvicorn.error", "")) -> None:
    """Attach a single ``SensitiveFilter`` to each named logger."""
    for name in logger_names:
        target = logging.getLogger(name)
        if not any(isinstance(flt, SensitiveFilter) for flt in target.filters):
            target.addFilter(SensitiveFilter())


__all__ = ["REDACTED", "SensitiveFilter", "install"]
