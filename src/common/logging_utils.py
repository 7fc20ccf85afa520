"""Centralized logging helpers.

Provides a single place to configure the root logger and a few helpers used
across modules to emit structured DEBUG traces without leaking credentials
(registry URLs can carry basic-auth userinfo or `_authToken` query values).
"""
from __future__ import annotations

import logging
import os
import re
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from constants import Constants

_SENSITIVE_QUERY = re.compile(r"(?i)((?:_auth|_authtoken|token|password|secret)=)[^&\s]+")
_BEARER = re.compile(r"(?i)(bearer\s+)[A-Za-z0-9\-._~+/]+=*")
_NPM_TOKEN = re.compile(r"npm_[A-Za-z0-9]{20,}")


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once.

    The level comes from the explicit argument, then NPO_LOG_LEVEL, then INFO.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level_value)


def add_file_handler(path: str) -> logging.Handler:
    """Attach a file handler using the verbose file format."""
    file_handler = logging.FileHandler(path)
    file_handler.setFormatter(logging.Formatter(Constants.FILE_LOG_FORMAT))
    logging.getLogger().addHandler(file_handler)
    return file_handler


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by this logger."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an `extra=` payload, dropping empty values.

    Keys are namespaced under `ctx` to avoid clashing with LogRecord
    attributes such as `name` or `message`.
    """
    return {"ctx": {k: v for k, v in fields.items() if v is not None}}


def redact(text: str) -> str:
    """Mask tokens and secrets in free text."""
    if not text:
        return text
    out = _SENSITIVE_QUERY.sub(r"\1[REDACTED]", text)
    out = _BEARER.sub(r"\1[REDACTED]", out)
    return _NPM_TOKEN.sub("[REDACTED]", out)


def safe_url(url: str) -> str:
    """Return the URL with userinfo and sensitive query values masked."""
    if not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return redact(url)
    netloc = parts.netloc
    if "@" in netloc:
        netloc = "[REDACTED]@" + netloc.rsplit("@", 1)[1]
    return redact(urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment)))


class Timer:
    """Context manager measuring elapsed wall time."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Milliseconds since entry, or total duration once exited."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
