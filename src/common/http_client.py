"""Blocking HTTP helpers for the registry search endpoint.

Manifest and tarball traffic is concurrent and goes through
registry.npm.client; the search pages are fetched one after another, so a
plain requests session is enough here.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from storage.response_cache import ResponseCache

logger = logging.getLogger(__name__)

Response = Tuple[int, Dict[str, str], str]

_session = requests.Session()
_session.headers.update({"User-Agent": f"{Constants.APP_NAME}/{Constants.VERSION}"})
_responses = ResponseCache(Constants.HTTP_CACHE_TTL_SEC)


def clear_cache() -> None:
    """Drop every cached response."""
    _responses.clear()


def _trace(message: str, **fields: Any) -> None:
    if is_debug_enabled(logger):
        logger.debug(message, extra=extra_context(component="http_client", action="GET", **fields))


def robust_get(url: str, *, headers: Optional[Dict[str, str]] = None, **kwargs: Any) -> Response:
    """GET with timeout, retries on 5xx/transport errors, and a TTL cache.

    Returns:
        (status_code, headers, body_text). status_code is 0 when every
        attempt failed before a usable response arrived.
    """
    cache_key = f"{url}\n{sorted(headers.items()) if headers else ''}"
    target = safe_url(url)

    cached = _responses.get(cache_key)
    if cached is not None:
        _trace("HTTP cache hit", event="cache_hit", target=target)
        return cached

    failure = "no attempt made"
    for attempt in range(1, Constants.HTTP_RETRY_MAX + 1):
        if attempt > 1:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 2)))
        with Timer() as t:
            try:
                response = _session.get(url, timeout=Constants.REQUEST_TIMEOUT, headers=headers, **kwargs)
            except requests.Timeout:
                failure = "timeout"
                _trace("HTTP timeout", event="http_exception", outcome="timeout", attempt=attempt, target=target)
                continue
            except requests.RequestException as exc:
                failure = str(exc)
                _trace("HTTP request exception", event="http_exception", outcome=type(exc).__name__,
                       attempt=attempt, target=target)
                continue

        if response.status_code >= 500:
            failure = f"HTTP {response.status_code}"
            continue

        result: Response = (response.status_code, dict(response.headers), response.text)
        _responses.set(cache_key, result)
        _trace("HTTP response", event="http_response", status_code=response.status_code,
               duration_ms=t.duration_ms(), target=target)
        return result

    logger.warning("GET %s failed after %s attempts: %s", target, Constants.HTTP_RETRY_MAX, failure)
    return 0, {}, f"Request failed after {Constants.HTTP_RETRY_MAX} attempts: {failure}"


def get_json(url: str, *, headers: Optional[Dict[str, str]] = None, **kwargs: Any) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """GET a JSON document.

    Returns:
        (status_code, headers, parsed body or None). The body is only parsed
        for a 200 response; unparseable bodies yield None.
    """
    status_code, response_headers, text = robust_get(url, headers=headers, **kwargs)
    if status_code != 200 or not text:
        return status_code, response_headers, None
    try:
        return status_code, response_headers, json.loads(text)
    except json.JSONDecodeError:
        _trace("JSON decode error", event="parse", outcome="json_decode_error",
               status_code=status_code, target=safe_url(url))
        return status_code, response_headers, None
