"""Retry-configured HTTP entry point shared by the remote match repositories."""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Iterable, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

import requests
from requests import Response

from .config import API_BACKOFF_FACTOR, API_MAX_RETRIES, API_TIMEOUT, setup_logger
from .utils import create_retry_session, request_with_retries as _request_with_retries

_logger = setup_logger(__name__)


def _normalize_status_list(status_forcelist: Iterable[int] | None) -> Tuple[int, ...]:
    if not status_forcelist:
        return tuple()
    return tuple(sorted(set(int(s) for s in status_forcelist)))


def scrub_url(url: Optional[str]) -> str:
    """Drop the query string, which carries filters and sometimes keys."""
    if not url:
        return ""
    try:
        parts = urlsplit(url)
        return urlunsplit((parts.scheme, parts.netloc, parts.path, "", parts.fragment))
    except ValueError:
        return url or ""


@lru_cache(maxsize=16)
def _get_session(
    retries: int,
    backoff_factor: float,
    status_forcelist: Tuple[int, ...],
) -> requests.Session:
    return create_retry_session(
        max_retries=retries,
        backoff_factor=backoff_factor,
        status_forcelist=status_forcelist,
    )


def request_with_retries(
    method: str,
    url: str,
    *,
    retries: int = API_MAX_RETRIES,
    backoff_factor: float = API_BACKOFF_FACTOR,
    status_forcelist: Iterable[int] | None = (429, 500, 502, 503, 504),
    timeout: float = float(API_TIMEOUT),
    logger=None,
    context: Optional[str] = None,
    session: Optional[Any] = None,
    **kwargs: Any,
) -> Response:
    """
    Perform an HTTP request with shared retry/backoff.
    - If `session` is provided (anything with .request(...)), it's used as-is.
    - Otherwise a cached retry-configured requests.Session is used.
    """
    normalized_statuses = _normalize_status_list(status_forcelist)
    session_obj = session or _get_session(retries, backoff_factor, normalized_statuses)

    return _request_with_retries(
        session_obj,
        method,
        url,
        timeout=timeout,
        max_retries=retries,
        backoff_factor=backoff_factor,
        status_forcelist=normalized_statuses,
        logger=logger or _logger,
        context=context or f"{method} {scrub_url(url)}",
        sanitize=scrub_url,
        **kwargs,
    )


__all__ = ["request_with_retries", "scrub_url"]
