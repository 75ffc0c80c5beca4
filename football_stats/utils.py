"""
Shared helpers for the football statistics service: HTTP sessions with retry
support for the hosted match store, and stable cache keys for predictions.
"""

import hashlib
import time
from typing import Any, Callable, Iterable, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .name_resolver import canonical_team_id


_DEFAULT_ALLOWED_METHODS: frozenset[str] = frozenset(["HEAD", "GET", "OPTIONS"])
_DEFAULT_STATUS_FORCELIST: tuple[int, ...] = (429, 500, 502, 503, 504)


def prediction_cache_key(home_team: str, away_team: str, match_date: str, *parts: Any) -> str:
    """md5 of ``{home}_vs_{away}_{date}`` using canonical team ids.

    Extra ``parts`` (variant name, league, weight) are appended so different
    configurations never share an entry.
    """

    base = f"{canonical_team_id(home_team)}_vs_{canonical_team_id(away_team)}_{match_date}"
    if parts:
        base = base + "_" + "_".join("" if p is None else str(p) for p in parts)
    return hashlib.md5(base.encode("utf-8")).hexdigest()


def create_retry_session(
    max_retries: int,
    backoff_factor: float,
    status_forcelist: Iterable[int] | None = None,
) -> requests.Session:
    """Create a :class:`requests.Session` whose transport never retries on its own.

    Retries are driven by :func:`request_with_retries` so that every attempt is
    logged with the caller's context.
    """

    adapter = HTTPAdapter(
        max_retries=Retry(
            total=0,
            connect=0,
            read=0,
            backoff_factor=backoff_factor,
            status_forcelist=status_forcelist or _DEFAULT_STATUS_FORCELIST,
            allowed_methods=_DEFAULT_ALLOWED_METHODS,
            raise_on_status=False,
        )
    )

    session = requests.Session()
    session.headers.update({"Accept": "application/json"})
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _sanitize_value(value: Any, sanitizer: Optional[Callable[[str], str]] = None) -> str:
    text = "" if value is None else str(value)
    if sanitizer is None:
        return text
    try:
        return sanitizer(text)
    except Exception:
        return text


def request_with_retries(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float,
    max_retries: int,
    backoff_factor: float,
    status_forcelist: Iterable[int] | None,
    logger,
    context: str,
    sanitize: Optional[Callable[[str], str]] = None,
    **kwargs: Any,
) -> requests.Response:
    """Perform an HTTP request, retrying timeouts, connection errors and retryable statuses.

    Non-retryable HTTP errors (4xx other than 429) are raised on the first
    attempt. The last exception is re-raised once attempts are exhausted.
    """

    # max_retries counts attempts; a zero or negative setting still makes one request
    max_retries = max(1, int(max_retries))
    retry_state = Retry(
        total=max_retries,
        connect=max_retries,
        read=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=tuple(status_forcelist or _DEFAULT_STATUS_FORCELIST),
        allowed_methods=_DEFAULT_ALLOWED_METHODS,
        raise_on_status=False,
    )

    attempts = 0
    last_exception: Optional[requests.exceptions.RequestException] = None

    while attempts < max_retries:
        attempts += 1
        response: Optional[requests.Response] = None

        try:
            response = session.request(method, url, timeout=timeout, **kwargs)
            if response.status_code in retry_state.status_forcelist:
                raise requests.exceptions.HTTPError(
                    f"{response.status_code} Server Error: {response.reason}",
                    response=response,
                )
            response.raise_for_status()
            return response
        except requests.exceptions.RequestException as exc:
            last_exception = exc
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            should_retry = attempts < max_retries and (
                isinstance(exc, (requests.exceptions.Timeout, requests.exceptions.ConnectionError))
                or status_code in retry_state.status_forcelist
            )
            if not should_retry:
                break

            retry_state = retry_state.increment(
                method=method,
                url=url,
                response=getattr(exc, "response", None) or response,
                error=exc,
            )
            backoff = retry_state.get_backoff_time()
            logger.warning(
                "Retrying %s (%d/%d): %s - %s",
                context,
                attempts,
                max_retries,
                _sanitize_value(url, sanitize),
                _sanitize_value(exc, sanitize),
            )
            if backoff > 0:
                time.sleep(backoff)

    if last_exception is not None:
        logger.error(
            "Failed %s after %d attempts: %s",
            context,
            attempts,
            _sanitize_value(last_exception, sanitize),
        )
        raise last_exception

    raise RuntimeError("request_with_retries exited without attempting a request")
