"""Throttled and one-shot logging for noisy paths (store failures, alias hits, league warnings)."""
from __future__ import annotations

import logging
import os
import threading
import time
from typing import Any, Dict, Hashable, Iterable, Optional, Set, Tuple

LOG_THROTTLE_INTERVAL = float(os.getenv("LOG_THROTTLE_INTERVAL", "300"))


class RateLimitedLogger:
    """Emit at most one record per key every ``window_seconds``.

    Suppressed records are counted; the next emitted record for the same key
    carries ``(suppressed N)`` so bursts of store failures stay visible.
    """

    def __init__(self, logger: logging.Logger, window_seconds: float = LOG_THROTTLE_INTERVAL) -> None:
        self._logger = logger
        self._window = max(float(window_seconds), 0.0)
        # key -> (last emit time, suppressed since then)
        self._state: Dict[Tuple[Any, ...], Tuple[float, int]] = {}
        self._lock = threading.Lock()

    def _admit(self, key: Tuple[Any, ...]) -> Optional[int]:
        """Suppressed count to report when the record may be emitted, else None."""
        now = time.monotonic()
        with self._lock:
            last, suppressed = self._state.get(key, (None, 0))
            if last is not None and now - last < self._window:
                self._state[key] = (last, suppressed + 1)
                return None
            self._state[key] = (now, 0)
            return suppressed

    def log(self, level: int, key: Iterable[Any], msg: str, *args: Any, **kwargs: Any) -> bool:
        suppressed = self._admit(tuple(key))
        if suppressed is None:
            return False
        if suppressed:
            msg = f"{msg} (suppressed {suppressed})"
        self._logger.log(level, msg, *args, **kwargs)
        return True

    def info(self, key: Iterable[Any], msg: str, *args: Any, **kwargs: Any) -> bool:
        return self.log(logging.INFO, key, msg, *args, **kwargs)

    def warning(self, key: Iterable[Any], msg: str, *args: Any, **kwargs: Any) -> bool:
        return self.log(logging.WARNING, key, msg, *args, **kwargs)

    def error(self, key: Iterable[Any], msg: str, *args: Any, **kwargs: Any) -> bool:
        return self.log(logging.ERROR, key, msg, *args, **kwargs)

    def reset(self) -> None:
        with self._lock:
            self._state.clear()


_warned: Set[Hashable] = set()
_warned_lock = threading.Lock()


def warn_once(key: Hashable, msg: str, *args: Any, logger: Optional[logging.Logger] = None) -> bool:
    """Log ``msg`` as a warning the first time ``key`` is seen in this process."""

    with _warned_lock:
        if key in _warned:
            return False
        _warned.add(key)
    (logger or logging.getLogger(__name__)).warning(msg, *args)
    return True


def reset_warn_once_cache() -> None:
    with _warned_lock:
        _warned.clear()
