"""
Configuration constants for the football statistics service
Centralizes environment-driven values that are shared across modules
"""

USE_LEGACY_RESPONSES = True  # Toggle for global response format

import logging
import os
from logging.handlers import RotatingFileHandler

from .constants import (
    COMEBACK_WINDOW,
    FORM_WINDOW,
    GOALS_WINDOW,
    H2H_MIN_SAMPLE,
    H2H_WINDOW,
    HALFTIME_WINDOW,
    RATIO_WINDOW,
)


API_TIMEOUT = int(os.getenv("API_TIMEOUT", 10))
"""Default timeout (seconds) for outbound data store calls."""

API_MAX_RETRIES = int(os.getenv("API_MAX_RETRIES", 3))
"""Maximum retry attempts for outbound data store calls."""

API_BACKOFF_FACTOR = float(os.getenv("API_BACKOFF_FACTOR", 0.5))
"""Exponential backoff factor between retries."""

FEATURE_WINDOW_DEFAULTS = {
    "form": int(os.getenv("FORM_WINDOW", FORM_WINDOW)),
    "goals": int(os.getenv("GOALS_WINDOW", GOALS_WINDOW)),
    "ratios": int(os.getenv("RATIO_WINDOW", RATIO_WINDOW)),
    "halftime": int(os.getenv("HALFTIME_WINDOW", HALFTIME_WINDOW)),
    "comeback": int(os.getenv("COMEBACK_WINDOW", COMEBACK_WINDOW)),
    "h2h": int(os.getenv("H2H_WINDOW", H2H_WINDOW)),
}
"""Per-feature lookback windows; each can be overridden from the environment."""

H2H_SAMPLE_THRESHOLD = int(os.getenv("H2H_MIN_SAMPLE", H2H_MIN_SAMPLE))


def setup_logger(name: str) -> logging.Logger:
    """Create or retrieve a configured logger for the application."""

    logger = logging.getLogger(name)

    log_level_str = os.getenv("LOG_LEVEL", "DEBUG").upper()
    log_level = getattr(logging, log_level_str, logging.DEBUG)
    logger.setLevel(log_level)

    if logging.getLogger().handlers:
        logger.propagate = True
        return logger

    if not logger.handlers:
        log_file = os.path.join(os.path.dirname(os.path.dirname(__file__)), "football_stats.log")
        os.makedirs(os.path.dirname(log_file), exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=3)
        formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s')
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        logger.addHandler(handler)
        logger.propagate = False

    return logger
