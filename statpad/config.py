"""
Tunables for outbound calls and logging.
Static lookup tables live in constants.py; environment-backed values in settings.py.
"""

import logging
import os
from logging.handlers import RotatingFileHandler


API_TIMEOUT = int(os.getenv("API_TIMEOUT", 10))
"""Default timeout (seconds) for outbound API calls."""

SESSION_MAX_ATTEMPTS = 1
"""Attempts made by session-based calls (pbpstats, Algolia). Only fetch_with_backoff retries."""

BACKOFF_BASE_DELAY = float(os.getenv("BACKOFF_BASE_DELAY", 1.0))
"""Base delay (seconds) for exponential backoff on transient responses."""

BACKOFF_JITTER = float(os.getenv("BACKOFF_JITTER", 0.25))
"""Upper bound (seconds) of random jitter added to each backoff delay."""

BACKOFF_MAX_ATTEMPTS = int(os.getenv("BACKOFF_MAX_ATTEMPTS", 3))
"""Attempts made by fetch_with_backoff before giving up."""

MAX_RETRY_AFTER = 10.0
"""Ceiling (seconds) applied to server supplied Retry-After values."""

MSF_REQUESTS_PER_MINUTE = int(os.getenv("MSF_REQUESTS_PER_MINUTE", 100))
"""MySportsFeeds request budget per rolling minute (cost = 1 + backoff seconds)."""


def setup_logger(name: str) -> logging.Logger:
    """Create or retrieve a configured logger for the application."""

    logger = logging.getLogger(name)

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    logger.setLevel(log_level)

    if logging.getLogger().handlers:
        logger.propagate = True
        return logger

    if not logger.handlers:
        log_dir = os.getenv("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)
        handler = RotatingFileHandler(
            os.path.join(log_dir, "statpad.log"), maxBytes=1024 * 1024, backupCount=3
        )
        formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s')
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        logger.addHandler(handler)

        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)
        logger.propagate = False

    return logger
