"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from bridge.config import get_settings
from bridge.errors import DatabaseUnavailableError
from bridge.history import FirebaseHistoryReader, HistoryReader, InMemoryHistoryReader

logger = logging.getLogger(__name__)

_history_reader: HistoryReader | None = None
_config_error: str | None = None


def get_history_reader() -> HistoryReader:
    """
    Return a singleton reader. A configuration failure is remembered and
    reported on every call instead of being retried.
    """
    global _history_reader, _config_error
    if _history_reader:
        return _history_reader
    if _config_error:
        raise DatabaseUnavailableError(_config_error)

    settings = get_settings()
    if settings.use_in_memory_backends:
        _history_reader = InMemoryHistoryReader()
        return _history_reader

    try:
        _history_reader = FirebaseHistoryReader(
            service_account_json=settings.google_service_account_json,
            database_url=settings.firebase_db_url,
        )
    except DatabaseUnavailableError as exc:
        _config_error = exc.message
        logger.error("Firebase is not configured: %s", exc.message)
        raise
    return _history_reader


def reset_history_reader() -> None:
    global _history_reader, _config_error
    _history_reader = None
    _config_error = None
