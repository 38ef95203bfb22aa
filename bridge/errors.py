"""
Error types surfaced by the bridge routes.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidPathError(BridgeError):
    status_code = 400


class DatabaseUnavailableError(BridgeError):
    """The database client could not be configured."""

    status_code = 500


class HistoryFetchError(BridgeError):
    """The remote read failed."""

    status_code = 500
