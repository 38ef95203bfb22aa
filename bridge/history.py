"""
Subtree reader for the Firebase Realtime Database and an in-memory test
implementation.

A history subtree has three levels: the requested node, its children (one
``HistoryNode`` each) and their grandchildren (the ``FieldEntry`` list of each
node). Deeper levels are kept as nested values on the field entries.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import firebase_admin
from firebase_admin import credentials, db

from bridge.errors import (
    BridgeError,
    DatabaseUnavailableError,
    HistoryFetchError,
    InvalidPathError,
)

logger = logging.getLogger(__name__)

# Firebase keys may hold any character except . $ # [ ] / and control codes.
PATH_SEGMENT = r"[^.$#\[\]/\x00-\x1f\x7f]+"
PATH_PATTERN = re.compile(rf"^{PATH_SEGMENT}(/{PATH_SEGMENT})*$")
FIREBASE_APP_NAME = "history-bridge"


@dataclass(frozen=True)
class FieldEntry:
    key: str
    data: Any

    def as_dict(self) -> dict:
        return {"key": self.key, "data": self.data}


@dataclass(frozen=True)
class HistoryNode:
    key: str
    children: list[FieldEntry] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "key": self.key,
            "children": [child.as_dict() for child in self.children],
        }


class HistoryReader(Protocol):
    """Reads the raw value stored at a database path."""

    def fetch(self, path: str) -> Any:
        ...


def normalize_path(raw: Optional[str]) -> str:
    """
    Validate a slash-delimited database path and return it without
    surrounding slashes.
    """
    if raw is None:
        raise InvalidPathError("Missing 'path' query parameter")
    path = raw.strip().strip("/")
    if not path:
        raise InvalidPathError("Missing 'path' query parameter")
    if not PATH_PATTERN.match(path):
        raise InvalidPathError(f"Invalid path: {raw}")
    return path


def _as_mapping(value: Any) -> Optional[dict]:
    # The Admin SDK returns a list when every key is a small integer.
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        return {str(index): item for index, item in enumerate(value) if item is not None}
    return None


def build_history(value: Any) -> list[HistoryNode]:
    """
    Reshape a fetched subtree into history nodes sorted by key, descending.

    Keys are compared as strings, so "9" sorts before "10".
    """
    node = _as_mapping(value)
    if not node:
        return []

    items = []
    for key, child_value in node.items():
        grandchildren = _as_mapping(child_value) or {}
        children = [
            FieldEntry(key=str(child_key), data=data)
            for child_key, data in grandchildren.items()
        ]
        items.append(HistoryNode(key=str(key), children=children))

    items.sort(key=lambda item: item.key, reverse=True)
    return items


def read_history(reader: HistoryReader, path: str) -> list[HistoryNode]:
    try:
        value = reader.fetch(path)
    except BridgeError:
        raise
    except Exception as exc:
        logger.exception("Failed to read history at %s", path)
        raise HistoryFetchError(str(exc)) from exc

    nodes = build_history(value)
    logger.info("Read %d history nodes from %s", len(nodes), path)
    return nodes


class InMemoryHistoryReader:
    """Dict-backed tree for development and tests."""

    def __init__(self, tree: Optional[dict] = None):
        self.tree: dict = tree or {}

    def load(self, tree: dict) -> None:
        self.tree = tree

    def reset(self) -> None:
        self.tree = {}

    def fetch(self, path: str) -> Any:
        value: Any = self.tree
        for segment in path.split("/"):
            value = _as_mapping(value)
            if value is None or segment not in value:
                return None
            value = value[segment]
        return value


def _load_service_account(service_account_json: str) -> dict:
    try:
        info = json.loads(service_account_json)
    except json.JSONDecodeError as exc:
        raise DatabaseUnavailableError(
            f"GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON: {exc}"
        ) from exc
    if not isinstance(info, dict):
        raise DatabaseUnavailableError(
            "GOOGLE_SERVICE_ACCOUNT_JSON must be a JSON object"
        )
    # Hosting dashboards often store the key with escaped newlines.
    private_key = info.get("private_key")
    if isinstance(private_key, str):
        info["private_key"] = private_key.replace("\\n", "\n")
    return info


class FirebaseHistoryReader:
    """
    Reads subtrees through the Firebase Admin SDK.

    The SDK app is registered under its own name so it does not clash with a
    default app the hosting environment may already have initialized.
    """

    def __init__(
        self,
        service_account_json: Optional[str],
        database_url: Optional[str],
        app_name: str = FIREBASE_APP_NAME,
    ):
        if not service_account_json:
            raise DatabaseUnavailableError("GOOGLE_SERVICE_ACCOUNT_JSON is not set")
        if not database_url:
            raise DatabaseUnavailableError("FIREBASE_DB_URL is not set")

        info = _load_service_account(service_account_json)
        try:
            cred = credentials.Certificate(info)
        except ValueError as exc:
            raise DatabaseUnavailableError(
                f"Invalid service account credentials: {exc}"
            ) from exc

        try:
            self._app = firebase_admin.get_app(app_name)
        except ValueError:
            self._app = firebase_admin.initialize_app(
                cred, {"databaseURL": database_url}, name=app_name
            )
        logger.info("Firebase app %s initialized for %s", app_name, database_url)

    def fetch(self, path: str) -> Any:
        return db.reference(path, app=self._app).get()
