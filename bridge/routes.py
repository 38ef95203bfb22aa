"""
HTTP routes for the history bridge.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import HTMLResponse, PlainTextResponse

from bridge.cards import CardOptions, render_error_page, render_page
from bridge.dependencies import get_history_reader
from bridge.errors import BridgeError
from bridge.history import normalize_path, read_history
from bridge.schemas import ErrorResponse, HealthResponse, HistoryResponse

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

TRUE_FLAGS = {"1", "true", "yes", "on"}


def parse_flag(value: Optional[str]) -> bool:
    """Anything other than 1/true/yes/on, including an empty value, is false."""
    return (value or "").strip().lower() in TRUE_FLAGS


@router.get("/", response_class=PlainTextResponse)
def index():
    return "Bridge base OK"


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@router.get("/history", response_model=HistoryResponse, responses=ERROR_RESPONSES)
def history(path: Optional[str] = Query(None, description="Database path")):
    """
    Return the children of ``path`` with their fields, newest key first.
    """
    db_path = normalize_path(path)
    # Path errors take precedence over database configuration errors.
    nodes = read_history(get_history_reader(), db_path)
    return {
        "ok": True,
        "path": db_path,
        "count": len(nodes),
        "items": [node.as_dict() for node in nodes],
    }


@router.get("/view", response_class=HTMLResponse)
def view(
    path: Optional[str] = Query(None, description="Database path"),
    title: Optional[str] = Query(None),
    sub: Optional[str] = Query(None),
    unit: Optional[str] = Query(None),
    amount_key: Optional[str] = Query(None, alias="amountKey"),
    compact: Optional[str] = Query(None),
):
    options = CardOptions(
        title=title or None,
        subtitle=sub or None,
        unit=unit or None,
        amount_key=amount_key or None,
        compact=parse_flag(compact),
    )
    try:
        db_path = normalize_path(path)
        nodes = read_history(get_history_reader(), db_path)
    except BridgeError as exc:
        return HTMLResponse(render_error_page(exc.message), status_code=exc.status_code)
    return HTMLResponse(render_page(db_path, nodes, options))
