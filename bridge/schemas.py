"""
Pydantic schemas for the bridge responses.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: Literal["ok"]


class FieldEntrySchema(BaseModel):
    key: str
    data: Any = None


class HistoryNodeSchema(BaseModel):
    key: str
    children: list[FieldEntrySchema]


class HistoryResponse(BaseModel):
    ok: Literal[True] = True
    path: str
    count: int
    items: list[HistoryNodeSchema]


class ErrorResponse(BaseModel):
    ok: Literal[False] = False
    error: str
