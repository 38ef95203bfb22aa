"""
FastAPI application entry point for the history bridge.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bridge.errors import BridgeError
from bridge.routes import router


async def handle_bridge_error(request: Request, exc: BridgeError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.message},
    )


def create_app() -> FastAPI:
    app = FastAPI(title="History Bridge", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BridgeError, handle_bridge_error)
    app.include_router(router)
    return app


app = create_app()
