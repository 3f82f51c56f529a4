# -*- coding: utf-8 -*-
"""
GutDiary API

FODMAP food and symptom diary with AI-assisted analysis.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .app_db import init_app_db
from .auth.api import router as auth_router
from .auth.security import get_current_user_from_request
from .config import settings
from .feedback.api import router as feedback_router
from .flows.api import router as ai_router
from .safe_foods.api import router as safe_foods_router
from .timeline.api import router as timeline_router
from .trends.api import router as trends_router

log = logging.getLogger(__name__)

app = FastAPI(
    title="GutDiary",
    description="Food and symptom diary with FODMAP analysis",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup_init_db() -> None:
    init_app_db(settings.app_db_path)


# TestClient without a context manager skips startup hooks.
init_app_db(settings.app_db_path)

_PUBLIC_PATHS = ("/api/health", "/api/docs", "/api/redoc", "/api/openapi.json")


def _needs_identity(path: str) -> bool:
    if path != "/api" and not path.startswith("/api/"):
        return False
    return not any(path == public or path.startswith(public + "/") for public in _PUBLIC_PATHS)


@app.middleware("http")
async def _auth_gate(request: Request, call_next):
    # Every diary route is per-user; reject before routing so 404s never leak.
    if _needs_identity(request.url.path):
        try:
            get_current_user_from_request(request)
        except HTTPException as exc:
            log.info("unauthenticated %s %s: %s", request.method, request.url.path, exc.detail)
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    return await call_next(request)


app.include_router(auth_router)
app.include_router(timeline_router)
app.include_router(safe_foods_router)
app.include_router(ai_router)
app.include_router(trends_router)
app.include_router(feedback_router)


@app.get("/api/health")
def health_check():
    return {
        "status": "ok",
        "version": app.version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def run() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    import uvicorn

    try:
        port = int(settings.port_raw)
    except ValueError:
        port = 8000
    log.info("starting GutDiary on %s:%s", settings.host, port)
    uvicorn.run("gutdiary.api:app", host=settings.host, port=port, reload=False, log_level=settings.log_level)
