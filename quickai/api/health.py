"""Liveness endpoints (no auth)."""

import logging

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from quickai.core.database import check_connection

logger = logging.getLogger("quickai")

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse)
def root():
    return "Server is running!"


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness check: database reachable."""
    connected = check_connection()
    if not connected:
        logger.warning("[readyz] database not reachable")
    return {"ok": connected}
