"""Liveness probe."""

from __future__ import annotations

from fastapi import APIRouter

from attendcode import __version__
from attendcode.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"ok": True, "version": __version__, "secret_store": settings.secret_store}
