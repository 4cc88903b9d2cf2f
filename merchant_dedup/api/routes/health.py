"""Health check endpoint."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

from ... import __version__
from ..helpers import get_config, get_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/health")
async def health(request: Request) -> dict[str, Any]:
    """Health check — reports version, uptime, suggestion count and the active dedup config."""
    server_started_at = request.app.state.server_started_at
    uptime_seconds = round((datetime.now(timezone.utc) - server_started_at).total_seconds())

    return {
        "status": "healthy",
        "version": __version__,
        "uptime_seconds": uptime_seconds,
        "suggestion_count": len(get_store()),
        "dedup_config": get_config().to_dict(),
    }
