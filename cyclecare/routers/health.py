"""Health check endpoint — public, no auth required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import asyncpg
from fastapi import APIRouter

from cyclecare.config import get_settings
from cyclecare.cycle.config_loader import get_cycle_config
from cyclecare.services.supabase import get_pool

router = APIRouter(tags=["system"])
logger = logging.getLogger("cyclecare.health")


@router.get("/health")
async def health_check() -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    Also pings the database and reports the loaded cycle engine config version.
    """
    settings = get_settings()
    db_ok = False
    try:
        pool = get_pool()
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        db_ok = True
    except (RuntimeError, OSError, asyncpg.PostgresError) as exc:
        logger.warning("Health check DB probe failed: %s", exc)

    return {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if db_ok else "unreachable",
        "cycle_config_version": get_cycle_config().version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
