"""CycleCare API — FastAPI application entry point.

Run locally:
    uvicorn cyclecare.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cyclecare.config import get_settings
from cyclecare.cycle.config_loader import reload_cycle_config
from cyclecare.routers import cycles, health
from cyclecare.services.supabase import close_pool, init_pool

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("cyclecare")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logger.info(
        "Starting CycleCare API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    if settings.cycle_config_path:
        reload_cycle_config(Path(settings.cycle_config_path))
    await init_pool(settings)
    yield
    await close_pool()
    logger.info("CycleCare API shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="CycleCare API",
        description=(
            "Menstrual cycle tracking — period logging, daily symptom logs, "
            "phase, next-period and fertile-window predictions, and statistics."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Health check (outside v1 prefix — always at /health) ----------
    app.include_router(health.router)

    # ---------- API v1 routes ----------
    app.include_router(cycles.router, prefix="/api/v1")

    return app


app = create_app()
