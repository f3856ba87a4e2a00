"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from cyclecare.config import Settings, get_settings
from cyclecare.cycle.engine import CycleEngine
from cyclecare.cycle.repository import CycleRepository


@dataclass(frozen=True)
class AuthContext:
    """Caller identity forwarded by the upstream auth gateway."""

    user_id: uuid.UUID


async def get_current_user(
    request: Request, settings: Annotated[Settings, Depends(get_settings)]
) -> AuthContext:
    """Read the authenticated user UUID from the gateway header.

    The gateway strips any client-supplied copy of the header, so its
    presence is proof of authentication.
    """
    raw = request.headers.get(settings.user_id_header)
    if not raw:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return AuthContext(user_id=uuid.UUID(raw))
    except ValueError:
        raise HTTPException(status_code=401, detail="Malformed user id")


def get_repository() -> CycleRepository:
    return CycleRepository()


def get_engine() -> CycleEngine:
    return CycleEngine()


# Annotated shortcuts for route signatures
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Repository = Annotated[CycleRepository, Depends(get_repository)]
Engine = Annotated[CycleEngine, Depends(get_engine)]
