"""Cycle tracking endpoints: period commands, daily logs, settings and engine views.

Every read loads a fresh history snapshot and re-runs the engine; nothing
derived is stored.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from cyclecare.cycle.repository import CycleConflictError, CycleDataError
from cyclecare.dependencies import CurrentUser, Engine, Repository
from cyclecare.models.base import ErrorDetail
from cyclecare.models.cycle import (
    CalendarDayRead,
    CycleRead,
    DailyLogRead,
    DailyLogWrite,
    OverviewRead,
    PeriodEnd,
    PeriodStart,
    SettingsRead,
    SettingsUpdate,
    StatisticsRead,
)

router = APIRouter(prefix="/cycles", tags=["cycles"])
logger = logging.getLogger("cyclecare.routers.cycles")


def _parse_month(month: str | None, today: date) -> date:
    if month is None:
        return today.replace(day=1)
    try:
        return datetime.strptime(month, "%Y-%m").date()
    except ValueError:
        raise HTTPException(status_code=400, detail="month must be formatted YYYY-MM")


# ---------- Periods ----------


@router.get("", response_model=list[CycleRead])
async def list_cycles(user: CurrentUser, repo: Repository) -> Any:
    """All periods, newest first, with the cycle length once it is known."""
    history = await repo.load_history(user.user_id)
    lengths = {id(record): length for record, length in history.completed_cycles()}
    return [
        CycleRead(
            cycle_id=record.cycle_id,
            period_start=record.period_start,
            period_end=record.period_end,
            flow_intensity=record.flow_intensity,
            notes=record.notes,
            is_open=record.is_open,
            period_length=record.period_length,
            cycle_length=lengths.get(id(record)),
        )
        for record in reversed(history.cycles)
    ]


@router.post(
    "/start",
    response_model=CycleRead,
    status_code=201,
    responses={409: {"model": ErrorDetail}},
)
async def start_period(user: CurrentUser, repo: Repository, body: PeriodStart) -> Any:
    try:
        record = await repo.start_period(
            user.user_id, body.start_date, body.flow_intensity, body.notes
        )
    except CycleConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return CycleRead.model_validate(record)


@router.post(
    "/end",
    response_model=CycleRead,
    responses={400: {"model": ErrorDetail}, 409: {"model": ErrorDetail}},
)
async def end_period(user: CurrentUser, repo: Repository, body: PeriodEnd) -> Any:
    try:
        record = await repo.end_period(user.user_id, body.end_date)
    except CycleConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except CycleDataError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return CycleRead.model_validate(record)


@router.delete("/{cycle_id}", status_code=204, responses={404: {"model": ErrorDetail}})
async def delete_cycle(cycle_id: uuid.UUID, user: CurrentUser, repo: Repository) -> None:
    if not await repo.delete_cycle(user.user_id, cycle_id):
        raise HTTPException(status_code=404, detail="Cycle not found")


# ---------- Daily logs ----------


@router.get("/daily-logs", response_model=list[DailyLogRead])
async def list_daily_logs(
    user: CurrentUser,
    repo: Repository,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
) -> Any:
    history = await repo.load_history(user.user_id)
    logs = history.logs_between(start_date or date.min, end_date or date.max)
    return [DailyLogRead.model_validate(log) for log in logs]


@router.put("/daily-logs", response_model=DailyLogRead)
async def save_daily_log(user: CurrentUser, repo: Repository, body: DailyLogWrite) -> Any:
    log = await repo.save_daily_log(user.user_id, body.to_entity())
    return DailyLogRead.model_validate(log)


@router.delete(
    "/daily-logs/{log_date}", status_code=204, responses={404: {"model": ErrorDetail}}
)
async def delete_daily_log(log_date: date, user: CurrentUser, repo: Repository) -> None:
    if not await repo.delete_daily_log(user.user_id, log_date):
        raise HTTPException(status_code=404, detail="Daily log not found")


# ---------- Settings ----------


@router.get("/settings", response_model=SettingsRead)
async def get_cycle_settings(user: CurrentUser, repo: Repository) -> Any:
    return SettingsRead.model_validate(await repo.load_settings(user.user_id))


@router.put("/settings", response_model=SettingsRead)
async def update_cycle_settings(
    user: CurrentUser, repo: Repository, body: SettingsUpdate
) -> Any:
    current = await repo.load_settings(user.user_id)
    saved = await repo.save_settings(user.user_id, body.apply_to(current))
    return SettingsRead.model_validate(saved)


# ---------- Engine views ----------


@router.get("/overview", response_model=OverviewRead)
async def get_overview(
    user: CurrentUser,
    repo: Repository,
    engine: Engine,
    as_of: date | None = Query(default=None),
) -> Any:
    """Phase, prediction, statistics, reminders and tips for ``as_of`` (default today)."""
    history = await repo.load_history(user.user_id)
    settings = await repo.load_settings(user.user_id)
    overview = engine.overview(history, settings, today=as_of or date.today())
    return OverviewRead.model_validate(overview)


@router.get(
    "/calendar",
    response_model=list[CalendarDayRead],
    responses={400: {"model": ErrorDetail}},
)
async def get_calendar(
    user: CurrentUser,
    repo: Repository,
    engine: Engine,
    month: str | None = Query(default=None, description="YYYY-MM; defaults to this month"),
    as_of: date | None = Query(default=None),
) -> Any:
    today = as_of or date.today()
    first_of_month = _parse_month(month, today)
    history = await repo.load_history(user.user_id)
    settings = await repo.load_settings(user.user_id)
    days = engine.calendar(first_of_month, history, settings, today=today)
    return [CalendarDayRead.model_validate(day) for day in days.values()]


@router.get("/statistics", response_model=StatisticsRead | None)
async def get_statistics(user: CurrentUser, repo: Repository, engine: Engine) -> Any:
    """Historical statistics; null until two cycles have been completed."""
    history = await repo.load_history(user.user_id)
    settings = await repo.load_settings(user.user_id)
    stats = engine.aggregator.aggregate(history, settings)
    if stats is None:
        logger.debug("Statistics unavailable for user %s", user.user_id)
        return None
    return StatisticsRead.model_validate(stats)
