"""Shared fixtures and history builders for cycle engine tests."""

from __future__ import annotations

import json
from datetime import date, timedelta
from pathlib import Path
from uuid import UUID, uuid4

import pytest

from cyclecare.cycle.config_loader import CycleEngineConfig, load_cycle_config
from cyclecare.cycle.history import CycleHistory, CycleRecord, CycleSettings, DailyLog
from cyclecare.cycle.repository import build_history

# Fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Canonical test user ID
TEST_USER_ID = UUID("12345678-1234-5678-1234-567812345678")

# Reference scenario: one period Jan 1–5, next period started Jan 29
FIRST_START = date(2024, 1, 1)
SECOND_START = date(2024, 1, 29)
TEST_DATE = date(2024, 1, 29)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_cycle(
    period_start: date, period_days: int | None = 5, **kwargs: object
) -> CycleRecord:
    """A period of ``period_days`` calendar days, or an open one when None."""
    period_end = None
    if period_days is not None:
        period_end = period_start + timedelta(days=period_days - 1)
    return CycleRecord(
        cycle_id=uuid4(), period_start=period_start, period_end=period_end, **kwargs
    )


def make_log(log_date: date, **kwargs: object) -> DailyLog:
    return DailyLog(log_date=log_date, **kwargs)


def build_regular_history(
    n: int = 6, length: int = 28, start: date = FIRST_START, last_open: bool = True
) -> CycleHistory:
    """n consecutive periods ``length`` days apart; the last one still open."""
    cycles = []
    for i in range(n):
        is_last = i == n - 1
        cycles.append(make_cycle(start, None if is_last and last_open else 5))
        start += timedelta(days=length)
    return CycleHistory.from_records(cycles)


def build_history_from_lengths(lengths: list[int], start: date = FIRST_START) -> CycleHistory:
    """Periods separated by the given cycle lengths; the last one open."""
    cycles = [make_cycle(start)]
    for length in lengths:
        start += timedelta(days=length)
        cycles.append(make_cycle(start))
    cycles[-1] = CycleRecord(cycle_id=cycles[-1].cycle_id, period_start=start)
    return CycleHistory.from_records(cycles)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine_config() -> CycleEngineConfig:
    """Load the real cycle config for tests."""
    return load_cycle_config()


@pytest.fixture
def settings() -> CycleSettings:
    return CycleSettings()


@pytest.fixture
def empty_history() -> CycleHistory:
    return CycleHistory.from_records()


@pytest.fixture
def scenario_history() -> CycleHistory:
    """Jan 1–5 closed, Jan 29 open: one completed 28-day cycle."""
    return CycleHistory.from_records(
        [make_cycle(FIRST_START), make_cycle(SECOND_START, None)]
    )


@pytest.fixture
def cycle_history_raw() -> dict:
    return json.loads((FIXTURES_DIR / "cycle_history.json").read_text())


@pytest.fixture
def logged_history(cycle_history_raw: dict) -> CycleHistory:
    """Three completed cycles (28, 30, 28 days) with symptom logs, decoded from store rows."""
    return build_history(cycle_history_raw["cycles"], cycle_history_raw["logs"])
