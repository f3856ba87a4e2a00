"""Tests for the /api/v1/cycles endpoints with the repository stubbed out."""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cyclecare.config import Settings, get_settings
from cyclecare.cycle.config_loader import CycleEngineConfig
from cyclecare.cycle.engine import CycleEngine
from cyclecare.cycle.history import CycleHistory, CycleSettings, DailyLog, SymptomType
from cyclecare.cycle.repository import CycleConflictError
from cyclecare.cycle.tests.conftest import SECOND_START, TEST_USER_ID, make_cycle
from cyclecare.dependencies import get_engine, get_repository
from cyclecare.routers import cycles

HEADERS = {"X-User-Id": str(TEST_USER_ID)}


@pytest.fixture
def repo(scenario_history: CycleHistory) -> MagicMock:
    fake = MagicMock()
    fake.load_history = AsyncMock(return_value=scenario_history)
    fake.load_settings = AsyncMock(return_value=CycleSettings())
    return fake


@pytest.fixture
def client(repo: MagicMock, engine_config: CycleEngineConfig) -> TestClient:
    app = FastAPI()
    app.include_router(cycles.router, prefix="/api/v1")
    app.dependency_overrides[get_settings] = lambda: Settings(
        supabase_db_url="postgresql://localhost/test"
    )
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_engine] = lambda: CycleEngine(engine_config)
    return TestClient(app)


class TestAuth:
    def test_missing_user_header(self, client: TestClient) -> None:
        response = client.get("/api/v1/cycles/overview")
        assert response.status_code == 401

    def test_malformed_user_header(self, client: TestClient) -> None:
        response = client.get("/api/v1/cycles/overview", headers={"X-User-Id": "nobody"})
        assert response.status_code == 401


class TestViews:
    def test_overview(self, client: TestClient) -> None:
        response = client.get(
            "/api/v1/cycles/overview", params={"as_of": "2024-02-11"}, headers=HEADERS
        )
        assert response.status_code == 200
        body = response.json()
        assert body["phase"]["phase"] == "ovulation"
        assert body["phase"]["day_of_cycle"] == 14
        assert body["prediction"]["next_period_date"] == "2024-02-26"
        assert body["prediction"]["ovulation_date"] == "2024-02-12"
        assert body["statistics"] is None
        assert body["is_fertile_today"] is True
        assert body["reminders"][-1]["dedup_key"] == "period_reminder:2024-02-26"

    def test_calendar(self, client: TestClient) -> None:
        response = client.get(
            "/api/v1/cycles/calendar",
            params={"month": "2024-02", "as_of": "2024-02-11"},
            headers=HEADERS,
        )
        assert response.status_code == 200
        days = response.json()
        assert len(days) == 29
        assert days[11]["date"] == "2024-02-12"
        assert days[11]["is_ovulation_day"] is True

    def test_calendar_rejects_bad_month(self, client: TestClient) -> None:
        response = client.get(
            "/api/v1/cycles/calendar", params={"month": "2024-13"}, headers=HEADERS
        )
        assert response.status_code == 400

    def test_statistics_null_with_one_cycle(self, client: TestClient) -> None:
        response = client.get("/api/v1/cycles/statistics", headers=HEADERS)
        assert response.status_code == 200
        assert response.json() is None

    def test_list_cycles_newest_first(self, client: TestClient) -> None:
        response = client.get("/api/v1/cycles", headers=HEADERS)
        assert response.status_code == 200
        body = response.json()
        assert [c["period_start"] for c in body] == ["2024-01-29", "2024-01-01"]
        assert body[0]["is_open"] is True
        assert body[0]["cycle_length"] is None
        assert body[1]["cycle_length"] == 28


class TestCommands:
    def test_start_period(self, client: TestClient, repo: MagicMock) -> None:
        repo.start_period = AsyncMock(return_value=make_cycle(SECOND_START, None))
        response = client.post(
            "/api/v1/cycles/start",
            json={"start_date": "2024-01-29", "flow_intensity": "light"},
            headers=HEADERS,
        )
        assert response.status_code == 201
        assert response.json()["is_open"] is True
        repo.start_period.assert_awaited_once()

    def test_start_period_conflict(self, client: TestClient, repo: MagicMock) -> None:
        repo.start_period = AsyncMock(side_effect=CycleConflictError("before latest"))
        response = client.post(
            "/api/v1/cycles/start", json={"start_date": "2023-12-01"}, headers=HEADERS
        )
        assert response.status_code == 409

    def test_end_without_active_period(self, client: TestClient, repo: MagicMock) -> None:
        repo.end_period = AsyncMock(side_effect=CycleConflictError("No active period to end"))
        response = client.post(
            "/api/v1/cycles/end", json={"end_date": "2024-02-02"}, headers=HEADERS
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "No active period to end"

    def test_delete_missing_cycle(self, client: TestClient, repo: MagicMock) -> None:
        repo.delete_cycle = AsyncMock(return_value=False)
        response = client.delete(
            "/api/v1/cycles/00000000-0000-4000-8000-000000000099", headers=HEADERS
        )
        assert response.status_code == 404

    def test_save_daily_log(self, client: TestClient, repo: MagicMock) -> None:
        saved = DailyLog(
            log_date=date(2024, 2, 3),
            pain_level=5,
            symptoms=frozenset({SymptomType.headache, SymptomType.cramps}),
        )
        repo.save_daily_log = AsyncMock(return_value=saved)
        response = client.put(
            "/api/v1/cycles/daily-logs",
            json={"log_date": "2024-02-03", "pain_level": 5, "symptoms": ["headache", "cramps"]},
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["symptoms"] == ["cramps", "headache"]

    def test_daily_log_pain_out_of_range(self, client: TestClient) -> None:
        response = client.put(
            "/api/v1/cycles/daily-logs",
            json={"log_date": "2024-02-03", "pain_level": 11},
            headers=HEADERS,
        )
        assert response.status_code == 422

    def test_update_settings_merges(self, client: TestClient, repo: MagicMock) -> None:
        repo.save_settings = AsyncMock(side_effect=lambda user_id, settings: settings)
        response = client.put(
            "/api/v1/cycles/settings",
            json={"luteal_phase_length": 12, "pms_tracking": False},
            headers=HEADERS,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["luteal_phase_length"] == 12
        assert body["pms_tracking"] is False
        assert body["average_cycle_length_default"] == 28
