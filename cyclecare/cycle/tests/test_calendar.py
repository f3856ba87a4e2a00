"""Tests for the per-day calendar projection."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta

import pytest

from cyclecare.cycle.calendar_projector import CalendarProjector, month_days
from cyclecare.cycle.config_loader import CycleEngineConfig
from cyclecare.cycle.history import CycleHistory, CycleSettings, FlowLevel
from cyclecare.cycle.predictor import CyclePrediction, CyclePredictor
from cyclecare.cycle.tests.conftest import FIRST_START, SECOND_START, make_cycle, make_log

FEBRUARY = date(2024, 2, 1)
TODAY = date(2024, 2, 10)


@pytest.fixture
def two_period_history() -> CycleHistory:
    """Jan 1–5 and Jan 29–Feb 2, with a log on the second period's first day."""
    return CycleHistory.from_records(
        [make_cycle(FIRST_START), make_cycle(SECOND_START)],
        [make_log(SECOND_START, flow_level=FlowLevel.heavy)],
    )


def project(
    config: CycleEngineConfig,
    history: CycleHistory,
    month: date,
    settings: CycleSettings | None = None,
) -> dict:
    settings = settings or CycleSettings()
    prediction = CyclePredictor(config).predict(history, settings, TODAY)
    return CalendarProjector(config).classify(month, history, prediction, settings)


class TestMonthDays:
    def test_leap_february(self) -> None:
        days = month_days(date(2024, 2, 15))
        assert len(days) == 29
        assert days[0] == date(2024, 2, 1)
        assert days[-1] == date(2024, 2, 29)

    def test_december(self) -> None:
        assert month_days(date(2023, 12, 31))[-1] == date(2023, 12, 31)


class TestClassify:
    def test_every_day_of_month_present(
        self, engine_config: CycleEngineConfig, two_period_history: CycleHistory
    ) -> None:
        days = project(engine_config, two_period_history, FEBRUARY)
        assert list(days) == month_days(FEBRUARY)

    def test_logged_period_days(
        self, engine_config: CycleEngineConfig, two_period_history: CycleHistory
    ) -> None:
        days = project(engine_config, two_period_history, date(2024, 1, 1))
        for offset in range(5):
            d = FIRST_START + timedelta(days=offset)
            assert days[d].is_period_day
            assert not days[d].is_predicted_period
        assert not days[date(2024, 1, 6)].is_period_day

    def test_period_spanning_month_boundary(
        self, engine_config: CycleEngineConfig, two_period_history: CycleHistory
    ) -> None:
        days = project(engine_config, two_period_history, FEBRUARY)
        assert days[date(2024, 2, 1)].is_period_day
        assert days[date(2024, 2, 2)].is_period_day
        assert not days[date(2024, 2, 3)].is_period_day

    def test_ovulation_and_fertile_days(
        self, engine_config: CycleEngineConfig, two_period_history: CycleHistory
    ) -> None:
        days = project(engine_config, two_period_history, FEBRUARY)
        assert days[date(2024, 2, 12)].is_ovulation_day
        assert not days[date(2024, 2, 12)].is_fertile_day
        assert days[date(2024, 2, 7)].is_fertile_day
        assert days[date(2024, 2, 13)].is_fertile_day
        assert not days[date(2024, 2, 6)].is_fertile_day
        assert not days[date(2024, 2, 14)].is_fertile_day

    def test_ovulation_day_not_fertile_with_ovulation_tracking_off(
        self, engine_config: CycleEngineConfig, two_period_history: CycleHistory
    ) -> None:
        settings = CycleSettings(ovulation_tracking=False)
        days = project(engine_config, two_period_history, FEBRUARY, settings)
        assert not days[date(2024, 2, 12)].is_ovulation_day
        assert not days[date(2024, 2, 12)].is_fertile_day
        assert days[date(2024, 2, 11)].is_fertile_day
        assert days[date(2024, 2, 13)].is_fertile_day

    def test_predicted_period_window(
        self, engine_config: CycleEngineConfig, two_period_history: CycleHistory
    ) -> None:
        days = project(engine_config, two_period_history, FEBRUARY)
        predicted = [d for d, c in days.items() if c.is_predicted_period]
        assert predicted == [date(2024, 2, 26 + i) for i in range(4)]

    def test_pms_days_before_predicted_period(
        self, engine_config: CycleEngineConfig, two_period_history: CycleHistory
    ) -> None:
        days = project(engine_config, two_period_history, FEBRUARY)
        pms = [d for d, c in days.items() if c.is_pms_day]
        assert pms == [date(2024, 2, 21 + i) for i in range(5)]

    def test_pms_days_before_logged_period(
        self, engine_config: CycleEngineConfig, two_period_history: CycleHistory
    ) -> None:
        days = project(engine_config, two_period_history, date(2024, 1, 1))
        assert days[date(2024, 1, 24)].is_pms_day
        assert days[date(2024, 1, 28)].is_pms_day
        assert not days[date(2024, 1, 29)].is_pms_day

    def test_pms_tracking_off(
        self, engine_config: CycleEngineConfig, two_period_history: CycleHistory
    ) -> None:
        days = project(
            engine_config, two_period_history, FEBRUARY, CycleSettings(pms_tracking=False)
        )
        assert not any(c.is_pms_day for c in days.values())

    def test_log_facets(
        self, engine_config: CycleEngineConfig, two_period_history: CycleHistory
    ) -> None:
        days = project(engine_config, two_period_history, date(2024, 1, 1))
        assert days[SECOND_START].has_log
        assert days[SECOND_START].flow_level == FlowLevel.heavy
        assert not days[date(2024, 1, 30)].has_log
        assert days[date(2024, 1, 30)].flow_level is None

    def test_logged_period_wins_over_stale_prediction(
        self, engine_config: CycleEngineConfig, two_period_history: CycleHistory
    ) -> None:
        settings = CycleSettings()
        prediction = CyclePredictor(engine_config).predict(two_period_history, settings, TODAY)
        stale = replace(
            prediction,
            next_period_date=date(2024, 1, 30),
            predicted_period_end=date(2024, 2, 3),
        )
        days = CalendarProjector(engine_config).classify(
            FEBRUARY, two_period_history, stale, settings
        )
        assert days[date(2024, 2, 1)].is_period_day
        assert not days[date(2024, 2, 1)].is_predicted_period
        assert days[date(2024, 2, 3)].is_predicted_period

    def test_no_prediction_without_completed_cycle(
        self, engine_config: CycleEngineConfig
    ) -> None:
        history = CycleHistory.from_records([make_cycle(FIRST_START, None)])
        days = project(engine_config, history, date(2024, 1, 1))
        assert days[date(2024, 1, 5)].is_period_day
        assert not days[date(2024, 1, 6)].is_period_day
        assert not any(
            c.is_predicted_period or c.is_ovulation_day or c.is_fertile_day
            for c in days.values()
        )

    def test_empty_prediction_object(self, engine_config: CycleEngineConfig) -> None:
        prediction = CyclePrediction(
            next_period_date=date(2024, 2, 20),
            days_until_next_period=10,
            average_cycle_length=28.0,
            average_period_length=5.0,
            confidence=0.4,
            predicted_period_end=date(2024, 2, 24),
        )
        days = CalendarProjector(engine_config).classify(
            FEBRUARY, CycleHistory.from_records(), prediction, CycleSettings(pms_tracking=False)
        )
        assert days[date(2024, 2, 20)].is_predicted_period
        assert not any(c.is_fertile_day or c.is_ovulation_day for c in days.values())
