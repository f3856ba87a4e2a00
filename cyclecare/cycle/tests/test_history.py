"""Tests for the cycle history snapshot: entities, enums and normalization."""

from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest

from cyclecare.cycle.history import (
    CervicalMucus,
    CycleHistory,
    CycleRecord,
    FlowIntensity,
    FlowLevel,
    SymptomCategory,
    SymptomType,
)
from cyclecare.cycle.tests.conftest import FIRST_START, SECOND_START, make_cycle, make_log


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TestEnums:
    def test_flow_intensity_rank_is_ordinal(self) -> None:
        assert FlowIntensity.spotting.rank == 0
        assert FlowIntensity.very_heavy.rank == 4
        assert FlowIntensity.light.rank < FlowIntensity.heavy.rank

    def test_flow_level_none_is_not_a_period_day(self) -> None:
        assert not FlowLevel.none.is_period
        assert FlowLevel.spotting.is_period

    @pytest.mark.parametrize(
        "intensity, expected",
        [
            (None, FlowLevel.medium),
            (FlowIntensity.light, FlowLevel.light),
            (FlowIntensity.very_heavy, FlowLevel.very_heavy),
        ],
    )
    def test_flow_level_seeded_from_intensity(
        self, intensity: FlowIntensity | None, expected: FlowLevel
    ) -> None:
        assert FlowLevel.from_intensity(intensity) == expected

    def test_fertile_cervical_mucus(self) -> None:
        assert CervicalMucus.egg_white.is_fertile
        assert CervicalMucus.watery.is_fertile
        assert not CervicalMucus.dry.is_fertile

    def test_every_symptom_has_a_category(self) -> None:
        for symptom in SymptomType:
            assert isinstance(symptom.category, SymptomCategory)
        assert SymptomType.cramps.category == SymptomCategory.pain
        assert SymptomType.bloating.category == SymptomCategory.digestive

    def test_symptom_order_follows_declaration(self) -> None:
        assert SymptomType.cramps.order == 0
        assert SymptomType.backache.order < SymptomType.bloating.order


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class TestCycleRecord:
    def test_period_length_is_end_minus_start(self) -> None:
        record = make_cycle(FIRST_START, 5)
        assert record.period_end == date(2024, 1, 5)
        assert record.period_length == 4
        assert not record.is_open

    def test_open_record_has_no_period_length(self) -> None:
        record = make_cycle(FIRST_START, None)
        assert record.is_open
        assert record.period_length is None

    def test_menstrual_span_of_open_record_uses_assumed_days(self) -> None:
        record = make_cycle(FIRST_START, None)
        assert record.menstrual_span(5) == (date(2024, 1, 1), date(2024, 1, 5))

    def test_menstrual_span_of_closed_record(self) -> None:
        record = make_cycle(FIRST_START, 3)
        assert record.menstrual_span(5) == (date(2024, 1, 1), date(2024, 1, 3))

    def test_daily_log_period_day(self) -> None:
        assert make_log(FIRST_START, flow_level=FlowLevel.light).is_period_day
        assert not make_log(FIRST_START, flow_level=FlowLevel.none).is_period_day
        assert not make_log(FIRST_START).is_period_day


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


class TestNormalization:
    def test_records_are_sorted_by_start(self) -> None:
        later = make_cycle(SECOND_START)
        earlier = make_cycle(FIRST_START)
        history = CycleHistory.from_records([later, earlier])
        assert [c.period_start for c in history.cycles] == [FIRST_START, SECOND_START]

    def test_end_before_start_is_dropped(self) -> None:
        bad = CycleRecord(cycle_id=uuid4(), period_start=SECOND_START, period_end=FIRST_START)
        history = CycleHistory.from_records([bad])
        assert history.cycles[0].is_open

    def test_same_start_records_are_merged(self) -> None:
        first_id = uuid4()
        a = CycleRecord(cycle_id=first_id, period_start=FIRST_START, period_end=date(2024, 1, 3))
        b = CycleRecord(
            cycle_id=uuid4(),
            period_start=FIRST_START,
            period_end=date(2024, 1, 6),
            flow_intensity=FlowIntensity.heavy,
        )
        history = CycleHistory.from_records([a, b])
        assert len(history.cycles) == 1
        merged = history.cycles[0]
        assert merged.cycle_id == first_id
        assert merged.period_end == date(2024, 1, 6)
        assert merged.flow_intensity == FlowIntensity.heavy

    def test_overlapping_period_is_clipped(self) -> None:
        long_period = CycleRecord(
            cycle_id=uuid4(), period_start=FIRST_START, period_end=date(2024, 1, 10)
        )
        following = make_cycle(date(2024, 1, 8))
        history = CycleHistory.from_records([long_period, following])
        assert history.cycles[0].period_end == date(2024, 1, 7)

    def test_open_record_followed_by_later_start_is_superseded(self) -> None:
        history = CycleHistory.from_records(
            [make_cycle(FIRST_START, None), make_cycle(SECOND_START)]
        )
        assert history.is_superseded(0)
        assert not history.is_superseded(1)
        assert history.active_cycle is None
        assert history.cycle_lengths() == [28]
        assert history.period_lengths() == [4]

    def test_active_cycle_is_latest_open_record(self, scenario_history: CycleHistory) -> None:
        assert scenario_history.active_cycle is not None
        assert scenario_history.active_cycle.period_start == SECOND_START

    def test_duplicate_logs_keep_last(self) -> None:
        history = CycleHistory.from_records(
            logs=[
                make_log(FIRST_START, pain_level=2),
                make_log(FIRST_START, pain_level=7),
            ]
        )
        assert len(history.logs) == 1
        assert history.log_for(FIRST_START).pain_level == 7

    def test_normalization_is_idempotent(self, logged_history: CycleHistory) -> None:
        again = CycleHistory.from_records(logged_history.cycles, logged_history.logs)
        assert again == logged_history


class TestAccessors:
    def test_empty_history(self, empty_history: CycleHistory) -> None:
        assert empty_history.latest is None
        assert empty_history.active_cycle is None
        assert empty_history.cycle_lengths() == []
        assert empty_history.completed_cycles() == []

    def test_cycle_lengths_oldest_first(self, logged_history: CycleHistory) -> None:
        assert logged_history.cycle_lengths() == [28, 30, 28]
        assert logged_history.period_lengths() == [4, 4, 4]

    def test_logs_between_is_inclusive(self, logged_history: CycleHistory) -> None:
        logs = logged_history.logs_between(date(2024, 1, 2), date(2024, 1, 30))
        assert [log.log_date for log in logs] == [
            date(2024, 1, 2),
            date(2024, 1, 15),
            date(2024, 1, 30),
        ]

    def test_log_for_missing_day(self, logged_history: CycleHistory) -> None:
        assert logged_history.log_for(date(2024, 1, 3)) is None
