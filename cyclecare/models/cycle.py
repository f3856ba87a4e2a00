"""Pydantic request/response models for the cycle tracking API."""

from __future__ import annotations

import uuid
from datetime import date

from pydantic import Field, field_validator

from cyclecare.cycle.aggregator import Regularity
from cyclecare.cycle.history import (
    CervicalMucus,
    CycleSettings,
    DailyLog,
    FlowIntensity,
    FlowLevel,
    Mood,
    SleepQuality,
    SymptomType,
)
from cyclecare.cycle.phase import CyclePhase
from cyclecare.cycle.reminders import ReminderKind
from cyclecare.models.base import CycleCareBase


# ---------- Periods ----------


class PeriodStart(CycleCareBase):
    start_date: date
    flow_intensity: FlowIntensity | None = None
    notes: str | None = Field(default=None, max_length=2000)


class PeriodEnd(CycleCareBase):
    end_date: date


class CycleRead(CycleCareBase):
    cycle_id: uuid.UUID | None
    period_start: date
    period_end: date | None = None
    flow_intensity: FlowIntensity | None = None
    notes: str | None = None
    is_open: bool
    period_length: int | None = None
    cycle_length: int | None = None  # None until the next period starts


# ---------- Daily logs ----------


class DailyLogBase(CycleCareBase):
    log_date: date
    flow_level: FlowLevel | None = None
    mood: Mood | None = None
    pain_level: int | None = Field(default=None, ge=0, le=10)
    energy_level: int | None = Field(default=None, ge=0, le=10)
    symptoms: list[SymptomType] = Field(default_factory=list)
    sleep_quality: SleepQuality | None = None
    cervical_mucus: CervicalMucus | None = None
    notes: str | None = Field(default=None, max_length=2000)


class DailyLogWrite(DailyLogBase):
    def to_entity(self) -> DailyLog:
        return DailyLog(
            log_date=self.log_date,
            flow_level=self.flow_level,
            mood=self.mood,
            pain_level=self.pain_level,
            energy_level=self.energy_level,
            symptoms=frozenset(self.symptoms),
            sleep_quality=self.sleep_quality,
            cervical_mucus=self.cervical_mucus,
            notes=self.notes,
        )


class DailyLogRead(DailyLogBase):
    log_id: uuid.UUID | None = None
    is_period_day: bool = False

    @field_validator("symptoms", mode="before")
    @classmethod
    def order_symptoms(cls, value: object) -> object:
        if isinstance(value, (set, frozenset)):
            return sorted(value, key=lambda s: SymptomType(s).order)
        return value


# ---------- Settings ----------


class SettingsRead(CycleCareBase):
    average_cycle_length_default: int
    average_period_length_default: int
    luteal_phase_length: int
    fertile_window_tracking: bool
    ovulation_tracking: bool
    pms_tracking: bool
    reminder_enabled: bool
    reminder_days_before: int


class SettingsUpdate(CycleCareBase):
    average_cycle_length_default: int | None = Field(default=None, ge=15, le=90)
    average_period_length_default: int | None = Field(default=None, ge=1, le=15)
    luteal_phase_length: int | None = Field(default=None, ge=7, le=20)
    fertile_window_tracking: bool | None = None
    ovulation_tracking: bool | None = None
    pms_tracking: bool | None = None
    reminder_enabled: bool | None = None
    reminder_days_before: int | None = Field(default=None, ge=0, le=14)

    def apply_to(self, current: CycleSettings) -> CycleSettings:
        """Return ``current`` with every field set on this update replaced."""
        values = {
            name: getattr(current, name) for name in SettingsRead.model_fields
        }
        values.update(self.model_dump(exclude_unset=True, exclude_none=True))
        return CycleSettings(**values)


# ---------- Engine output ----------


class PhaseRead(CycleCareBase):
    phase: CyclePhase
    day_of_cycle: int
    cycle_progress: float
    is_overdue: bool
    cycle_length_used: int | None = None
    period_length_used: int | None = None


class PredictionRead(CycleCareBase):
    next_period_date: date
    days_until_next_period: int
    average_cycle_length: float
    average_period_length: float
    confidence: float
    predicted_period_end: date
    ovulation_date: date | None = None
    days_until_ovulation: int | None = None
    fertile_window_start: date | None = None
    fertile_window_end: date | None = None
    pms_start: date | None = None
    cycles_used: int
    used_default_length: bool
    warnings: list[str] = Field(default_factory=list)


class StatisticsRead(CycleCareBase):
    average_cycle_length: float
    average_period_length: float
    shortest_cycle: int
    longest_cycle: int
    cycle_regularity: Regularity
    cycle_variation: float
    total_cycles_tracked: int
    most_common_symptoms: list[SymptomType] = Field(default_factory=list)
    average_pain_level: float | None = None


class ReminderRead(CycleCareBase):
    kind: ReminderKind
    remind_on: date
    event_date: date
    days_before: int
    dedup_key: str


class OverviewRead(CycleCareBase):
    as_of: date
    phase: PhaseRead
    prediction: PredictionRead | None = None
    statistics: StatisticsRead | None = None
    reminders: list[ReminderRead] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
    is_fertile_today: bool = False


class CalendarDayRead(CycleCareBase):
    date: date
    is_period_day: bool
    is_predicted_period: bool
    is_ovulation_day: bool
    is_fertile_day: bool
    is_pms_day: bool
    has_log: bool
    flow_level: FlowLevel | None = None
