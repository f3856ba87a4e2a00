"""Menstrual cycle engine for CycleCare.

Pure, synchronous computation over an immutable history snapshot: every
result is a function of the logged periods, daily logs, per-user settings
and an injected reference date.  Menstrual data is sensitive health data;
nothing here persists it or sends it anywhere.

Modules:
    history            — Entities, enums and the normalized CycleHistory snapshot
    phase              — Current phase and day of cycle
    predictor          — Next period, ovulation, fertile window and confidence
    aggregator         — Historical statistics and symptom frequency
    calendar_projector — Per-day calendar classification
    reminders          — Reminder dates for the notifier
    engine             — One-call facade over the above
    repository         — Store rows ↔ engine entities, period commands
"""

from cyclecare.cycle.aggregator import CycleStatistics, CycleStatisticsAggregator, Regularity
from cyclecare.cycle.calendar_projector import CalendarProjector, DayClassification
from cyclecare.cycle.engine import CycleEngine, CycleOverview
from cyclecare.cycle.history import CycleHistory, CycleRecord, CycleSettings, DailyLog
from cyclecare.cycle.phase import CyclePhase, PhaseCalculator, PhaseResult
from cyclecare.cycle.predictor import CyclePrediction, CyclePredictor
from cyclecare.cycle.reminders import Reminder, plan_reminders

__all__ = [
    "CalendarProjector",
    "CycleEngine",
    "CycleHistory",
    "CycleOverview",
    "CyclePhase",
    "CyclePrediction",
    "CyclePredictor",
    "CycleRecord",
    "CycleSettings",
    "CycleStatistics",
    "CycleStatisticsAggregator",
    "DailyLog",
    "DayClassification",
    "PhaseCalculator",
    "PhaseResult",
    "Regularity",
    "Reminder",
    "plan_reminders",
]
