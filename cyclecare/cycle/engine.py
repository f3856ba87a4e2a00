"""One-call facade over the cycle engine components.

``CycleEngine`` re-runs the phase calculator, predictor, aggregator and
reminder planner against a fresh snapshot on every call.  Nothing is cached,
so after any write the caller simply invokes it again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from cyclecare.cycle.aggregator import CycleStatistics, CycleStatisticsAggregator
from cyclecare.cycle.calendar_projector import CalendarProjector, DayClassification
from cyclecare.cycle.config_loader import CycleEngineConfig, get_cycle_config
from cyclecare.cycle.history import CycleHistory, CycleSettings
from cyclecare.cycle.phase import CyclePhase, PhaseCalculator, PhaseResult
from cyclecare.cycle.predictor import CyclePrediction, CyclePredictor
from cyclecare.cycle.reminders import Reminder, plan_reminders

logger = logging.getLogger("cyclecare.cycle.engine")

PHASE_TIPS: dict[CyclePhase, list[str]] = {
    CyclePhase.menstrual: [
        "Stay hydrated and get plenty of rest",
        "Iron-rich foods can help replenish what you lose",
        "Light exercise like yoga can help with cramps",
        "Use a heating pad for comfort",
    ],
    CyclePhase.follicular: [
        "Great time for high-intensity workouts",
        "Your energy levels are naturally higher",
        "Try new activities or projects",
        "Skin tends to be clearer during this phase",
    ],
    CyclePhase.ovulation: [
        "Peak fertility window",
        "You may notice increased energy and libido",
        "Cervical mucus becomes clear and stretchy",
    ],
    CyclePhase.luteal: [
        "Focus on self-care activities",
        "Complex carbs can help maintain energy",
        "You may experience food cravings",
        "Prioritize sleep and stress management",
    ],
    CyclePhase.unknown: [
        "Log your periods to get personalized insights",
        "Track symptoms to identify patterns",
        "Regular tracking improves predictions",
    ],
}


@dataclass(frozen=True)
class CycleOverview:
    """Everything the cycle dashboard needs for one reference date."""

    as_of: date
    phase: PhaseResult
    prediction: CyclePrediction | None
    statistics: CycleStatistics | None
    reminders: list[Reminder] = field(default_factory=list)
    tips: list[str] = field(default_factory=list)

    @property
    def is_fertile_today(self) -> bool:
        p = self.prediction
        if p is None or p.fertile_window_start is None or p.fertile_window_end is None:
            return False
        return p.fertile_window_start <= self.as_of <= p.fertile_window_end


class CycleEngine:
    """Run all cycle computations for a history snapshot.

    Usage::

        engine = CycleEngine()
        overview = engine.overview(history, settings, today=date(2024, 2, 11))
        month = engine.calendar(date(2024, 2, 1), history, settings, today=date(2024, 2, 11))
    """

    def __init__(self, config: CycleEngineConfig | None = None) -> None:
        self._config = config or get_cycle_config()
        self.phase_calculator = PhaseCalculator()
        self.predictor = CyclePredictor(self._config)
        self.aggregator = CycleStatisticsAggregator(self._config)
        self.projector = CalendarProjector(self._config)

    def overview(
        self, history: CycleHistory, settings: CycleSettings, today: date
    ) -> CycleOverview:
        phase = self.phase_calculator.current_phase(history, settings, today)
        prediction = self.predictor.predict(history, settings, today)
        stats = self.aggregator.aggregate(history, settings)
        reminders = plan_reminders(prediction, settings, today)

        logger.debug(
            "Overview for %s: phase=%s day=%d prediction=%s",
            today, phase.phase.value, phase.day_of_cycle,
            prediction.next_period_date if prediction else None,
        )
        return CycleOverview(
            as_of=today,
            phase=phase,
            prediction=prediction,
            statistics=stats,
            reminders=reminders,
            tips=list(PHASE_TIPS[phase.phase]),
        )

    def calendar(
        self,
        month: date,
        history: CycleHistory,
        settings: CycleSettings,
        today: date,
    ) -> dict[date, DayClassification]:
        prediction = self.predictor.predict(history, settings, today)
        return self.projector.classify(month, history, prediction, settings)
