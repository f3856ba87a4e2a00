"""Current cycle phase from the most recent period start.

Phase boundaries are proportional arcs of the effective cycle length ``L``
with the effective period length ``P``:

    Menstrual   [1, P]
    Follicular  (P, L/2 − 2]
    Ovulation   (L/2 − 2, L/2 + 2]     fixed 4-day window centred on L/2
    Luteal      (L/2 + 2, L]

Past day ``L`` the phase stays Luteal and the result is flagged overdue,
even when a malformed history leaves ``P`` longer than ``L``.
When ``P ≥ L/2 − 2`` the follicular arc is empty and menstruation runs
straight into the ovulation window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum

from cyclecare.cycle.history import CycleHistory, CycleSettings

logger = logging.getLogger("cyclecare.cycle.phase")

# Half-width of the ovulation window around L/2
OVULATION_HALF_WINDOW = 2


class CyclePhase(str, Enum):
    menstrual = "menstrual"
    follicular = "follicular"
    ovulation = "ovulation"
    luteal = "luteal"
    unknown = "unknown"


@dataclass(frozen=True)
class PhaseResult:
    """Where ``today`` falls in the current cycle.

    Attributes:
        phase:              Current phase (``unknown`` without any period logged).
        day_of_cycle:       1-indexed day since the last period start (0 if unknown).
        cycle_progress:     ``day_of_cycle / L`` clamped to [0, 1].
        is_overdue:         True once ``day_of_cycle`` exceeds ``L``.
        cycle_length_used:  Effective cycle length ``L``.
        period_length_used: Effective period length ``P``.
    """

    phase: CyclePhase
    day_of_cycle: int
    cycle_progress: float
    is_overdue: bool = False
    cycle_length_used: int | None = None
    period_length_used: int | None = None


UNKNOWN_PHASE = PhaseResult(phase=CyclePhase.unknown, day_of_cycle=0, cycle_progress=0.0)


class PhaseCalculator:
    """Compute the current phase and day of cycle.

    Usage::

        calculator = PhaseCalculator()
        result = calculator.current_phase(history, settings, today=date(2024, 2, 11))
        print(result.phase, result.day_of_cycle)
    """

    def current_phase(
        self, history: CycleHistory, settings: CycleSettings, today: date
    ) -> PhaseResult:
        """Return the phase for ``today``.

        Args:
            history:  Normalized cycle history.
            settings: User settings supplying fallback lengths.
            today:    Reference date.

        Returns:
            PhaseResult; ``UNKNOWN_PHASE`` when no period has been logged.
        """
        latest = history.latest
        if latest is None:
            return UNKNOWN_PHASE

        day_of_cycle = max(1, (today - latest.period_start).days + 1)
        cycle_length = self.effective_cycle_length(history, settings)
        period_length = self.effective_period_length(history, settings)

        phase = phase_for_day(day_of_cycle, cycle_length, period_length)
        is_overdue = day_of_cycle > cycle_length
        if is_overdue:
            logger.debug(
                "Cycle day %d exceeds expected length %d", day_of_cycle, cycle_length
            )

        return PhaseResult(
            phase=phase,
            day_of_cycle=day_of_cycle,
            cycle_progress=min(max(day_of_cycle / cycle_length, 0.0), 1.0),
            is_overdue=is_overdue,
            cycle_length_used=cycle_length,
            period_length_used=period_length,
        )

    @staticmethod
    def effective_cycle_length(history: CycleHistory, settings: CycleSettings) -> int:
        """Most recent completed cycle length, else the configured default."""
        lengths = history.cycle_lengths()
        if lengths:
            return lengths[-1]
        return settings.average_cycle_length_default

    @staticmethod
    def effective_period_length(history: CycleHistory, settings: CycleSettings) -> int:
        """Most recent known period length, else the configured default."""
        lengths = history.period_lengths()
        if lengths:
            return lengths[-1]
        return settings.average_period_length_default


def phase_for_day(day_of_cycle: int, cycle_length: int, period_length: int) -> CyclePhase:
    """Classify a cycle day against the proportional phase arcs.

    Args:
        day_of_cycle:  1-indexed cycle day.
        cycle_length:  Effective cycle length ``L``.
        period_length: Effective period length ``P``.

    Returns:
        The phase containing ``day_of_cycle``.
    """
    if day_of_cycle < 1:
        return CyclePhase.unknown

    midpoint = cycle_length / 2
    ovulation_start = midpoint - OVULATION_HALF_WINDOW
    ovulation_end = midpoint + OVULATION_HALF_WINDOW

    if day_of_cycle > cycle_length:
        return CyclePhase.luteal
    if day_of_cycle <= period_length:
        return CyclePhase.menstrual
    if day_of_cycle <= ovulation_start:
        return CyclePhase.follicular
    if day_of_cycle <= ovulation_end:
        return CyclePhase.ovulation
    return CyclePhase.luteal
