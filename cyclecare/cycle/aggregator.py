"""Historical cycle statistics.

Unlike the predictor's rolling window, these figures cover *all* completed
cycles: averages, extremes, a coarse regularity class, and which symptoms
show up most around periods.
"""

from __future__ import annotations

import logging
import statistics
from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from cyclecare.cycle.config_loader import CycleEngineConfig, get_cycle_config
from cyclecare.cycle.history import CycleHistory, CycleSettings, DailyLog, SymptomType

logger = logging.getLogger("cyclecare.cycle.aggregator")

# Completed cycles required before statistics are meaningful
MIN_COMPLETED_CYCLES = 2


class Regularity(str, Enum):
    very_regular = "Very Regular"
    regular = "Regular"
    irregular = "Irregular"
    highly_irregular = "Highly Irregular"


@dataclass(frozen=True)
class CycleStatistics:
    """Aggregate statistics over the full cycle history.

    Attributes:
        average_cycle_length:  Mean of all completed cycle lengths.
        average_period_length: Mean of all known period lengths.
        shortest_cycle:        Shortest completed cycle.
        longest_cycle:         Longest completed cycle.
        cycle_regularity:      Class derived from ``longest − shortest``.
        cycle_variation:       Population standard deviation of cycle lengths.
        total_cycles_tracked:  Number of completed cycles.
        most_common_symptoms:  Period-associated symptoms, most frequent first.
        average_pain_level:    Mean pain of period-associated logs (None if unlogged).
    """

    average_cycle_length: float
    average_period_length: float
    shortest_cycle: int
    longest_cycle: int
    cycle_regularity: Regularity
    cycle_variation: float
    total_cycles_tracked: int
    most_common_symptoms: list[SymptomType] = field(default_factory=list)
    average_pain_level: float | None = None


class CycleStatisticsAggregator:
    """Compute CycleStatistics from a history snapshot.

    Usage::

        aggregator = CycleStatisticsAggregator()
        stats = aggregator.aggregate(history)
        if stats is not None:
            print(stats.cycle_regularity.value)
    """

    def __init__(self, config: CycleEngineConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    def aggregate(
        self, history: CycleHistory, settings: CycleSettings | None = None
    ) -> CycleStatistics | None:
        """Aggregate statistics over all completed cycles.

        Args:
            history:  Normalized cycle history.
            settings: User settings; supplies the assumed span of an open
                      period and the fallback period length.

        Returns:
            CycleStatistics, or None with fewer than 2 completed cycles.
        """
        settings = settings or CycleSettings()
        lengths = history.cycle_lengths()
        if len(lengths) < MIN_COMPLETED_CYCLES:
            logger.info(
                "Insufficient cycle data: %d completed cycles (need %d)",
                len(lengths), MIN_COMPLETED_CYCLES,
            )
            return None

        period_lengths = history.period_lengths()
        avg_period = (
            statistics.mean(period_lengths)
            if period_lengths
            else float(settings.average_period_length_default)
        )

        shortest, longest = min(lengths), max(lengths)
        period_logs = self.period_associated_logs(history, settings)
        pain_levels = [log.pain_level for log in period_logs if log.pain_level is not None]

        return CycleStatistics(
            average_cycle_length=round(statistics.mean(lengths), 1),
            average_period_length=round(avg_period, 1),
            shortest_cycle=shortest,
            longest_cycle=longest,
            cycle_regularity=self.classify_regularity(longest - shortest),
            cycle_variation=round(statistics.pstdev(lengths), 1),
            total_cycles_tracked=len(lengths),
            most_common_symptoms=self.rank_symptoms(period_logs),
            average_pain_level=round(statistics.mean(pain_levels), 1) if pain_levels else None,
        )

    def classify_regularity(self, spread: int) -> Regularity:
        """Map ``longest − shortest`` cycle spread (days) to a regularity class."""
        rc = self._config.statistics.regularity
        if spread <= rc.very_regular_max_spread:
            return Regularity.very_regular
        if spread <= rc.regular_max_spread:
            return Regularity.regular
        if spread <= rc.irregular_max_spread:
            return Regularity.irregular
        return Regularity.highly_irregular

    def period_associated_logs(
        self, history: CycleHistory, settings: CycleSettings
    ) -> list[DailyLog]:
        """Logs inside any menstrual span or the PMS lookback before a period start."""
        lookback = timedelta(days=self._config.statistics.pms_lookback_days)
        windows = []
        for record in history.cycles:
            first, last = record.menstrual_span(settings.average_period_length_default)
            windows.append((first - lookback, last))

        return [
            log
            for log in history.logs
            if any(start <= log.log_date <= end for start, end in windows)
        ]

    def rank_symptoms(self, logs: list[DailyLog]) -> list[SymptomType]:
        """Most frequent symptom tags, ties broken by declaration order."""
        counts: Counter[SymptomType] = Counter()
        for log in logs:
            counts.update(log.symptoms)

        ranked = sorted(counts, key=lambda s: (-counts[s], s.order))
        return ranked[: self._config.statistics.top_symptoms]
