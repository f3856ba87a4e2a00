"""Menstrual cycle prediction engine.

Uses calendar averaging over self-reported period starts to predict:
- Next period start date
- Ovulation date (next period − luteal phase length)
- Fertile window (ovulation − 5 days … ovulation + 1 day)

Does NOT assume a 28-day cycle once history exists; the configured default
is only used before the first completed cycle, or when the computed average
is implausible (likely a logging error).

All predictions use a rolling average of the last 6 completed cycles
(configurable in cycle_config.yaml).
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass, field
from datetime import date, timedelta

from cyclecare.cycle.config_loader import CycleEngineConfig, get_cycle_config
from cyclecare.cycle.history import CycleHistory, CycleSettings

logger = logging.getLogger("cyclecare.cycle.predictor")


@dataclass(frozen=True)
class CyclePrediction:
    """Prediction for the user's next cycle.

    Attributes:
        next_period_date:       Best estimate for the next period start.
        days_until_next_period: ``next_period_date − today``; ≤ 0 means "any day now".
        average_cycle_length:   Rolling average (or substituted default) cycle length.
        average_period_length:  Rolling average (or default) period length.
        confidence:             0.0–0.95 overall prediction confidence.
        predicted_period_end:   Last day of the predicted period.
        ovulation_date:         Estimated ovulation (None if ovulation tracking is off).
        days_until_ovulation:   ``ovulation_date − today``.
        fertile_window_start:   Start of fertile window (None if tracking is off).
        fertile_window_end:     End of fertile window.
        pms_start:              First PMS day before the next period (None if off).
        cycles_used:            Number of completed cycles in the rolling average.
        used_default_length:    True when the average was implausible and replaced.
        warnings:               Flags such as very short or very long cycles.
        ovulation_estimate:     Internal ovulation estimate the fertile window is built
                                around; kept even when ovulation tracking is off.
    """

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
    cycles_used: int = 0
    used_default_length: bool = False
    warnings: tuple[str, ...] = field(default_factory=tuple)
    ovulation_estimate: date | None = None


class CyclePredictor:
    """Predict the next period, ovulation and fertile window.

    Usage::

        predictor = CyclePredictor()
        prediction = predictor.predict(history, settings, today=date(2024, 1, 29))
        if prediction is not None:
            print(prediction.next_period_date, prediction.confidence)
    """

    def __init__(self, config: CycleEngineConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    def predict(
        self, history: CycleHistory, settings: CycleSettings, today: date
    ) -> CyclePrediction | None:
        """Generate a prediction from the cycle history.

        Args:
            history:  Normalized cycle history.
            settings: User settings (defaults, luteal length, feature toggles).
            today:    Reference date for the ``days_until_*`` fields.

        Returns:
            CyclePrediction, or None when no cycle has been completed yet.
        """
        pc = self._config.prediction
        lengths = history.cycle_lengths()[-pc.rolling_average_cycles:]
        latest = history.latest

        if not lengths or latest is None:
            logger.info("No completed cycles available for prediction")
            return None

        warnings: list[str] = []

        # Flag abnormal individual lengths
        for length in lengths:
            if length < self._config.min_cycle_days:
                warnings.append(
                    f"Short cycle detected: {length} days "
                    f"(below {self._config.min_cycle_days} day minimum)"
                )
                break
            if length > self._config.max_cycle_days:
                warnings.append(
                    f"Long cycle detected: {length} days "
                    f"(above {self._config.max_cycle_days} day maximum)"
                )
                break

        avg_length = statistics.mean(lengths)
        used_default = False
        if not (pc.min_plausible_cycle_days <= avg_length <= pc.max_plausible_cycle_days):
            logger.warning(
                "Average cycle length %.1f outside [%d, %d]; using default %d",
                avg_length,
                pc.min_plausible_cycle_days,
                pc.max_plausible_cycle_days,
                settings.average_cycle_length_default,
            )
            warnings.append(
                f"Average cycle length {avg_length:.1f} days looks like a logging error; "
                f"using default of {settings.average_cycle_length_default} days"
            )
            avg_length = float(settings.average_cycle_length_default)
            used_default = True

        period_lengths = history.period_lengths()[-pc.rolling_average_cycles:]
        avg_period = (
            statistics.mean(period_lengths)
            if period_lengths
            else float(settings.average_period_length_default)
        )

        # Anchor on the most recent period start
        next_period = latest.period_start + timedelta(days=round(avg_length))
        period_end = next_period + timedelta(days=max(round(avg_period), 1) - 1)

        # Ovulation sits one luteal phase before the next period
        ovulation = next_period - timedelta(days=settings.luteal_phase_length)

        fertile_start = fertile_end = None
        if settings.fertile_window_tracking:
            fertile_start = ovulation - timedelta(days=pc.fertile_days_before_ovulation)
            fertile_end = ovulation + timedelta(days=pc.fertile_days_after_ovulation)

        pms_start = None
        if settings.pms_tracking:
            pms_start = next_period - timedelta(days=self._config.pms_window_days)

        confidence = self.confidence(lengths, used_default)

        return CyclePrediction(
            next_period_date=next_period,
            days_until_next_period=(next_period - today).days,
            average_cycle_length=round(avg_length, 1),
            average_period_length=round(avg_period, 1),
            confidence=confidence,
            predicted_period_end=period_end,
            ovulation_date=ovulation if settings.ovulation_tracking else None,
            days_until_ovulation=(ovulation - today).days if settings.ovulation_tracking else None,
            fertile_window_start=fertile_start,
            fertile_window_end=fertile_end,
            pms_start=pms_start,
            cycles_used=len(lengths),
            used_default_length=used_default,
            warnings=tuple(warnings),
            ovulation_estimate=ovulation,
        )

    def confidence(self, lengths: list[int], used_default: bool = False) -> float:
        """Score how far the prediction can be trusted.

        ``base + per_cycle · min(n, max_cycles) − variance_penalty`` where the
        penalty scales with the coefficient of variation of ``lengths``,
        clamped to ``[0, ceiling]``.

        Args:
            lengths:      Cycle lengths used for the average.
            used_default: True if the average was replaced by the default.

        Returns:
            Confidence rounded to 2 decimals.
        """
        cc = self._config.prediction.confidence
        if not lengths:
            return 0.0

        mean_length = statistics.mean(lengths)
        cv = statistics.pstdev(lengths) / mean_length if mean_length > 0 else 0.0
        score = cc.base + cc.per_cycle * min(len(lengths), cc.max_cycles)
        score -= cc.variance_penalty_scale * cv
        if used_default:
            score -= cc.out_of_range_penalty
        return round(min(max(score, 0.0), cc.ceiling), 2)
