"""Classify each day of a calendar month for the cycle calendar.

Every facet is an independent boolean; a day can be both fertile and PMS,
or a logged period day inside a stale predicted window.  Which facet wins
visually is the client's decision.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta

from cyclecare.cycle.config_loader import CycleEngineConfig, get_cycle_config
from cyclecare.cycle.history import CycleHistory, CycleSettings, FlowLevel
from cyclecare.cycle.predictor import CyclePrediction

logger = logging.getLogger("cyclecare.cycle.calendar_projector")


@dataclass(frozen=True)
class DayClassification:
    """Facets of one calendar day.

    Attributes:
        date:                The day.
        is_period_day:       Inside a logged period span.
        is_predicted_period: Inside the predicted next period (never on a logged period day).
        is_ovulation_day:    Equals the predicted ovulation date.
        is_fertile_day:      Inside the fertile window, excluding the ovulation day.
        is_pms_day:          Inside the PMS window before a logged or predicted period.
        has_log:             A daily log exists for the day.
        flow_level:          Flow recorded in that log, if any.
    """

    date: date
    is_period_day: bool = False
    is_predicted_period: bool = False
    is_ovulation_day: bool = False
    is_fertile_day: bool = False
    is_pms_day: bool = False
    has_log: bool = False
    flow_level: FlowLevel | None = None


def month_days(month: date) -> list[date]:
    """Every date in the month containing ``month``."""
    _, last_day = calendar.monthrange(month.year, month.month)
    first = month.replace(day=1)
    return [first + timedelta(days=i) for i in range(last_day)]


class CalendarProjector:
    """Project history and prediction onto a month grid.

    Usage::

        projector = CalendarProjector()
        days = projector.classify(date(2024, 2, 1), history, prediction, settings)
        print(days[date(2024, 2, 12)].is_ovulation_day)
    """

    def __init__(self, config: CycleEngineConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    def classify(
        self,
        month: date,
        history: CycleHistory,
        prediction: CyclePrediction | None,
        settings: CycleSettings,
    ) -> dict[date, DayClassification]:
        """Classify every day of ``month``.

        Args:
            month:      Any date inside the month to project.
            history:    Normalized cycle history.
            prediction: Output of the predictor (None before the first completed cycle).
            settings:   User settings (PMS toggle, open-period span).

        Returns:
            Ordered mapping of date → DayClassification for the whole month.
        """
        period_spans = [
            record.menstrual_span(settings.average_period_length_default)
            for record in history.cycles
        ]

        predicted_span: tuple[date, date] | None = None
        period_starts = [record.period_start for record in history.cycles]
        if prediction is not None:
            predicted_span = (prediction.next_period_date, prediction.predicted_period_end)
            period_starts.append(prediction.next_period_date)

        pms_windows: list[tuple[date, date]] = []
        if settings.pms_tracking and self._config.pms_window_days > 0:
            window = timedelta(days=self._config.pms_window_days)
            pms_windows = [(start - window, start - timedelta(days=1)) for start in period_starts]

        logs_by_date = {log.log_date: log for log in history.logs}

        result: dict[date, DayClassification] = {}
        for day in month_days(month):
            is_period = _within(day, period_spans)
            log = logs_by_date.get(day)

            is_ovulation = False
            is_fertile = False
            is_predicted = False
            if prediction is not None:
                is_ovulation = prediction.ovulation_date == day
                if prediction.fertile_window_start and prediction.fertile_window_end:
                    is_fertile = (
                        prediction.fertile_window_start <= day <= prediction.fertile_window_end
                        and day not in (prediction.ovulation_date, prediction.ovulation_estimate)
                    )
                is_predicted = predicted_span is not None and _within(day, [predicted_span])

            result[day] = DayClassification(
                date=day,
                is_period_day=is_period,
                is_predicted_period=is_predicted and not is_period,
                is_ovulation_day=is_ovulation,
                is_fertile_day=is_fertile,
                is_pms_day=_within(day, pms_windows),
                has_log=log is not None,
                flow_level=log.flow_level if log is not None else None,
            )

        logger.debug("Classified %d days for %s", len(result), month.strftime("%Y-%m"))
        return result


def _within(day: date, spans: list[tuple[date, date]]) -> bool:
    return any(first <= day <= last for first, last in spans)
