"""Reminder dates derived from a cycle prediction.

The engine only decides *when* a reminder is due; delivering it (push,
email, local notification) belongs to the notification collaborator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from cyclecare.cycle.history import CycleSettings
from cyclecare.cycle.predictor import CyclePrediction

logger = logging.getLogger("cyclecare.cycle.reminders")


class ReminderKind(str, Enum):
    period = "period"
    ovulation = "ovulation"


@dataclass(frozen=True)
class Reminder:
    """A reminder the notifier should schedule.

    Attributes:
        kind:        What the reminder is about.
        remind_on:   Date to deliver the reminder.
        event_date:  Date of the predicted event.
        days_before: Lead time between ``remind_on`` and ``event_date``.
        dedup_key:   Stable key so re-planning does not schedule twice.
    """

    kind: ReminderKind
    remind_on: date
    event_date: date
    days_before: int

    @property
    def dedup_key(self) -> str:
        return f"{self.kind.value}_reminder:{self.event_date.isoformat()}"


def plan_reminders(
    prediction: CyclePrediction | None, settings: CycleSettings, today: date
) -> list[Reminder]:
    """Return reminders due on or after ``today``, earliest first.

    Args:
        prediction: Current prediction (None yields no reminders).
        settings:   Reminder toggle and lead time, ovulation toggle.
        today:      Reference date; reminders in the past are skipped.

    Returns:
        List of Reminder, possibly empty.
    """
    if prediction is None or not settings.reminder_enabled:
        return []

    reminders: list[Reminder] = []

    lead = max(settings.reminder_days_before, 0)
    period_reminder = prediction.next_period_date - timedelta(days=lead)
    if period_reminder >= today:
        reminders.append(
            Reminder(
                kind=ReminderKind.period,
                remind_on=period_reminder,
                event_date=prediction.next_period_date,
                days_before=lead,
            )
        )
    else:
        logger.debug("Period reminder date %s already passed", period_reminder)

    if settings.ovulation_tracking and prediction.ovulation_date is not None:
        if prediction.ovulation_date >= today:
            reminders.append(
                Reminder(
                    kind=ReminderKind.ovulation,
                    remind_on=prediction.ovulation_date,
                    event_date=prediction.ovulation_date,
                    days_before=0,
                )
            )

    reminders.sort(key=lambda r: r.remind_on)
    return reminders
