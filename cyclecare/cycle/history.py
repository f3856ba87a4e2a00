"""Immutable cycle history snapshot and its entities.

Everything the cycle engine computes is a pure function of a
``CycleHistory`` (period records + daily logs), a ``CycleSettings`` value and
an injected reference date.  The snapshot is built once per read via
``CycleHistory.from_records()``, which repairs malformed input instead of
rejecting it:

- records are sorted by ``period_start``
- an end date before its start is dropped (the record becomes open)
- records sharing a start date are merged
- a period running into the next record's start is clipped to the day before
- an open record followed by a later start is *superseded*: it keeps an
  unknown period length but is never the active cycle
- duplicate daily logs for one date keep the last occurrence

Enums here carry semantic payload only (identifier, category, ordinal rank);
presentation metadata belongs to the client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from enum import Enum
from typing import Iterable
from uuid import UUID

logger = logging.getLogger("cyclecare.cycle.history")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class FlowIntensity(str, Enum):
    """Overall flow of a period, ordered lightest to heaviest."""

    spotting = "spotting"
    light = "light"
    medium = "medium"
    heavy = "heavy"
    very_heavy = "very_heavy"

    @property
    def rank(self) -> int:
        return list(FlowIntensity).index(self)


class FlowLevel(str, Enum):
    """Flow recorded on a single day."""

    none = "none"
    spotting = "spotting"
    light = "light"
    medium = "medium"
    heavy = "heavy"
    very_heavy = "very_heavy"

    @property
    def is_period(self) -> bool:
        return self is not FlowLevel.none

    @classmethod
    def from_intensity(cls, intensity: FlowIntensity | None) -> FlowLevel:
        """Daily flow level seeded when a period is started with ``intensity``."""
        if intensity is None:
            return cls.medium
        return cls(intensity.value)


class Mood(str, Enum):
    happy = "happy"
    calm = "calm"
    sad = "sad"
    anxious = "anxious"
    irritable = "irritable"
    mood_swings = "mood_swings"
    sensitive = "sensitive"
    energetic = "energetic"
    tired = "tired"


class SleepQuality(str, Enum):
    poor = "poor"
    fair = "fair"
    good = "good"
    excellent = "excellent"


class CervicalMucus(str, Enum):
    dry = "dry"
    sticky = "sticky"
    creamy = "creamy"
    watery = "watery"
    egg_white = "egg_white"

    @property
    def is_fertile(self) -> bool:
        return self in (CervicalMucus.watery, CervicalMucus.egg_white)


class SymptomCategory(str, Enum):
    pain = "pain"
    digestive = "digestive"
    skin = "skin"
    energy = "energy"


class SymptomType(str, Enum):
    """Symptom tags.  Declaration order breaks ties in frequency rankings."""

    cramps = "cramps"
    backache = "backache"
    headache = "headache"
    breast_tenderness = "breast_tenderness"
    bloating = "bloating"
    acne = "acne"
    nausea = "nausea"
    fatigue = "fatigue"
    insomnia = "insomnia"
    hot_flashes = "hot_flashes"
    dizziness = "dizziness"
    cravings = "cravings"
    constipation = "constipation"
    diarrhea = "diarrhea"
    joint_pain = "joint_pain"

    @property
    def category(self) -> SymptomCategory:
        return _SYMPTOM_CATEGORIES[self]

    @property
    def order(self) -> int:
        return _SYMPTOM_ORDER[self]


_SYMPTOM_CATEGORIES: dict[SymptomType, SymptomCategory] = {
    SymptomType.cramps: SymptomCategory.pain,
    SymptomType.backache: SymptomCategory.pain,
    SymptomType.headache: SymptomCategory.pain,
    SymptomType.breast_tenderness: SymptomCategory.pain,
    SymptomType.joint_pain: SymptomCategory.pain,
    SymptomType.bloating: SymptomCategory.digestive,
    SymptomType.nausea: SymptomCategory.digestive,
    SymptomType.constipation: SymptomCategory.digestive,
    SymptomType.diarrhea: SymptomCategory.digestive,
    SymptomType.cravings: SymptomCategory.digestive,
    SymptomType.acne: SymptomCategory.skin,
    SymptomType.hot_flashes: SymptomCategory.skin,
    SymptomType.fatigue: SymptomCategory.energy,
    SymptomType.insomnia: SymptomCategory.energy,
    SymptomType.dizziness: SymptomCategory.energy,
}

_SYMPTOM_ORDER: dict[SymptomType, int] = {s: i for i, s in enumerate(SymptomType)}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CycleRecord:
    """One logged period and the cycle it opens.

    Attributes:
        cycle_id:       UUID of the record in the store (None for unsaved records).
        period_start:   First day of menstruation.
        period_end:     Last day of menstruation; None while the period is open.
        flow_intensity: Overall flow of the period.
        notes:          Free-text notes.
    """

    cycle_id: UUID | None
    period_start: date
    period_end: date | None = None
    flow_intensity: FlowIntensity | None = None
    notes: str | None = None

    @property
    def is_open(self) -> bool:
        return self.period_end is None

    @property
    def period_length(self) -> int | None:
        """Days from start to end, or None while the period is open."""
        if self.period_end is None:
            return None
        return (self.period_end - self.period_start).days

    def menstrual_span(self, open_span_days: int) -> tuple[date, date]:
        """Inclusive (first, last) period days.

        An open record is assumed to span ``open_span_days`` days from its start.
        """
        if self.period_end is not None:
            return self.period_start, self.period_end
        return self.period_start, self.period_start + timedelta(days=max(open_span_days, 1) - 1)


@dataclass(frozen=True)
class DailyLog:
    """Per-date enrichment logged by the user.

    Attributes:
        log_date:       Calendar date (at most one log per date).
        flow_level:     Flow on this day.
        mood:           Mood tag.
        pain_level:     0–10.
        energy_level:   0–10.
        symptoms:       Set of symptom tags.
        sleep_quality:  Sleep quality tag.
        cervical_mucus: Cervical mucus observation.
        notes:          Free-text notes.
        log_id:         UUID of the log in the store.
    """

    log_date: date
    flow_level: FlowLevel | None = None
    mood: Mood | None = None
    pain_level: int | None = None
    energy_level: int | None = None
    symptoms: frozenset[SymptomType] = field(default_factory=frozenset)
    sleep_quality: SleepQuality | None = None
    cervical_mucus: CervicalMucus | None = None
    notes: str | None = None
    log_id: UUID | None = None

    @property
    def is_period_day(self) -> bool:
        return self.flow_level is not None and self.flow_level.is_period


@dataclass(frozen=True)
class CycleSettings:
    """Per-user tunable defaults.

    Attributes:
        average_cycle_length_default:  Cycle length assumed without history.
        average_period_length_default: Period length assumed without history.
        luteal_phase_length:           Days from ovulation to the next period.
        fertile_window_tracking:       Include the fertile window in predictions.
        ovulation_tracking:            Include the ovulation estimate in predictions.
        pms_tracking:                  Include PMS days in predictions/calendar.
        reminder_enabled:              Emit reminder dates for the notifier.
        reminder_days_before:          Lead time of the period reminder.
    """

    average_cycle_length_default: int = 28
    average_period_length_default: int = 5
    luteal_phase_length: int = 14
    fertile_window_tracking: bool = True
    ovulation_tracking: bool = True
    pms_tracking: bool = True
    reminder_enabled: bool = True
    reminder_days_before: int = 3


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CycleHistory:
    """Normalized, immutable snapshot of a user's cycle history.

    Build with ``CycleHistory.from_records()``; the raw constructor assumes
    its inputs are already normalized.
    """

    cycles: tuple[CycleRecord, ...] = ()
    logs: tuple[DailyLog, ...] = ()

    @classmethod
    def from_records(
        cls,
        cycles: Iterable[CycleRecord] = (),
        logs: Iterable[DailyLog] = (),
    ) -> CycleHistory:
        """Sort, de-duplicate and repair raw records into a snapshot."""
        return cls(cycles=_normalize_cycles(cycles), logs=_normalize_logs(logs))

    # ------------------------------------------------------------------
    # Cycle accessors
    # ------------------------------------------------------------------

    @property
    def latest(self) -> CycleRecord | None:
        """The most recent cycle record, if any."""
        return self.cycles[-1] if self.cycles else None

    @property
    def active_cycle(self) -> CycleRecord | None:
        """The open record, if the most recent period has not been closed."""
        latest = self.latest
        if latest is not None and latest.is_open:
            return latest
        return None

    def is_superseded(self, index: int) -> bool:
        """True for an open record that has a later record after it."""
        return self.cycles[index].is_open and index < len(self.cycles) - 1

    def completed_cycles(self) -> list[tuple[CycleRecord, int]]:
        """Records with a known cycle length, oldest first, paired with that length."""
        return [
            (current, (following.period_start - current.period_start).days)
            for current, following in zip(self.cycles, self.cycles[1:])
        ]

    def cycle_lengths(self) -> list[int]:
        """Completed cycle lengths, oldest first."""
        return [length for _, length in self.completed_cycles()]

    def period_lengths(self) -> list[int]:
        """Known (closed) period lengths, oldest first."""
        return [c.period_length for c in self.cycles if c.period_length is not None]

    # ------------------------------------------------------------------
    # Log accessors
    # ------------------------------------------------------------------

    def log_for(self, day: date) -> DailyLog | None:
        for log in self.logs:
            if log.log_date == day:
                return log
        return None

    def logs_between(self, first: date, last: date) -> list[DailyLog]:
        """Logs dated within the inclusive range ``[first, last]``."""
        return [log for log in self.logs if first <= log.log_date <= last]


def _merge_same_start(kept: CycleRecord, duplicate: CycleRecord) -> CycleRecord:
    ends = [e for e in (kept.period_end, duplicate.period_end) if e is not None]
    return replace(
        kept,
        cycle_id=kept.cycle_id or duplicate.cycle_id,
        period_end=max(ends) if ends else None,
        flow_intensity=kept.flow_intensity or duplicate.flow_intensity,
        notes=kept.notes or duplicate.notes,
    )


def _normalize_cycles(cycles: Iterable[CycleRecord]) -> tuple[CycleRecord, ...]:
    merged: list[CycleRecord] = []
    for record in sorted(cycles, key=lambda c: c.period_start):
        if record.period_end is not None and record.period_end < record.period_start:
            logger.warning(
                "Dropping period_end %s before period_start %s (cycle %s)",
                record.period_end, record.period_start, record.cycle_id,
            )
            record = replace(record, period_end=None)

        if merged and merged[-1].period_start == record.period_start:
            logger.warning(
                "Merging duplicate cycle records starting %s", record.period_start
            )
            merged[-1] = _merge_same_start(merged[-1], record)
            continue
        merged.append(record)

    for i in range(len(merged) - 1):
        current, following = merged[i], merged[i + 1]
        if current.period_end is not None and current.period_end >= following.period_start:
            clipped_end = following.period_start - timedelta(days=1)
            logger.warning(
                "Clipping overlapping period %s–%s to end %s",
                current.period_start, current.period_end, clipped_end,
            )
            merged[i] = replace(current, period_end=clipped_end)

    return tuple(merged)


def _normalize_logs(logs: Iterable[DailyLog]) -> tuple[DailyLog, ...]:
    by_date: dict[date, DailyLog] = {}
    for log in logs:
        if log.log_date in by_date:
            logger.debug("Replacing duplicate daily log for %s", log.log_date)
        by_date[log.log_date] = log
    return tuple(by_date[d] for d in sorted(by_date))
