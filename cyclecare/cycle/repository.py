"""Repository adapter between the cycle store and the engine entities.

Reads turn raw ``menstrual_cycles`` / ``menstrual_daily_logs`` /
``menstrual_settings`` rows into ``CycleRecord`` / ``DailyLog`` /
``CycleSettings`` and wrap them in a normalized ``CycleHistory``.

Writes implement the command path — start period, end period, save daily
log, save settings, delete — and never touch derived state: the engine is
simply re-run on the next read.

Row decoding is lenient where the engine can cope (unknown enum strings
become None and are logged) and strict only where a row is meaningless
(no parsable ``period_start``).
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Mapping, TypeVar

from cyclecare.cycle.history import (
    CervicalMucus,
    CycleHistory,
    CycleRecord,
    CycleSettings,
    DailyLog,
    FlowIntensity,
    FlowLevel,
    Mood,
    SleepQuality,
    SymptomType,
)
from cyclecare.services.supabase import build_upsert_query, fetch, fetchrow, get_connection

logger = logging.getLogger("cyclecare.cycle.repository")

E = TypeVar("E", bound=Enum)

_DAILY_LOG_COLUMNS = [
    "log_id",
    "user_id",
    "log_date",
    "flow_level",
    "mood",
    "pain_level",
    "energy_level",
    "symptoms",
    "sleep_quality",
    "cervical_mucus",
    "notes",
]

_SETTINGS_COLUMNS = [
    "user_id",
    "average_cycle_length",
    "average_period_length",
    "luteal_phase_length",
    "fertile_window_tracking",
    "ovulation_tracking",
    "pms_tracking",
    "reminder_enabled",
    "reminder_days_before",
]


class CycleDataError(ValueError):
    """Raised when a stored row cannot be turned into an engine entity."""


class CycleConflictError(Exception):
    """Raised when a command contradicts the stored history."""


# ---------------------------------------------------------------------------
# Row decoding
# ---------------------------------------------------------------------------


def _parse_date(value: Any, field_name: str) -> date | None:
    """Accept ``date``, ``datetime`` or an ISO string; empty values are None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError as exc:
            raise CycleDataError(f"{field_name}: invalid date {value!r}") from exc
    raise CycleDataError(f"{field_name}: unsupported date value {value!r}")


def _parse_enum(enum_cls: type[E], value: Any, field_name: str) -> E | None:
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        logger.warning("Ignoring unknown %s value %r", field_name, value)
        return None


def _parse_scale(value: Any, field_name: str, low: int = 0, high: int = 10) -> int | None:
    if value is None:
        return None
    try:
        level = int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric %s %r", field_name, value)
        return None
    if not low <= level <= high:
        logger.warning("Ignoring out-of-range %s %d", field_name, level)
        return None
    return level


def _parse_uuid(value: Any) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        logger.warning("Ignoring malformed id %r", value)
        return None


def cycle_record_from_row(row: Mapping[str, Any]) -> CycleRecord:
    """Decode a ``menstrual_cycles`` row.

    Raises:
        CycleDataError: If ``period_start`` is missing or unparsable.
    """
    start = _parse_date(row.get("period_start"), "period_start")
    if start is None:
        raise CycleDataError("period_start is required")

    return CycleRecord(
        cycle_id=_parse_uuid(row.get("cycle_id")),
        period_start=start,
        period_end=_parse_date(row.get("period_end"), "period_end"),
        flow_intensity=_parse_enum(FlowIntensity, row.get("flow_intensity"), "flow_intensity"),
        notes=row.get("notes"),
    )


def daily_log_from_row(row: Mapping[str, Any]) -> DailyLog:
    """Decode a ``menstrual_daily_logs`` row.

    Raises:
        CycleDataError: If ``log_date`` is missing or unparsable.
    """
    log_date = _parse_date(row.get("log_date"), "log_date")
    if log_date is None:
        raise CycleDataError("log_date is required")

    symptoms = set()
    for tag in row.get("symptoms") or []:
        symptom = _parse_enum(SymptomType, tag, "symptom")
        if symptom is not None:
            symptoms.add(symptom)

    return DailyLog(
        log_date=log_date,
        flow_level=_parse_enum(FlowLevel, row.get("flow_level"), "flow_level"),
        mood=_parse_enum(Mood, row.get("mood"), "mood"),
        pain_level=_parse_scale(row.get("pain_level"), "pain_level"),
        energy_level=_parse_scale(row.get("energy_level"), "energy_level"),
        symptoms=frozenset(symptoms),
        sleep_quality=_parse_enum(SleepQuality, row.get("sleep_quality"), "sleep_quality"),
        cervical_mucus=_parse_enum(CervicalMucus, row.get("cervical_mucus"), "cervical_mucus"),
        notes=row.get("notes"),
        log_id=_parse_uuid(row.get("log_id")),
    )


def settings_from_row(row: Mapping[str, Any] | None) -> CycleSettings:
    """Decode a ``menstrual_settings`` row; a missing row yields the defaults."""
    defaults = CycleSettings()
    if row is None:
        return defaults

    def _value(column: str, default: Any) -> Any:
        value = row.get(column)
        return default if value is None else value

    return CycleSettings(
        average_cycle_length_default=int(
            _value("average_cycle_length", defaults.average_cycle_length_default)
        ),
        average_period_length_default=int(
            _value("average_period_length", defaults.average_period_length_default)
        ),
        luteal_phase_length=int(_value("luteal_phase_length", defaults.luteal_phase_length)),
        fertile_window_tracking=bool(
            _value("fertile_window_tracking", defaults.fertile_window_tracking)
        ),
        ovulation_tracking=bool(_value("ovulation_tracking", defaults.ovulation_tracking)),
        pms_tracking=bool(_value("pms_tracking", defaults.pms_tracking)),
        reminder_enabled=bool(_value("reminder_enabled", defaults.reminder_enabled)),
        reminder_days_before=int(
            _value("reminder_days_before", defaults.reminder_days_before)
        ),
    )


def build_history(
    cycle_rows: list[Mapping[str, Any]], log_rows: list[Mapping[str, Any]]
) -> CycleHistory:
    """Decode rows into a normalized snapshot, skipping undecodable rows."""
    cycles: list[CycleRecord] = []
    for row in cycle_rows:
        try:
            cycles.append(cycle_record_from_row(row))
        except CycleDataError as exc:
            logger.warning("Skipping cycle row %s: %s", row.get("cycle_id"), exc)

    logs: list[DailyLog] = []
    for row in log_rows:
        try:
            logs.append(daily_log_from_row(row))
        except CycleDataError as exc:
            logger.warning("Skipping daily log row %s: %s", row.get("log_id"), exc)

    return CycleHistory.from_records(cycles, logs)


# ---------------------------------------------------------------------------
# Store access
# ---------------------------------------------------------------------------


class CycleRepository:
    """Load snapshots from, and apply commands to, the cycle store.

    Usage::

        repo = CycleRepository()
        history = await repo.load_history(user_id)
        settings = await repo.load_settings(user_id)
        await repo.start_period(user_id, date(2024, 1, 29))
    """

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load_history(self, user_id: uuid.UUID) -> CycleHistory:
        cycle_rows = await fetch(
            "SELECT * FROM menstrual_cycles WHERE user_id = $1 ORDER BY period_start",
            user_id,
            user_id=user_id,
        )
        log_rows = await fetch(
            "SELECT * FROM menstrual_daily_logs WHERE user_id = $1 ORDER BY log_date",
            user_id,
            user_id=user_id,
        )
        history = build_history([dict(r) for r in cycle_rows], [dict(r) for r in log_rows])
        logger.debug(
            "Loaded %d cycles and %d logs for user %s",
            len(history.cycles), len(history.logs), user_id,
        )
        return history

    async def load_settings(self, user_id: uuid.UUID) -> CycleSettings:
        row = await fetchrow(
            "SELECT * FROM menstrual_settings WHERE user_id = $1",
            user_id,
            user_id=user_id,
        )
        return settings_from_row(dict(row) if row else None)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start_period(
        self,
        user_id: uuid.UUID,
        start: date,
        flow_intensity: FlowIntensity | None = None,
        notes: str | None = None,
    ) -> CycleRecord:
        """Open a new cycle on ``start``.

        An open period is closed on the day before ``start``.  Starting again
        on the open period's own start date is a no-op.  A daily log with the
        matching flow level is seeded for ``start``.

        Raises:
            CycleConflictError: If ``start`` falls before or inside an existing period.
        """
        async with get_connection(user_id=user_id) as conn:
            latest_row = await conn.fetchrow(
                """
                SELECT * FROM menstrual_cycles WHERE user_id = $1
                ORDER BY period_start DESC LIMIT 1
                FOR UPDATE
                """,
                user_id,
            )
            if latest_row is not None:
                latest = cycle_record_from_row(dict(latest_row))
                if start < latest.period_start:
                    raise CycleConflictError(
                        f"Period start {start} precedes the most recent cycle ({latest.period_start})"
                    )
                if latest.is_open and start == latest.period_start:
                    return latest
                if latest.is_open:
                    await conn.execute(
                        """
                        UPDATE menstrual_cycles SET period_end = $3, updated_at = NOW()
                        WHERE user_id = $1 AND cycle_id = $2
                        """,
                        user_id, latest.cycle_id, start - timedelta(days=1),
                    )
                    logger.info("Closed open period %s on %s", latest.cycle_id, start - timedelta(days=1))
                elif latest.period_end is not None and latest.period_end >= start:
                    raise CycleConflictError(
                        f"Period start {start} falls inside the period ending {latest.period_end}"
                    )

            row = await conn.fetchrow(
                """
                INSERT INTO menstrual_cycles (cycle_id, user_id, period_start, flow_intensity, notes)
                VALUES (gen_random_uuid(), $1, $2, $3, $4)
                RETURNING *
                """,
                user_id,
                start,
                flow_intensity.value if flow_intensity else None,
                notes,
            )

            seed = DailyLog(log_date=start, flow_level=FlowLevel.from_intensity(flow_intensity))
            await conn.fetchrow(*self._daily_log_upsert(user_id, seed, ["flow_level"]))

        record = cycle_record_from_row(dict(row))
        logger.info("Started period %s on %s", record.cycle_id, start)
        return record

    async def end_period(self, user_id: uuid.UUID, end: date) -> CycleRecord:
        """Close the open period on ``end``.

        Only the latest period can be closed; a stale open row left behind an
        already closed later period is never touched.

        Raises:
            CycleConflictError: If the latest period is not open.
            CycleDataError:     If ``end`` is before the open period's start.
        """
        async with get_connection(user_id=user_id) as conn:
            latest_row = await conn.fetchrow(
                """
                SELECT * FROM menstrual_cycles WHERE user_id = $1
                ORDER BY period_start DESC LIMIT 1
                FOR UPDATE
                """,
                user_id,
            )
            if latest_row is None:
                raise CycleConflictError("No active period to end")

            active = cycle_record_from_row(dict(latest_row))
            if not active.is_open:
                raise CycleConflictError(
                    f"No active period to end; the latest period ended {active.period_end}"
                )
            if end < active.period_start:
                raise CycleDataError(
                    f"Period end {end} is before its start {active.period_start}"
                )

            row = await conn.fetchrow(
                """
                UPDATE menstrual_cycles SET period_end = $3, updated_at = NOW()
                WHERE user_id = $1 AND cycle_id = $2
                RETURNING *
                """,
                user_id, active.cycle_id, end,
            )

        record = cycle_record_from_row(dict(row))
        logger.info("Ended period %s on %s", record.cycle_id, end)
        return record

    async def delete_cycle(self, user_id: uuid.UUID, cycle_id: uuid.UUID) -> bool:
        async with get_connection(user_id=user_id) as conn:
            result = await conn.execute(
                "DELETE FROM menstrual_cycles WHERE user_id = $1 AND cycle_id = $2",
                user_id, cycle_id,
            )
        return result != "DELETE 0"

    async def save_daily_log(self, user_id: uuid.UUID, log: DailyLog) -> DailyLog:
        """Insert or replace the log for ``log.log_date``."""
        async with get_connection(user_id=user_id) as conn:
            row = await conn.fetchrow(*self._daily_log_upsert(user_id, log))
        return daily_log_from_row(dict(row))

    async def delete_daily_log(self, user_id: uuid.UUID, log_date: date) -> bool:
        async with get_connection(user_id=user_id) as conn:
            result = await conn.execute(
                "DELETE FROM menstrual_daily_logs WHERE user_id = $1 AND log_date = $2",
                user_id, log_date,
            )
        return result != "DELETE 0"

    async def save_settings(self, user_id: uuid.UUID, settings: CycleSettings) -> CycleSettings:
        query = build_upsert_query("menstrual_settings", _SETTINGS_COLUMNS, ["user_id"])
        async with get_connection(user_id=user_id) as conn:
            row = await conn.fetchrow(
                query,
                user_id,
                settings.average_cycle_length_default,
                settings.average_period_length_default,
                settings.luteal_phase_length,
                settings.fertile_window_tracking,
                settings.ovulation_tracking,
                settings.pms_tracking,
                settings.reminder_enabled,
                settings.reminder_days_before,
            )
        return settings_from_row(dict(row))

    @staticmethod
    def _daily_log_upsert(
        user_id: uuid.UUID, log: DailyLog, update_columns: list[str] | None = None
    ) -> tuple[Any, ...]:
        """Query and arguments upserting ``log`` on (user_id, log_date)."""
        if log.log_id is None:
            log = replace(log, log_id=uuid.uuid4())
        if update_columns is None:
            update_columns = _DAILY_LOG_COLUMNS[3:]
        query = build_upsert_query(
            "menstrual_daily_logs",
            _DAILY_LOG_COLUMNS,
            ["user_id", "log_date"],
            update_columns,
        )
        return (
            query,
            log.log_id,
            user_id,
            log.log_date,
            log.flow_level.value if log.flow_level else None,
            log.mood.value if log.mood else None,
            log.pain_level,
            log.energy_level,
            sorted(s.value for s in log.symptoms),
            log.sleep_quality.value if log.sleep_quality else None,
            log.cervical_mucus.value if log.cervical_mucus else None,
            log.notes,
        )
