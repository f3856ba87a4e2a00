"""Load, validate, and hot-reload the cycle engine configuration.

The config lives in ``cycle_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_cycle_config()`` to re-read from
disk after an admin update — no restart required.

Usage::

    from cyclecare.cycle.config_loader import get_cycle_config

    config = get_cycle_config()
    window = config.prediction.rolling_average_cycles   # 6
    top_n = config.statistics.top_symptoms              # 5
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger("cyclecare.cycle.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "cycle_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConfidenceConfig:
    """Constants of the prediction confidence formula.

    ``confidence = clamp(base + per_cycle * min(n, max_cycles) - penalty, 0, ceiling)``
    """

    base: float = 0.3
    per_cycle: float = 0.1
    max_cycles: int = 6
    ceiling: float = 0.95
    variance_penalty_scale: float = 1.0
    out_of_range_penalty: float = 0.2


@dataclass(frozen=True)
class PredictionConfig:
    """Next-period prediction settings."""

    rolling_average_cycles: int = 6
    min_plausible_cycle_days: int = 15
    max_plausible_cycle_days: int = 90
    fertile_days_before_ovulation: int = 5
    fertile_days_after_ovulation: int = 1
    confidence: ConfidenceConfig = field(default_factory=ConfidenceConfig)


@dataclass(frozen=True)
class RegularityConfig:
    """Spread thresholds (longest − shortest cycle) per regularity class."""

    very_regular_max_spread: int = 3
    regular_max_spread: int = 7
    irregular_max_spread: int = 14


@dataclass(frozen=True)
class StatisticsConfig:
    """Historical statistics settings."""

    top_symptoms: int = 5
    pms_lookback_days: int = 5
    regularity: RegularityConfig = field(default_factory=RegularityConfig)


@dataclass(frozen=True)
class CycleEngineConfig:
    """Complete, validated cycle engine configuration.

    This is the single in-memory representation of cycle_config.yaml.
    The phase calculator, predictor, aggregator and calendar projector all
    read from this object.

    Attributes:
        version:         Config schema version string.
        prediction:      Prediction engine constants.
        min_cycle_days:  Individual cycles shorter than this raise a warning.
        max_cycle_days:  Individual cycles longer than this raise a warning.
        statistics:      Statistics aggregator constants.
        pms_window_days: Days before a period start flagged as PMS on the calendar.
    """

    version: str = "1.0"
    prediction: PredictionConfig = field(default_factory=PredictionConfig)
    min_cycle_days: int = 21
    max_cycle_days: int = 45
    statistics: StatisticsConfig = field(default_factory=StatisticsConfig)
    pms_window_days: int = 5
    _raw: dict = field(default_factory=dict, repr=False, compare=False)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when cycle_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Cycle config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> CycleEngineConfig:
    """Validate the raw YAML dict and construct a CycleEngineConfig.

    Missing optional keys fall back to the dataclass defaults.  Every problem
    is collected before raising so an admin sees the whole list at once.

    Raises:
        ConfigValidationError: If any value is non-numeric or out of range.
    """
    errors: list[str] = []

    def _int(section: dict, key: str, default: int, path: str, minimum: int = 0) -> int:
        value = section.get(key, default)
        try:
            result = int(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be an integer, got {value!r}")
            return default
        if result < minimum:
            errors.append(f"{path}.{key} = {result} must be >= {minimum}")
        return result

    def _float(section: dict, key: str, default: float, path: str) -> float:
        value = section.get(key, default)
        try:
            result = float(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be a number, got {value!r}")
            return default
        if result < 0.0:
            errors.append(f"{path}.{key} = {result} must not be negative")
        return result

    def _section(parent: dict, key: str, path: str) -> dict:
        value = parent.get(key) or {}
        if not isinstance(value, dict):
            errors.append(f"{path}{key} must be a mapping")
            return {}
        return value

    version = str(raw.get("version", "1.0"))

    # ── Prediction ──
    pr_raw = _section(raw, "prediction", "")
    bounds_raw = _section(pr_raw, "plausible_cycle_days", "prediction.")
    conf_raw = _section(pr_raw, "confidence", "prediction.")
    fw_raw = _section(pr_raw, "fertile_window", "prediction.")

    confidence = ConfidenceConfig(
        base=_float(conf_raw, "base", 0.3, "prediction.confidence"),
        per_cycle=_float(conf_raw, "per_cycle", 0.1, "prediction.confidence"),
        max_cycles=_int(conf_raw, "max_cycles", 6, "prediction.confidence", minimum=1),
        ceiling=_float(conf_raw, "ceiling", 0.95, "prediction.confidence"),
        variance_penalty_scale=_float(
            conf_raw, "variance_penalty_scale", 1.0, "prediction.confidence"
        ),
        out_of_range_penalty=_float(
            conf_raw, "out_of_range_penalty", 0.2, "prediction.confidence"
        ),
    )
    if confidence.ceiling > 1.0:
        errors.append(f"prediction.confidence.ceiling = {confidence.ceiling} is above 1.0")

    prediction = PredictionConfig(
        rolling_average_cycles=_int(
            pr_raw, "rolling_average_cycles", 6, "prediction", minimum=1
        ),
        min_plausible_cycle_days=_int(bounds_raw, "min", 15, "prediction.plausible_cycle_days", minimum=1),
        max_plausible_cycle_days=_int(bounds_raw, "max", 90, "prediction.plausible_cycle_days", minimum=1),
        fertile_days_before_ovulation=_int(
            fw_raw, "days_before_ovulation", 5, "prediction.fertile_window"
        ),
        fertile_days_after_ovulation=_int(
            fw_raw, "days_after_ovulation", 1, "prediction.fertile_window"
        ),
        confidence=confidence,
    )
    if prediction.min_plausible_cycle_days >= prediction.max_plausible_cycle_days:
        errors.append(
            "prediction.plausible_cycle_days.min must be below "
            "prediction.plausible_cycle_days.max"
        )

    # ── Cycle length warnings ──
    cl_raw = _section(raw, "cycle_length", "")
    min_cycle_days = _int(cl_raw, "min_cycle_days", 21, "cycle_length", minimum=1)
    max_cycle_days = _int(cl_raw, "max_cycle_days", 45, "cycle_length", minimum=1)
    if min_cycle_days >= max_cycle_days:
        errors.append("cycle_length.min_cycle_days must be below cycle_length.max_cycle_days")

    # ── Statistics ──
    st_raw = _section(raw, "statistics", "")
    rg_raw = _section(st_raw, "regularity", "statistics.")
    regularity = RegularityConfig(
        very_regular_max_spread=_int(rg_raw, "very_regular_max_spread", 3, "statistics.regularity"),
        regular_max_spread=_int(rg_raw, "regular_max_spread", 7, "statistics.regularity"),
        irregular_max_spread=_int(rg_raw, "irregular_max_spread", 14, "statistics.regularity"),
    )
    if not (
        regularity.very_regular_max_spread
        <= regularity.regular_max_spread
        <= regularity.irregular_max_spread
    ):
        errors.append("statistics.regularity spreads must be non-decreasing")

    statistics = StatisticsConfig(
        top_symptoms=_int(st_raw, "top_symptoms", 5, "statistics", minimum=1),
        pms_lookback_days=_int(st_raw, "pms_lookback_days", 5, "statistics"),
        regularity=regularity,
    )

    # ── Calendar ──
    cal_raw = _section(raw, "calendar", "")
    pms_window_days = _int(cal_raw, "pms_window_days", 5, "calendar")

    if errors:
        raise ConfigValidationError(
            f"cycle_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return CycleEngineConfig(
        version=version,
        prediction=prediction,
        min_cycle_days=min_cycle_days,
        max_cycle_days=max_cycle_days,
        statistics=statistics,
        pms_window_days=pms_window_days,
        _raw=raw,
    )


def load_cycle_config(path: Path | None = None) -> CycleEngineConfig:
    """Load and validate the cycle engine config from disk.

    Args:
        path: Override path to YAML. Uses the bundled cycle_config.yaml by default.

    Returns:
        Validated CycleEngineConfig instance.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded cycle config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: CycleEngineConfig | None = None
_config_lock = threading.Lock()


def get_cycle_config() -> CycleEngineConfig:
    """Return the global CycleEngineConfig singleton, loading it on first call.

    Thread-safe.  Use ``reload_cycle_config()`` to refresh after YAML changes.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_cycle_config()
    return _config


def reload_cycle_config(path: Path | None = None) -> CycleEngineConfig:
    """Reload the cycle config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_cycle_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded cycle config: %s → %s", old_version, new_config.version)
    return new_config

