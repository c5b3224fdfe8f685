"""Configuration loading for the planning core (YAML or JSON)."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict

import yaml


@dataclass
class ReinforcementWindow:
    """Same-day reinforcement slot opened by the weekly skeleton cycle."""
    start_hour: int
    end_hour: int


@dataclass
class CycleConfig:
    """Hours used by the built-in weekly skeleton cycle."""
    weekday_start_hour: int = 7
    weekend_start_hour: int = 8
    wednesday_reinforcement: ReinforcementWindow = field(
        default_factory=lambda: ReinforcementWindow(start_hour=11, end_hour=19)
    )
    saturday_reinforcement: ReinforcementWindow = field(
        default_factory=lambda: ReinforcementWindow(start_hour=10, end_hour=18)
    )


@dataclass
class WorkingTimeConfig:
    min_counted_hours: float = 7.0
    duration_warning_min_hours: float = 7.0
    duration_warning_max_hours: float = 72.0


@dataclass
class AnnualLimitConfig:
    ceiling_days: int = 258
    warning_margin_days: int = 10


@dataclass
class LeaveConfig:
    paid_leave_code: str = "CP"
    monthly_paid_leave_acquisition: float = 2.5


@dataclass
class PatternConfig:
    max_configuration_bytes: int = 60000
    duration_tolerance_hours: float = 1.0


@dataclass
class PlanningConfig:
    database_url: str = "sqlite:///planning.db"
    timezone: str = "Europe/Paris"
    cycle: CycleConfig = field(default_factory=CycleConfig)
    working_time: WorkingTimeConfig = field(default_factory=WorkingTimeConfig)
    annual_limit: AnnualLimitConfig = field(default_factory=AnnualLimitConfig)
    leave: LeaveConfig = field(default_factory=LeaveConfig)
    patterns: PatternConfig = field(default_factory=PatternConfig)


def _build(cls, payload: Dict[str, Any] | None):
    """Instantiate a config dataclass from a mapping, ignoring unknown keys."""
    payload = payload or {}
    known = {f.name for f in fields(cls)}
    unknown = set(payload) - known
    if unknown:
        raise ValueError(f"Unknown configuration keys for {cls.__name__}: {sorted(unknown)}")
    return cls(**payload)


def config_from_dict(raw: Dict[str, Any]) -> PlanningConfig:
    raw = dict(raw or {})
    cycle_raw = dict(raw.pop("cycle", {}) or {})
    for key in ("wednesday_reinforcement", "saturday_reinforcement"):
        if key in cycle_raw:
            cycle_raw[key] = _build(ReinforcementWindow, cycle_raw[key])
    cfg = PlanningConfig(
        cycle=_build(CycleConfig, cycle_raw),
        working_time=_build(WorkingTimeConfig, raw.pop("working_time", None)),
        annual_limit=_build(AnnualLimitConfig, raw.pop("annual_limit", None)),
        leave=_build(LeaveConfig, raw.pop("leave", None)),
        patterns=_build(PatternConfig, raw.pop("patterns", None)),
        **{k: v for k, v in raw.items() if k in ("database_url", "timezone")},
    )
    leftover = set(raw) - {"database_url", "timezone"}
    if leftover:
        raise ValueError(f"Unknown configuration keys: {sorted(leftover)}")
    _check(cfg)
    return cfg


def _check(cfg: PlanningConfig) -> None:
    for name in ("weekday_start_hour", "weekend_start_hour"):
        hour = getattr(cfg.cycle, name)
        if not 0 <= hour <= 23:
            raise ValueError(f"cycle.{name} must be between 0 and 23, got {hour}")
    for name in ("wednesday_reinforcement", "saturday_reinforcement"):
        window = getattr(cfg.cycle, name)
        if window.end_hour <= window.start_hour:
            raise ValueError(f"cycle.{name}: end_hour must be after start_hour")
    if cfg.annual_limit.ceiling_days <= 0:
        raise ValueError("annual_limit.ceiling_days must be positive")
    if cfg.annual_limit.warning_margin_days < 0:
        raise ValueError("annual_limit.warning_margin_days cannot be negative")


def load_config(path: str | Path | None = None) -> PlanningConfig:
    """
    Load configuration from a YAML or JSON file.

    Args:
        path: Path to the config file. ``None`` returns the defaults.

    Returns:
        PlanningConfig

    Raises:
        ValueError: On unknown keys or out-of-range values
    """
    if path is None:
        return PlanningConfig()
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        raw = json.loads(text)
    else:
        raw = yaml.safe_load(text)
    return config_from_dict(raw or {})


DEFAULT_CONFIG = PlanningConfig()
