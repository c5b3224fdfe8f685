"""Structural validation of shift pattern names and configurations."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy.orm import Session

from villaplan.config import DEFAULT_CONFIG, PlanningConfig
from villaplan.domain.enums import AffectationKind
from villaplan.domain.repositories import ShiftPatternRepository
from villaplan.errors import DuplicatePatternNameError, PatternValidationError
from villaplan.patterns.schema import PatternConfiguration

# Error types
EMPTY_NAME = "empty_name"
DUPLICATE_NAME = "duplicate_name"
INVALID_CONFIG = "invalid_config"
INVALID_DAY = "invalid_day"
INVALID_TIME = "invalid_time"
INVALID_DURATION = "invalid_duration"

# Warning types (non-blocking)
NO_SLOTS = "no_slots"
LARGE_CONFIG = "large_config"
DURATION_MISMATCH = "duration_mismatch"

_FIELD_ERRORS = {
    "jour_debut": (INVALID_DAY, "{field} must be between 1 and 7"),
    "jour": (INVALID_DAY, "{field} must be between 1 and 7"),
    "heure_debut": (INVALID_TIME, "{field} must be between 0 and 23"),
    "heure_fin": (INVALID_TIME, "{field} must be between 0 and 23"),
    "duree_heures": (INVALID_DURATION, "duration must be between 1h and 168h"),
}

# Raised by the strict integer fields on non-integer input.
_TYPE_ERRORS = ("int_type", "int_parsing", "int_from_float")

_LIST_PREFIXES = {
    "creneaux_garde": "Main shift slot",
    "creneaux_renfort": "Reinforcement slot",
}

Message = Dict[str, str]


def _message(error_type: str, message: str) -> Message:
    return {"type": error_type, "message": message}


def _nominal_hours(shift_type: Any) -> Optional[int]:
    """Nominal length of a fixed main-shift type; None for custom or unknown types."""
    try:
        return AffectationKind(shift_type).nominal_hours
    except ValueError:
        return None


def _translate(error: Dict[str, Any]) -> Message:
    """Turn one pydantic error into a ``{type, message}`` entry."""
    loc = error["loc"]
    if not loc or loc[0] not in _LIST_PREFIXES:
        return _message(INVALID_CONFIG, f"Configuration: {error['msg']}.")

    if len(loc) == 1:
        return _message(INVALID_CONFIG, f"'{loc[0]}' must be a list of slots.")

    prefix = f"{_LIST_PREFIXES[loc[0]]} #{loc[1] + 1}"
    if len(loc) == 2:
        if error["type"] == "value_error":
            return _message(INVALID_DURATION, f"{prefix}: heure_fin must be after heure_debut.")
        return _message(INVALID_CONFIG, f"{prefix}: must be an object.")

    field = loc[2]
    if error["type"] == "missing":
        return _message(INVALID_CONFIG, f"{prefix}: field '{field}' is missing.")
    if error["type"] in _TYPE_ERRORS:
        return _message(INVALID_CONFIG, f"{prefix}: {field} must be a whole number.")
    if field == "type":
        return _message(INVALID_CONFIG, f"{prefix}: invalid type '{error.get('input')}'.")
    if field in _FIELD_ERRORS:
        error_type, template = _FIELD_ERRORS[field]
        return _message(error_type, f"{prefix}: {template.format(field=field)}.")
    return _message(INVALID_CONFIG, f"{prefix}: {field}: {error['msg']}.")


class PatternValidator:
    """Validates names and configurations before a pattern is saved."""

    def __init__(self, session: Optional[Session] = None, cfg: PlanningConfig = DEFAULT_CONFIG):
        self.session = session
        self.cfg = cfg

    def validate_name(self, name: str, exclude_id: Optional[int] = None) -> None:
        """
        Check that a name is non-blank and not used by another pattern.

        Raises:
            DuplicatePatternNameError: With every name problem found
        """
        errors = []
        if not name or not name.strip():
            errors.append(_message(EMPTY_NAME, "The name cannot be empty."))
        elif self.session is not None and ShiftPatternRepository.name_exists(self.session, name, exclude_id):
            errors.append(_message(DUPLICATE_NAME, f"A pattern named '{name}' already exists."))
        if errors:
            raise DuplicatePatternNameError(errors)

    def collect_warnings(self, raw: Dict[str, Any]) -> List[Message]:
        """Non-blocking remarks on a raw configuration."""
        warnings = []
        main_entries = raw.get("creneaux_garde") or []
        reinforcement_entries = raw.get("creneaux_renfort") or []
        if not isinstance(main_entries, list):
            main_entries = []
        if not isinstance(reinforcement_entries, list):
            reinforcement_entries = []

        if not main_entries and not reinforcement_entries:
            warnings.append(_message(NO_SLOTS, "The pattern contains no slot."))

        size = len(json.dumps(raw, separators=(",", ":"), default=str).encode("utf-8"))
        limit = self.cfg.patterns.max_configuration_bytes
        if size > limit:
            warnings.append(_message(
                LARGE_CONFIG, f"Configuration is very large ({size} bytes, limit {limit})."
            ))

        tolerance = self.cfg.patterns.duration_tolerance_hours
        for index, entry in enumerate(main_entries):
            if not isinstance(entry, dict):
                continue
            nominal = _nominal_hours(entry.get("type"))
            duration = entry.get("duree_heures")
            if nominal is None or isinstance(duration, bool) or not isinstance(duration, (int, float)):
                continue
            if abs(duration - nominal) > tolerance:
                warnings.append(_message(
                    DURATION_MISMATCH,
                    f"Main shift slot #{index + 1}: duration of {duration}h does not match {entry['type']}.",
                ))
        return warnings

    def validate_configuration(self, raw: Any) -> Tuple[PatternConfiguration, List[Message]]:
        """
        Validate a raw configuration mapping.

        All errors are collected before raising so they can be shown together.

        Args:
            raw: Decoded configuration (dict)

        Returns:
            (parsed configuration, warnings)

        Raises:
            PatternValidationError: With every error found, plus the warnings
        """
        if not isinstance(raw, dict):
            raise PatternValidationError(
                [_message(INVALID_CONFIG, "Configuration must be an object.")]
            )

        raw = {**raw, **{key: [] for key in _LIST_PREFIXES if raw.get(key) is None}}
        warnings = self.collect_warnings(raw)
        try:
            parsed = PatternConfiguration.model_validate(raw)
        except ValidationError as exc:
            errors = [_translate(error) for error in exc.errors()]
            raise PatternValidationError(errors, warnings) from exc
        return parsed, warnings
