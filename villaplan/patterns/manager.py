"""Create, update, duplicate and delete reusable shift patterns."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from villaplan.config import DEFAULT_CONFIG, PlanningConfig
from villaplan.domain.db import transaction
from villaplan.domain.models import ShiftPattern, User
from villaplan.domain.repositories import ShiftPatternRepository
from villaplan.logging_setup import get_logger
from villaplan.patterns.validator import PatternValidator

logger = get_logger(__name__)


class PatternManager:
    """Persists patterns after validating their name and configuration."""

    def __init__(self, session: Session, cfg: PlanningConfig = DEFAULT_CONFIG):
        self.session = session
        self.validator = PatternValidator(session, cfg)

    def create(
        self,
        name: str,
        configuration: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
        created_by: Optional[User] = None,
    ) -> Tuple[ShiftPattern, List[Dict[str, str]]]:
        """
        Create a new pattern.

        Returns:
            (pattern, warnings)

        Raises:
            DuplicatePatternNameError: Blank or taken name
            PatternValidationError: Invalid configuration
        """
        configuration = configuration or {"creneaux_garde": [], "creneaux_renfort": [], "options": {}}
        self.validator.validate_name(name)
        _, warnings = self.validator.validate_configuration(configuration)

        pattern = ShiftPattern(name=name, description=description, created_by=created_by)
        pattern.set_configuration(configuration)
        with transaction(self.session):
            ShiftPatternRepository.create(self.session, pattern)

        logger.info("Pattern created: id=%s name=%s", pattern.id, name)
        return pattern, warnings

    def update(
        self,
        pattern: ShiftPattern,
        name: str,
        description: Optional[str],
        configuration: Dict[str, Any],
        updated_by: Optional[User] = None,
    ) -> List[Dict[str, str]]:
        """Replace name, description and configuration; returns the warnings."""
        self.validator.validate_name(name, exclude_id=pattern.id)
        _, warnings = self.validator.validate_configuration(configuration)

        with transaction(self.session):
            pattern.name = name
            pattern.description = description
            pattern.set_configuration(configuration)
            pattern.updated_by = updated_by

        logger.info("Pattern updated: id=%s", pattern.id)
        return warnings

    def duplicate(self, source: ShiftPattern, new_name: str, created_by: Optional[User] = None) -> ShiftPattern:
        """Copy a pattern's description and configuration under a new name (usage is not copied)."""
        self.validator.validate_name(new_name)

        copy = ShiftPattern(name=new_name, description=source.description, created_by=created_by)
        copy.set_configuration(source.get_configuration())
        with transaction(self.session):
            ShiftPatternRepository.create(self.session, copy)

        logger.info("Pattern duplicated: source=%s new=%s", source.id, copy.id)
        return copy

    def delete(self, pattern: ShiftPattern) -> None:
        pattern_id = pattern.id
        with transaction(self.session):
            ShiftPatternRepository.delete(self.session, pattern)
        logger.info("Pattern deleted: id=%s", pattern_id)

    def record_usage(self, pattern: ShiftPattern) -> None:
        with transaction(self.session):
            pattern.increment_usage()
