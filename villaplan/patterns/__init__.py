"""Reusable weekly shift patterns: schema, validation, management, application."""

from .applicator import PatternApplicator
from .manager import PatternManager
from .schema import MainShiftEntry, PatternConfiguration, ReinforcementEntry
from .validator import PatternValidator

__all__ = [
    "MainShiftEntry",
    "PatternApplicator",
    "PatternConfiguration",
    "PatternManager",
    "PatternValidator",
    "ReinforcementEntry",
]
