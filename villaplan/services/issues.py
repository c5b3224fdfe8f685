"""Non-blocking warnings and validation issues returned as data."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

WARNING = "warning"
ERROR = "error"

DISPLAY_FORMAT = "%d/%m/%Y %H:%M"


@dataclass
class Issue:
    """One finding: ``type`` is a stable machine key, ``message`` is for display."""
    type: str
    message: str
    severity: str = WARNING
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "message": self.message, "severity": self.severity, **self.details}


def format_window(start: datetime, end: datetime) -> str:
    return f"from {start.strftime(DISPLAY_FORMAT)} to {end.strftime(DISPLAY_FORMAT)}"
