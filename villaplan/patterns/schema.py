"""Typed schema of a reusable shift pattern configuration.

A configuration holds two lists of weekly slot definitions:

    {
        "creneaux_garde":   [{"jour_debut": 1, "heure_debut": 7, "duree_heures": 48, "type": "garde_48h"}],
        "creneaux_renfort": [{"jour": 3, "heure_debut": 11, "heure_fin": 19, "label": "Mid-week"}],
        "options": {}
    }

Days are ISO weekdays (1 = Monday) counted from the week start.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator

from villaplan.domain.enums import AffectationKind

# Custom durations up to this many hours are booked as 24h main shifts.
CUSTOM_24H_MAX_HOURS = 36


class MainShiftEntry(BaseModel):
    """Main shift opened on ``jour_debut`` at ``heure_debut`` for ``duree_heures``."""

    model_config = ConfigDict(extra="ignore")

    jour_debut: StrictInt = Field(..., ge=1, le=7)
    heure_debut: StrictInt = Field(..., ge=0, le=23)
    duree_heures: StrictInt = Field(..., ge=1, le=168)
    type: Optional[Literal["garde_24h", "garde_48h", "garde_custom"]] = None
    label: Optional[str] = None

    @property
    def kind(self) -> AffectationKind:
        if self.type == "garde_24h":
            return AffectationKind.MAIN_24H
        if self.type == "garde_custom":
            if self.duree_heures <= CUSTOM_24H_MAX_HOURS:
                return AffectationKind.MAIN_24H
            return AffectationKind.MAIN_48H
        return AffectationKind.MAIN_48H


class ReinforcementEntry(BaseModel):
    """Same-day reinforcement from ``heure_debut`` to ``heure_fin``."""

    model_config = ConfigDict(extra="ignore")

    jour: StrictInt = Field(..., ge=1, le=7)
    heure_debut: StrictInt = Field(..., ge=0, le=23)
    heure_fin: StrictInt = Field(..., ge=0, le=23)
    label: Optional[str] = None

    @model_validator(mode="after")
    def check_same_day_window(self):
        if self.heure_fin <= self.heure_debut:
            raise ValueError("heure_fin must be after heure_debut")
        return self


class PatternConfiguration(BaseModel):
    model_config = ConfigDict(extra="allow")

    creneaux_garde: List[MainShiftEntry] = Field(default_factory=list)
    creneaux_renfort: List[ReinforcementEntry] = Field(default_factory=list)
    options: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.creneaux_garde and not self.creneaux_renfort
