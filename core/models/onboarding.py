from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True)
class PartnerInput:
    name: str
    email: str | None = None
    phone: str | None = None
    relationship: str | None = None


@dataclass(frozen=True)
class OnboardingInput:
    """Answers collected by the onboarding flow, already shape-checked."""

    # account basics
    date_of_birth: date
    gender: str                 # "male" | "female" | "other" | anything custom
    # goals
    primary_goal: str           # lose_weight | gain_muscle | maintain | improve_health
    target_weight: float        # kg
    target_date: datetime
    activity_level: str         # sedentary | light | moderate | active | very_active
    # health metrics
    current_weight: float       # kg
    height: float               # cm
    # preferences
    dietary_preferences: list[str] = field(default_factory=list)
    allergies: list[str] = field(default_factory=list)
    meals_per_day: int = 3
    # accountability
    partners: list[PartnerInput] = field(default_factory=list)
