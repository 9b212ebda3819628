"""
core/health_calc.py
────────────────────────────────────────────────────────────────────────
Pure numeric model behind onboarding:

1. Age (calendar aware)
2. Gender → numeric-model class
3. BMR  (Mifflin–St Jeor)
4. TDEE (activity multiplier)
5. Calorie / protein / water targets per goal
6. Weight-change projection (weekly rate, weeks, completion date)

Everything here is deterministic: "now" is always passed in.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta

Logger = logging.getLogger(__name__)

# ──────────────────────────────────────────────────────────────────────
#  Lookup tables
# ──────────────────────────────────────────────────────────────────────
GOALS = ("lose_weight", "gain_muscle", "maintain", "improve_health")

ACTIVITY_MULTIPLIERS: dict[str, float] = {
    "sedentary": 1.2,       # little or no exercise
    "light": 1.375,         # 1-3 days/week
    "moderate": 1.55,       # 3-5 days/week
    "active": 1.725,        # 6-7 days/week
    "very_active": 1.9,     # physical job or twice-a-day training
}

CALORIE_ADJUSTMENT: dict[str, int] = {
    "lose_weight": -500,
    "gain_muscle": 400,
    "maintain": 0,
    "improve_health": 0,
}

# g protein per kg body weight
PROTEIN_PER_KG: dict[str, float] = {
    "lose_weight": 1.8,
    "gain_muscle": 2.0,
    "maintain": 1.6,
    "improve_health": 1.6,
}

# kg per week, signed
WEEKLY_RATE: dict[str, float] = {
    "lose_weight": -0.5,
    "gain_muscle": 0.4,
    "maintain": 0.0,
    "improve_health": 0.0,
}

WATER_ML_PER_KG = 35

_SEX_OFFSET = {"male": 5.0, "female": -161.0}


def _round(x: float) -> int:
    """Half-up rounding; `round()` would use banker's rounding on .5."""
    return int(math.floor(x + 0.5))


# ──────────────────────────────────────────────────────────────────────
#  Age / gender
# ──────────────────────────────────────────────────────────────────────
def calculate_age(date_of_birth: date | datetime, now: date | datetime) -> int:
    dob = date_of_birth.date() if isinstance(date_of_birth, datetime) else date_of_birth
    today = now.date() if isinstance(now, datetime) else now

    age = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age


def normalize_gender(value: str | None) -> str:
    """Collapse any stored gender to the three classes the BMR model knows."""
    v = (value or "").strip().lower()
    return v if v in _SEX_OFFSET else "other"


# ──────────────────────────────────────────────────────────────────────
#  Result types
# ──────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class BodyMetrics:
    weight_kg: float
    height_cm: float
    age: int
    gender: str             # already normalized
    activity_level: str


@dataclass(frozen=True)
class HealthTargets:
    bmr: int
    tdee: int
    calorie_target: int
    protein_target: int     # g/day
    water_target: int       # ml/day

    def as_dict(self) -> dict[str, int]:
        return {
            "bmr": self.bmr,
            "tdee": self.tdee,
            "calorie_target": self.calorie_target,
            "protein_target": self.protein_target,
            "water_target": self.water_target,
        }


@dataclass(frozen=True)
class WeightProjection:
    weekly_rate: float      # kg/week, negative when losing
    estimated_weeks: int
    projected_date: datetime

    def as_dict(self) -> dict[str, object]:
        return {
            "weekly_rate": self.weekly_rate,
            "estimated_weeks": self.estimated_weeks,
            "projected_date": self.projected_date,
        }


# ──────────────────────────────────────────────────────────────────────
#  Calculators
# ──────────────────────────────────────────────────────────────────────
class HealthTargetCalculator:
    """Source-of-truth for BMR, TDEE and the daily targets."""

    # --------------- public entrypoint --------------------------------
    def targets(self, m: BodyMetrics, goal: str) -> HealthTargets:
        bmr = self.bmr(m)
        tdee = self.tdee(bmr, m.activity_level)
        Logger.debug("bmr=%s tdee=%s (activity=%s)", bmr, tdee, m.activity_level)
        return HealthTargets(
            bmr=bmr,
            tdee=tdee,
            calorie_target=self.calorie_target(tdee, goal),
            protein_target=self.protein_target(m.weight_kg, goal),
            water_target=self.water_target(m.weight_kg),
        )

    # --------------- BMR / TDEE ---------------------------------------
    def bmr(self, m: BodyMetrics) -> int:
        base = 10 * m.weight_kg + 6.25 * m.height_cm - 5 * m.age
        if m.gender in _SEX_OFFSET:
            offset = _SEX_OFFSET[m.gender]
        else:
            # midpoint of the two published equations
            offset = (_SEX_OFFSET["male"] + _SEX_OFFSET["female"]) / 2
        return _round(base + offset)

    def tdee(self, bmr: int, activity_level: str) -> int:
        return _round(bmr * ACTIVITY_MULTIPLIERS[activity_level])

    # --------------- Targets ------------------------------------------
    def calorie_target(self, tdee: int, goal: str) -> int:
        return _round(tdee + CALORIE_ADJUSTMENT.get(goal, 0))

    def protein_target(self, weight_kg: float, goal: str) -> int:
        return _round(weight_kg * PROTEIN_PER_KG.get(goal, PROTEIN_PER_KG["maintain"]))

    def water_target(self, weight_kg: float) -> int:
        return _round(weight_kg * WATER_ML_PER_KG)


class WeightProjectionCalculator:
    def project(
        self,
        current_weight: float,
        target_weight: float,
        goal: str,
        now: datetime,
    ) -> WeightProjection:
        rate = WEEKLY_RATE.get(goal, 0.0)
        if rate == 0:
            weeks = 0
        else:
            # weights are stored to 2 decimals; trim float noise before ceil
            delta = round(abs(target_weight - current_weight), 2)
            weeks = math.ceil(round(delta / abs(rate), 6))
        return WeightProjection(
            weekly_rate=rate,
            estimated_weeks=weeks,
            projected_date=now + timedelta(days=7 * weeks),
        )
