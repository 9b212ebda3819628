"""
core/summary.py
────────────────────────────────────────────────────────────────────────
"How it works" explanation for a user who has finished onboarding.

Works on the persisted `user_settings` + `initial_plan_snapshots` rows
(or anything exposing the same attributes); never touches the database.
"""

from __future__ import annotations

from typing import Any

from core.health_calc import ACTIVITY_MULTIPLIERS

ACTIVITY_DESCRIPTIONS: dict[str, str] = {
    "sedentary": "little to no exercise",
    "light": "light exercise 1-3 days/week",
    "moderate": "moderate exercise 3-5 days/week",
    "active": "hard exercise 6-7 days/week",
    "very_active": "very hard exercise and physical job",
}

GOAL_EXPLANATIONS: dict[str, str] = {
    "lose_weight": (
        "To lose weight safely, we've created a 500-calorie daily deficit. "
        "This targets approximately 0.5kg of fat loss per week - a sustainable "
        "rate that preserves muscle mass and keeps your metabolism healthy."
    ),
    "gain_muscle": (
        "To build muscle, we've added a 400-calorie daily surplus. This provides "
        "extra energy for muscle growth while minimizing fat gain. Combined with "
        "strength training, this supports lean muscle development."
    ),
    "maintain": (
        "To maintain your current weight, your calorie target matches your TDEE. "
        "This keeps your weight stable while providing optimal nutrition for "
        "health and performance."
    ),
    "improve_health": (
        "Your calorie target is set to maintain your weight while focusing on "
        "nutrition quality. This supports overall health improvements without "
        "the stress of weight change."
    ),
}

GOAL_VERBS: dict[str, str] = {
    "lose_weight": "lose weight",
    "gain_muscle": "gain muscle",
    "maintain": "maintain your weight",
    "improve_health": "improve your health",
}

_DEFAULT_MULTIPLIER = ACTIVITY_MULTIPLIERS["moderate"]


def _num(v: Any) -> float:
    return float(v) if v is not None else 0.0


class SummaryExplainer:
    """Turns stored numbers into per-metric rationale strings."""

    def explain(self, settings: Any, snapshot: Any, age: int | None) -> dict[str, Any]:
        gender = settings.gender or "other"
        activity = settings.activity_level or "moderate"
        goal = settings.primary_goal or "maintain"
        current = _num(settings.current_weight)
        target = _num(settings.target_weight)

        return {
            "current_metrics": {
                "age": age,
                "gender": settings.gender,
                "weight": current,
                "height": _num(settings.height),
                "activity_level": settings.activity_level,
            },
            "goals": {
                "primary_goal": settings.primary_goal,
                "target_weight": target,
                "target_date": settings.target_date,
            },
            "calculations": {
                "bmr": {
                    "value": settings.bmr,
                    "formula": "Mifflin-St Jeor Equation",
                    "explanation": self.bmr_explanation(gender, age or 0),
                },
                "tdee": {
                    "value": settings.tdee,
                    "activity_multiplier": ACTIVITY_MULTIPLIERS.get(activity, _DEFAULT_MULTIPLIER),
                    "explanation": self.tdee_explanation(activity),
                },
                "targets": {
                    "calories": {
                        "value": settings.calorie_target,
                        "explanation": self.goal_explanation(goal),
                    },
                    "protein": {
                        "value": settings.protein_target,
                        "unit": "grams/day",
                        "explanation": (
                            "Protein helps preserve muscle mass and keeps you full longer. "
                            "Your target is based on your weight and goal."
                        ),
                    },
                    "water": {
                        "value": settings.water_target,
                        "unit": "ml/day",
                        "explanation": (
                            "Staying hydrated supports metabolism and helps control appetite. "
                            "Target is ~35ml per kg of body weight."
                        ),
                    },
                },
            },
            "projection": {
                "start_weight": _num(snapshot.start_weight),
                "target_weight": _num(snapshot.target_weight),
                "weekly_rate": _num(snapshot.weekly_weight_change_rate),
                "estimated_weeks": snapshot.estimated_weeks,
                "projected_date": snapshot.projected_completion_date,
                "explanation": self.timeline_explanation(
                    current, target, snapshot.estimated_weeks or 0, goal
                ),
            },
            "how_it_works": self._steps(settings, snapshot, activity, goal),
        }

    # --------------- rationale strings --------------------------------
    def bmr_explanation(self, gender: str, age: int) -> str:
        return (
            "Your Basal Metabolic Rate (BMR) is the number of calories your body needs "
            "to function at rest - breathing, circulating blood, and maintaining body "
            f"temperature. As a {age}-year-old {gender}, this is calculated using the "
            "Mifflin-St Jeor equation, which is the most accurate for modern populations."
        )

    def tdee_explanation(self, activity_level: str) -> str:
        descriptor = ACTIVITY_DESCRIPTIONS.get(activity_level, activity_level)
        return (
            "Your Total Daily Energy Expenditure (TDEE) accounts for your activity level "
            f"({descriptor}). This is your BMR multiplied by an activity factor to "
            "estimate total daily calorie burn."
        )

    def goal_explanation(self, goal: str) -> str:
        return GOAL_EXPLANATIONS.get(goal, GOAL_EXPLANATIONS["maintain"])

    def timeline_explanation(self, current: float, target: float, weeks: int, goal: str) -> str:
        difference = abs(target - current)
        if goal == "lose_weight":
            direction = "lose"
        elif goal == "gain_muscle":
            direction = "gain"
        else:
            direction = "reach"
        return (
            f"To {direction} {difference:.1f}kg safely, we estimate {weeks} weeks at your "
            "current activity level and calorie target. This timeline is based on "
            "sustainable rates: 0.5kg/week for weight loss, 0.4kg/week for muscle gain."
        )

    def _steps(self, settings: Any, snapshot: Any, activity: str, goal: str) -> dict[str, dict[str, str]]:
        verb = GOAL_VERBS.get(goal, "reach your goal")
        return {
            "step1": {
                "title": "Track Your Progress",
                "description": (
                    f"We start with your BMR of {settings.bmr} calories - the energy your "
                    f"body needs at rest. Based on your {activity} activity level, your "
                    f"TDEE is {settings.tdee} calories per day."
                ),
            },
            "step2": {
                "title": "Create a Sustainable Deficit/Surplus",
                "description": (
                    f"To {verb}, we've set your daily target to {settings.calorie_target} "
                    "calories. This creates a safe, sustainable pace for reaching your goal."
                ),
            },
            "step3": {
                "title": "Stay Accountable",
                "description": (
                    f"With proper nutrition ({settings.protein_target}g protein, "
                    f"{settings.water_target}ml water daily) and accountability partners, "
                    f"you'll reach your goal in approximately {snapshot.estimated_weeks} weeks."
                ),
            },
            "step4": {
                "title": "Adjust as Needed",
                "description": (
                    "As you progress, your metabolism adapts. We'll help you adjust your "
                    "targets to keep making progress safely and sustainably."
                ),
            },
        }
