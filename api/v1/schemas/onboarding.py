from __future__ import annotations
from datetime import date, datetime, timezone
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel

from core.health_calc import calculate_age
from core.models.onboarding import OnboardingInput, PartnerInput

Goal = Literal["lose_weight", "gain_muscle", "maintain", "improve_health"]
ActivityLevel = Literal["sedentary", "light", "moderate", "active", "very_active"]

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)
_DATETIME = TypeAdapter(datetime)


class PartnerIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=20)
    relationship: str | None = Field(None, max_length=50)

    model_config = _CAMEL

    @field_validator("name", "email", "phone", "relationship", mode="before")
    @classmethod
    def _strip(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @model_validator(mode="after")
    def _has_contact(self) -> "PartnerIn":
        if not (self.email or self.phone):
            raise ValueError("Partners must have at least an email or phone number")
        return self


class OnboardingIn(BaseModel):
    # account basics
    date_of_birth: date
    gender: str = Field(..., min_length=1, max_length=20, examples=["male", "female", "other"])
    # goals
    primary_goal: Goal
    target_weight: float = Field(..., gt=0, le=500)
    target_date: datetime
    activity_level: ActivityLevel
    # health metrics
    current_weight: float = Field(..., gt=0, le=500)
    height: float = Field(..., ge=50, le=300)
    # preferences
    dietary_preferences: List[str] = []
    allergies: List[str] = []
    meals_per_day: int = Field(3, ge=1, le=10)
    # partners (optional)
    partners: List[PartnerIn] = []

    model_config = _CAMEL

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def _date_part(cls, v):
        # date pickers often send a full ISO datetime; keep its UTC calendar day
        if isinstance(v, str) and "T" in v:
            v = _DATETIME.validate_python(v)
        if isinstance(v, datetime):
            if v.tzinfo is not None:
                v = v.astimezone(timezone.utc)
            return v.date()
        return v

    @model_validator(mode="after")
    def _check_dates(self) -> "OnboardingIn":
        now = datetime.now(timezone.utc)
        target = self.target_date
        if target.tzinfo is None:
            target = target.replace(tzinfo=timezone.utc)
        if target <= now:
            raise ValueError("Target date must be in the future")
        if not 13 <= calculate_age(self.date_of_birth, now) <= 120:
            raise ValueError("You must be between 13 and 120 years old")
        return self

    def to_core(self) -> OnboardingInput:
        return OnboardingInput(
            date_of_birth=self.date_of_birth,
            gender=self.gender,
            primary_goal=self.primary_goal,
            target_weight=self.target_weight,
            target_date=self.target_date,
            activity_level=self.activity_level,
            current_weight=self.current_weight,
            height=self.height,
            dietary_preferences=list(self.dietary_preferences),
            allergies=list(self.allergies),
            meals_per_day=self.meals_per_day,
            partners=[
                PartnerInput(
                    name=p.name,
                    email=p.email,
                    phone=p.phone,
                    relationship=p.relationship,
                )
                for p in self.partners
            ],
        )


# ───────────────────────── responses ────────────────────────
class TargetsOut(BaseModel):
    bmr: int
    tdee: int
    calorie_target: int
    protein_target: int
    water_target: int

    model_config = _CAMEL


class ProjectionOut(BaseModel):
    weekly_rate: float
    estimated_weeks: int
    projected_date: datetime

    model_config = _CAMEL


class OnboardingOut(BaseModel):
    user_id: int
    settings: TargetsOut
    projection: ProjectionOut

    model_config = _CAMEL


class OnboardingStatusOut(BaseModel):
    user_id: int
    has_completed_onboarding: bool
    onboarding_completed_at: datetime | None = None

    model_config = _CAMEL
