"""
services/onboarding.py
────────────────────────────────────────────────────────────────────────
Turns one onboarding submission into the user's canonical baseline.

complete_onboarding()       validate → compute → ONE transaction:
                              1. upsert user_settings
                              2. upsert initial_plan_snapshots
                              3. replace partners (delete + batched insert)
get_how_it_works_summary()  read settings + snapshot → SummaryExplainer
get_onboarding_status()     has this user finished onboarding?

Same-user submissions are not serialised; the later commit wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import delete, insert, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.errors import NotFoundError, PersistenceError, ValidationError
from core.health_calc import (
    ACTIVITY_MULTIPLIERS,
    GOALS,
    BodyMetrics,
    HealthTargetCalculator,
    HealthTargets,
    WeightProjection,
    WeightProjectionCalculator,
    calculate_age,
    normalize_gender,
)
from core.models.onboarding import OnboardingInput, PartnerInput
from core.summary import SummaryExplainer
from services.db import InitialPlanSnapshot, Partner, UserSettings

_LOG = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# ──────────────── bounds ──────────────────
MIN_AGE, MAX_AGE = 13, 120
MAX_WEIGHT_KG = 500
MIN_HEIGHT_CM, MAX_HEIGHT_CM = 50, 300
MIN_MEALS, MAX_MEALS = 1, 10


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def _clean(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None


@dataclass(frozen=True)
class OnboardingResult:
    user_id: int
    targets: HealthTargets
    projection: WeightProjection

    def as_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "settings": self.targets.as_dict(),
            "projection": self.projection.as_dict(),
        }


class OnboardingService:
    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        clock: Clock = utc_now,
        calculator: HealthTargetCalculator | None = None,
        projector: WeightProjectionCalculator | None = None,
        explainer: SummaryExplainer | None = None,
    ) -> None:
        self._sessions = sessions
        self._clock = clock
        self._calc = calculator or HealthTargetCalculator()
        self._projector = projector or WeightProjectionCalculator()
        self._explainer = explainer or SummaryExplainer()

    # ───────────────────────── write path ──────────────────────
    async def complete_onboarding(self, user_id: int, data: OnboardingInput) -> OnboardingResult:
        now = _as_utc(self._clock())
        _LOG.info("onboarding started user=%s goal=%s", user_id, data.primary_goal)

        try:
            age = self._validate(data, now)
            partners = self._partner_rows(user_id, data.partners, now)
        except ValidationError as exc:
            _LOG.warning("onboarding rejected user=%s: %s", user_id, exc)
            raise

        metrics = BodyMetrics(
            weight_kg=data.current_weight,
            height_cm=data.height,
            age=age,
            gender=normalize_gender(data.gender),
            activity_level=data.activity_level,
        )
        targets = self._calc.targets(metrics, data.primary_goal)
        projection = self._projector.project(
            data.current_weight, data.target_weight, data.primary_goal, now
        )

        try:
            async with self._sessions() as session:
                async with session.begin():
                    await self._upsert_settings(session, user_id, data, targets, now)
                    await self._upsert_snapshot(session, user_id, data, targets, projection, now)
                    await session.flush()
                    await self._replace_partners(session, user_id, partners)
        except (SQLAlchemyError, OSError) as exc:
            _LOG.exception("onboarding transaction failed user=%s", user_id)
            raise PersistenceError(f"could not save onboarding for user {user_id}") from exc

        _LOG.info(
            "onboarding completed user=%s calorie_target=%s estimated_weeks=%s",
            user_id,
            targets.calorie_target,
            projection.estimated_weeks,
        )
        return OnboardingResult(user_id=user_id, targets=targets, projection=projection)

    # ───────────────────────── read path ───────────────────────
    async def get_how_it_works_summary(self, user_id: int) -> dict[str, Any]:
        async with self._sessions() as session:
            settings = await session.get(UserSettings, user_id)
            if settings is None:
                raise NotFoundError("settings")
            snapshot = await session.get(InitialPlanSnapshot, user_id)
            if snapshot is None:
                raise NotFoundError("snapshot")

        age = (
            calculate_age(settings.date_of_birth, self._clock())
            if settings.date_of_birth
            else None
        )
        return self._explainer.explain(settings, snapshot, age)

    async def get_onboarding_status(self, user_id: int) -> dict[str, Any]:
        async with self._sessions() as session:
            settings = await session.get(UserSettings, user_id)
        return {
            "user_id": user_id,
            "has_completed_onboarding": bool(settings and settings.onboarding_completed),
            "onboarding_completed_at": settings.onboarding_completed_at if settings else None,
        }

    # ───────────────────────── checks ──────────────────────────
    def _validate(self, data: OnboardingInput, now: datetime) -> int:
        """Re-check the invariants upstream validation is supposed to enforce."""
        if data.primary_goal not in GOALS:
            raise ValidationError(f"unknown primary goal: {data.primary_goal!r}")
        if data.activity_level not in ACTIVITY_MULTIPLIERS:
            raise ValidationError(f"unknown activity level: {data.activity_level!r}")

        age = calculate_age(data.date_of_birth, now)
        if not MIN_AGE <= age <= MAX_AGE:
            raise ValidationError(f"You must be between {MIN_AGE} and {MAX_AGE} years old")

        if _as_utc(data.target_date) <= now:
            raise ValidationError("Target date must be in the future")

        for label, kg in (("current weight", data.current_weight), ("target weight", data.target_weight)):
            if not 0 < kg <= MAX_WEIGHT_KG:
                raise ValidationError(f"{label} must be within (0, {MAX_WEIGHT_KG}] kg")
        if not MIN_HEIGHT_CM <= data.height <= MAX_HEIGHT_CM:
            raise ValidationError(f"height must be within [{MIN_HEIGHT_CM}, {MAX_HEIGHT_CM}] cm")
        if not MIN_MEALS <= data.meals_per_day <= MAX_MEALS:
            raise ValidationError(f"meals per day must be within [{MIN_MEALS}, {MAX_MEALS}]")
        return age

    def _partner_rows(
        self, user_id: int, partners: list[PartnerInput], now: datetime
    ) -> list[dict[str, Any]]:
        rows = []
        for p in partners:
            name, email, phone = _clean(p.name), _clean(p.email), _clean(p.phone)
            if name is None:
                raise ValidationError("Partner name is required")
            if email is None and phone is None:
                raise ValidationError("Partners must have at least an email or phone number")
            rows.append(
                {
                    "user_id": user_id,
                    "name": name,
                    "email": email,
                    "phone": phone,
                    "relationship": _clean(p.relationship),
                    "created_at": now,
                }
            )
        return rows

    # ───────────────────────── writes ──────────────────────────
    async def _upsert(self, session: AsyncSession, model: type, user_id: int, values: dict[str, Any], now: datetime) -> None:
        # Try update → if row doesn’t exist we’ll insert.
        res = await session.execute(
            update(model).where(model.user_id == user_id).values(**values)
        )
        if res.rowcount == 0:
            session.add(model(user_id=user_id, created_at=now, **values))

    async def _upsert_settings(
        self,
        session: AsyncSession,
        user_id: int,
        data: OnboardingInput,
        targets: HealthTargets,
        now: datetime,
    ) -> None:
        values = {
            "date_of_birth": data.date_of_birth,
            "gender": data.gender,
            "primary_goal": data.primary_goal,
            "target_weight": data.target_weight,
            "target_date": _as_utc(data.target_date),
            "activity_level": data.activity_level,
            "current_weight": data.current_weight,
            "height": data.height,
            **targets.as_dict(),
            "dietary_preferences": list(data.dietary_preferences),
            "allergies": list(data.allergies),
            "meals_per_day": data.meals_per_day,
            "onboarding_completed": True,
            "onboarding_completed_at": now,
            "updated_at": now,
        }
        await self._upsert(session, UserSettings, user_id, values, now)

    async def _upsert_snapshot(
        self,
        session: AsyncSession,
        user_id: int,
        data: OnboardingInput,
        targets: HealthTargets,
        projection: WeightProjection,
        now: datetime,
    ) -> None:
        values = {
            "start_weight": data.current_weight,
            "target_weight": data.target_weight,
            "start_date": now,
            "target_date": _as_utc(data.target_date),
            "weekly_weight_change_rate": projection.weekly_rate,
            "estimated_weeks": projection.estimated_weeks,
            "projected_completion_date": projection.projected_date,
            "calorie_target": targets.calorie_target,
            "protein_target": targets.protein_target,
            "water_target": targets.water_target,
            "primary_goal": data.primary_goal,
            "activity_level": data.activity_level,
        }
        await self._upsert(session, InitialPlanSnapshot, user_id, values, now)

    async def _replace_partners(self, session: AsyncSession, user_id: int, rows: list[dict[str, Any]]) -> None:
        await session.execute(delete(Partner).where(Partner.user_id == user_id))
        if rows:
            await session.execute(insert(Partner), rows)
