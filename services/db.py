"""
services/db.py
────────────────────────────────────────────────────────────────────────
* Async SQLAlchemy v2 setup
* Models for the three onboarding tables
* Session helpers used by routers / scripts
"""
from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import JSON, Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from config import settings

# ───────── connection helper ────────────────────────────────────────
_ENGINE: AsyncEngine | None = None
_SESSIONS: async_sessionmaker[AsyncSession] | None = None


def engine() -> AsyncEngine:
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = create_async_engine(
            settings.database_url, echo=settings.db_echo, pool_pre_ping=True
        )
    return _ENGINE


def session_factory() -> async_sessionmaker[AsyncSession]:
    global _SESSIONS
    if _SESSIONS is None:
        _SESSIONS = async_sessionmaker(engine(), expire_on_commit=False)
    return _SESSIONS


# ───────── declarative base ──────────────────────────────────────────
Base = declarative_base(cls=AsyncAttrs)

# kg / cm columns, read back as float
_Measure = Numeric(5, 2, asdecimal=False)


class UserSettings(Base):
    __tablename__ = "user_settings"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    # account basics
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    gender: Mapped[str | None] = mapped_column(String(20))        # stored as entered

    # goals
    primary_goal: Mapped[str | None] = mapped_column(String(50))
    target_weight: Mapped[float | None] = mapped_column(_Measure)
    target_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    activity_level: Mapped[str | None] = mapped_column(String(30))

    # health metrics
    current_weight: Mapped[float | None] = mapped_column(_Measure)
    height: Mapped[float | None] = mapped_column(_Measure)

    # calculated
    bmr: Mapped[int | None] = mapped_column(Integer)
    tdee: Mapped[int | None] = mapped_column(Integer)
    calorie_target: Mapped[int | None] = mapped_column(Integer)
    protein_target: Mapped[int | None] = mapped_column(Integer)     # g/day
    water_target: Mapped[int | None] = mapped_column(Integer)       # ml/day

    # preferences
    dietary_preferences: Mapped[list] = mapped_column(JSON, default=list)
    allergies: Mapped[list] = mapped_column(JSON, default=list)
    meals_per_day: Mapped[int] = mapped_column(Integer, default=3)

    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    onboarding_completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class InitialPlanSnapshot(Base):
    __tablename__ = "initial_plan_snapshots"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    start_weight: Mapped[float] = mapped_column(_Measure)
    target_weight: Mapped[float] = mapped_column(_Measure)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    target_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    weekly_weight_change_rate: Mapped[float | None] = mapped_column(Numeric(4, 2, asdecimal=False))
    estimated_weeks: Mapped[int | None] = mapped_column(Integer)
    projected_completion_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    calorie_target: Mapped[int] = mapped_column(Integer)
    protein_target: Mapped[int] = mapped_column(Integer)
    water_target: Mapped[int] = mapped_column(Integer)

    primary_goal: Mapped[str] = mapped_column(String(50))
    activity_level: Mapped[str] = mapped_column(String(30))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class Partner(Base):
    __tablename__ = "partners"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(Text)
    email: Mapped[str | None] = mapped_column(Text)
    phone: Mapped[str | None] = mapped_column(String(20))
    relationship: Mapped[str | None] = mapped_column(String(50))   # friend, family, coach…
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


# ───────── schema helper ─────────────────────────────────────────────

async def create_all(drop: bool = False) -> None:
    async with engine().begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
