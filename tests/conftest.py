from __future__ import annotations

from datetime import date, datetime, timezone

import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from core.models.onboarding import OnboardingInput, PartnerInput
from services.db import Base
from services.onboarding import OnboardingService

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_input(**overrides) -> OnboardingInput:
    """Scenario-A user: male, 30y, 80kg, 180cm, moderate, losing to 75kg."""
    fields = dict(
        date_of_birth=date(1995, 3, 15),
        gender="male",
        primary_goal="lose_weight",
        target_weight=75.0,
        target_date=datetime(2025, 12, 31, tzinfo=timezone.utc),
        activity_level="moderate",
        current_weight=80.0,
        height=180.0,
        dietary_preferences=["vegetarian"],
        allergies=["peanuts"],
        meals_per_day=3,
        partners=[
            PartnerInput(name="Sam", email="sam@example.com", relationship="friend"),
            PartnerInput(name="Alex", phone="+15550100"),
        ],
    )
    fields.update(overrides)
    return OnboardingInput(**fields)


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'onboarding.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def sessions(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def service(sessions) -> OnboardingService:
    return OnboardingService(sessions, clock=lambda: FIXED_NOW)
