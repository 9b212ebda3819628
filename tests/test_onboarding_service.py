"""
OnboardingService against a throw-away SQLite database (aiosqlite).
"""
from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import event, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from conftest import FIXED_NOW, make_input
from core.errors import NotFoundError, PersistenceError, ValidationError
from core.models.onboarding import PartnerInput
from services.db import InitialPlanSnapshot, Partner, UserSettings
from services.onboarding import OnboardingService

UID = 7

_SETTINGS_TIMESTAMPS = {"created_at", "updated_at", "onboarding_completed_at"}
_SNAPSHOT_TIMESTAMPS = {"created_at", "start_date", "projected_completion_date"}


async def _state(sessions, user_id: int = UID):
    async with sessions() as s:
        settings = await s.get(UserSettings, user_id)
        snapshot = await s.get(InitialPlanSnapshot, user_id)
        partners = (
            await s.execute(select(Partner).where(Partner.user_id == user_id).order_by(Partner.name))
        ).scalars().all()
    return settings, snapshot, partners


def _row(obj, skip: set[str]) -> dict:
    return {c.key: getattr(obj, c.key) for c in obj.__table__.columns if c.key not in skip}


def _partner_view(partners) -> list[tuple]:
    return [(p.name, p.email, p.phone, p.relationship) for p in partners]


# ───────────────────────── happy path ────────────────────────
@pytest.mark.asyncio
async def test_complete_onboarding_persists_everything(service, sessions):
    result = await service.complete_onboarding(UID, make_input())

    out = result.as_dict()
    assert out["user_id"] == UID
    assert out["settings"] == {
        "bmr": 1780,
        "tdee": 2759,
        "calorie_target": 2259,
        "protein_target": 144,
        "water_target": 2800,
    }
    assert out["projection"]["weekly_rate"] == -0.5
    assert out["projection"]["estimated_weeks"] == 10
    assert out["projection"]["projected_date"] == FIXED_NOW + timedelta(days=70)

    settings, snapshot, partners = await _state(sessions)
    assert settings.onboarding_completed is True
    assert settings.gender == "male"
    assert settings.calorie_target == 2259
    assert settings.dietary_preferences == ["vegetarian"]
    assert settings.date_of_birth == date(1995, 3, 15)

    assert snapshot is not None
    assert snapshot.start_weight == 80.0
    assert snapshot.weekly_weight_change_rate == -0.5
    assert snapshot.estimated_weeks == 10
    assert snapshot.calorie_target == settings.calorie_target

    assert _partner_view(partners) == [
        ("Alex", None, "+15550100", None),
        ("Sam", "sam@example.com", None, "friend"),
    ]


@pytest.mark.asyncio
async def test_custom_gender_is_kept_but_modelled_as_other(service, sessions):
    result = await service.complete_onboarding(UID, make_input(gender="Two-Spirit"))
    assert result.targets.bmr == 1697

    settings, _, _ = await _state(sessions)
    assert settings.gender == "Two-Spirit"


@pytest.mark.asyncio
async def test_same_input_is_deterministic(sessions):
    a = OnboardingService(sessions, clock=lambda: FIXED_NOW)
    b = OnboardingService(sessions, clock=lambda: FIXED_NOW)
    assert (await a.complete_onboarding(UID, make_input())) == (
        await b.complete_onboarding(UID, make_input())
    )


# ───────────────────────── re-onboarding ─────────────────────
@pytest.mark.asyncio
async def test_resubmission_only_changes_timestamps(sessions):
    clock = iter([FIXED_NOW, FIXED_NOW + timedelta(hours=1)])
    svc = OnboardingService(sessions, clock=lambda: next(clock))

    await svc.complete_onboarding(UID, make_input())
    first = await _state(sessions)
    await svc.complete_onboarding(UID, make_input())
    second = await _state(sessions)

    assert _row(first[0], _SETTINGS_TIMESTAMPS) == _row(second[0], _SETTINGS_TIMESTAMPS)
    assert _row(first[1], _SNAPSHOT_TIMESTAMPS) == _row(second[1], _SNAPSHOT_TIMESTAMPS)
    assert _partner_view(first[2]) == _partner_view(second[2])
    assert second[0].updated_at > first[0].updated_at
    assert second[0].created_at == first[0].created_at


@pytest.mark.asyncio
async def test_resubmission_overwrites_baseline_and_partners(service, sessions):
    await service.complete_onboarding(UID, make_input())
    await service.complete_onboarding(
        UID,
        make_input(
            primary_goal="gain_muscle",
            target_weight=84.0,
            partners=[PartnerInput(name="Coach Kim", email="kim@example.com", relationship="coach")],
        ),
    )

    settings, snapshot, partners = await _state(sessions)
    assert settings.primary_goal == "gain_muscle"
    assert settings.calorie_target == 2759 + 400
    assert snapshot.target_weight == 84.0
    assert snapshot.estimated_weeks == 10
    assert _partner_view(partners) == [("Coach Kim", "kim@example.com", None, "coach")]


@pytest.mark.asyncio
async def test_empty_partner_list_clears_partners(service, sessions):
    await service.complete_onboarding(UID, make_input())
    await service.complete_onboarding(UID, make_input(partners=[]))

    _, _, partners = await _state(sessions)
    assert partners == []


@pytest.mark.asyncio
async def test_users_do_not_share_rows(service, sessions):
    await service.complete_onboarding(1, make_input())
    await service.complete_onboarding(2, make_input(partners=[]))

    _, _, partners_1 = await _state(sessions, 1)
    assert len(partners_1) == 2


# ───────────────────────── atomicity ─────────────────────────
@pytest.mark.asyncio
async def test_failed_partner_insert_rolls_back_everything(service, sessions, db_engine):
    await service.complete_onboarding(UID, make_input())
    before = await _state(sessions)

    def _boom(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("INSERT INTO PARTNERS"):
            raise OperationalError(statement, parameters, Exception("disk on fire"))

    event.listen(db_engine.sync_engine, "before_cursor_execute", _boom)
    try:
        with pytest.raises(PersistenceError) as info:
            await service.complete_onboarding(
                UID, make_input(primary_goal="gain_muscle", current_weight=90.0)
            )
    finally:
        event.remove(db_engine.sync_engine, "before_cursor_execute", _boom)

    assert isinstance(info.value.__cause__, OperationalError)
    after = await _state(sessions)
    assert _row(after[0], set()) == _row(before[0], set())
    assert _row(after[1], set()) == _row(before[1], set())
    assert _partner_view(after[2]) == _partner_view(before[2])


@pytest.mark.asyncio
async def test_failed_first_onboarding_leaves_no_rows(service, sessions, db_engine):
    def _boom(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("INSERT INTO PARTNERS"):
            raise OperationalError(statement, parameters, Exception("connection lost"))

    event.listen(db_engine.sync_engine, "before_cursor_execute", _boom)
    try:
        with pytest.raises(PersistenceError):
            await service.complete_onboarding(UID, make_input())
    finally:
        event.remove(db_engine.sync_engine, "before_cursor_execute", _boom)

    settings, snapshot, partners = await _state(sessions)
    assert settings is None and snapshot is None and partners == []


@pytest.mark.asyncio
async def test_refused_connection_is_a_persistence_error():
    async def _refuse():
        # what asyncpg raises when nothing listens on the port
        raise ConnectionRefusedError(111, "Connect call failed ('127.0.0.1', 1)")

    eng = create_async_engine("sqlite+aiosqlite://", async_creator=_refuse)
    svc = OnboardingService(async_sessionmaker(eng), clock=lambda: FIXED_NOW)
    try:
        with pytest.raises(PersistenceError) as info:
            await svc.complete_onboarding(UID, make_input())
    finally:
        await eng.dispose()

    assert isinstance(info.value.__cause__, ConnectionRefusedError)


# ───────────────────────── defensive validation ──────────────
@pytest.mark.asyncio
async def test_partner_without_contact_is_rejected(service, sessions):
    bad = make_input(partners=[PartnerInput(name="Ghost", email="", phone="  ")])
    with pytest.raises(ValidationError, match="email or phone"):
        await service.complete_onboarding(UID, bad)

    settings, _, _ = await _state(sessions)
    assert settings is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"date_of_birth": date(2013, 6, 2)}, "between 13 and 120"),       # turns 12 tomorrow
        ({"date_of_birth": date(1900, 1, 1)}, "between 13 and 120"),
        ({"target_date": FIXED_NOW}, "future"),
        ({"target_date": datetime(2025, 5, 1)}, "future"),                   # naive, read as UTC
        ({"current_weight": 0}, "current weight"),
        ({"target_weight": 501}, "target weight"),
        ({"height": 40}, "height"),
        ({"meals_per_day": 0}, "meals per day"),
        ({"primary_goal": "get_swole"}, "primary goal"),
        ({"activity_level": "extreme"}, "activity level"),
        ({"partners": [PartnerInput(name=" ", email="a@b.co")]}, "name"),
    ],
)
async def test_invariants_are_rechecked(service, overrides, message):
    with pytest.raises(ValidationError, match=message):
        await service.complete_onboarding(UID, make_input(**overrides))


@pytest.mark.asyncio
async def test_age_boundaries_are_accepted(service):
    await service.complete_onboarding(1, make_input(date_of_birth=date(2012, 6, 1)))   # exactly 13
    await service.complete_onboarding(2, make_input(date_of_birth=date(1905, 6, 2)))   # 119


# ───────────────────────── summary / status ──────────────────
@pytest.mark.asyncio
async def test_summary_before_onboarding_is_settings_not_found(service):
    with pytest.raises(NotFoundError, match="settings not found") as info:
        await service.get_how_it_works_summary(UID)
    assert info.value.resource == "settings"


@pytest.mark.asyncio
async def test_summary_without_snapshot_is_snapshot_not_found(service, sessions):
    async with sessions() as s, s.begin():
        s.add(
            UserSettings(
                user_id=UID,
                gender="female",
                onboarding_completed=False,
                created_at=FIXED_NOW,
                updated_at=FIXED_NOW,
            )
        )

    with pytest.raises(NotFoundError, match="snapshot not found") as info:
        await service.get_how_it_works_summary(UID)
    assert info.value.resource == "snapshot"


@pytest.mark.asyncio
async def test_summary_after_onboarding(service):
    await service.complete_onboarding(UID, make_input())
    summary = await service.get_how_it_works_summary(UID)

    assert summary["current_metrics"]["age"] == 30
    assert summary["calculations"]["bmr"]["value"] == 1780
    assert summary["calculations"]["targets"]["calories"]["value"] == 2259
    assert summary["projection"]["estimated_weeks"] == 10
    assert summary["projection"]["explanation"].startswith("To lose 5.0kg")


@pytest.mark.asyncio
async def test_onboarding_status(service):
    before = await service.get_onboarding_status(UID)
    assert before == {"user_id": UID, "has_completed_onboarding": False, "onboarding_completed_at": None}

    await service.complete_onboarding(UID, make_input())
    after = await service.get_onboarding_status(UID)
    assert after["has_completed_onboarding"] is True
    assert after["onboarding_completed_at"] is not None
