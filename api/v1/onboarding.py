from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic.alias_generators import to_camel

from api.v1.deps import current_user_id, get_onboarding_service
from api.v1.schemas import OnboardingIn, OnboardingOut, OnboardingStatusOut
from services.onboarding import OnboardingService

_LOG = logging.getLogger(__name__)

router = APIRouter()


# ───────────────────────── helpers ──────────────────────────
def _camelize(obj: Any) -> Any:
    """Recursively rename dict keys snake_case ➜ camelCase for the wire."""
    if isinstance(obj, dict):
        return {to_camel(k): _camelize(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_camelize(v) for v in obj]
    return obj


# ───────────────────────── submit ───────────────────────────
@router.post(
    "/onboarding",
    response_model=OnboardingOut,
    status_code=status.HTTP_201_CREATED,
    summary="Complete onboarding and record the user's baseline",
)
async def complete_onboarding(
    body: OnboardingIn,
    user_id: int = Depends(current_user_id),
    svc: OnboardingService = Depends(get_onboarding_service),
) -> OnboardingOut:
    result = await svc.complete_onboarding(user_id, body.to_core())
    return OnboardingOut.model_validate(result.as_dict())


# ───────────────────────── status ───────────────────────────
@router.get("/onboarding/status", response_model=OnboardingStatusOut)
async def onboarding_status(
    user_id: int = Depends(current_user_id),
    svc: OnboardingService = Depends(get_onboarding_service),
) -> OnboardingStatusOut:
    return OnboardingStatusOut.model_validate(await svc.get_onboarding_status(user_id))


# ───────────────────────── summary ──────────────────────────
@router.get("/summary/how-it-works", summary="Explain how the user's targets were derived")
async def how_it_works(
    user_id: int = Depends(current_user_id),
    svc: OnboardingService = Depends(get_onboarding_service),
) -> dict[str, Any]:
    summary = await svc.get_how_it_works_summary(user_id)
    _LOG.info("how-it-works summary served user=%s", user_id)
    return {"success": True, "data": _camelize(summary)}
