# api/v1/router.py
from fastapi import APIRouter

from . import onboarding

api_router = APIRouter()

# /onboarding, /onboarding/status and /summary/how-it-works
api_router.include_router(onboarding.router, tags=["Onboarding"])
