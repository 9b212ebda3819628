"""Re-export individual schema modules for easy imports."""

from .onboarding import (
    OnboardingIn,
    OnboardingOut,
    OnboardingStatusOut,
    PartnerIn,
    ProjectionOut,
    TargetsOut,
)

__all__ = [
    "OnboardingIn",
    "OnboardingOut",
    "OnboardingStatusOut",
    "PartnerIn",
    "ProjectionOut",
    "TargetsOut",
]
