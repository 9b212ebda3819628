"""
core/errors.py
────────────────────────────────────────────────────────────────────────
Error taxonomy raised by the onboarding core.

Routers translate these into HTTP responses (see `main.py`); nothing in
`core/` knows about status codes.
"""

from __future__ import annotations


class OnboardingError(Exception):
    """Base class for everything the onboarding core raises on purpose."""


class ValidationError(OnboardingError):
    """Input reached the core but breaks an age / date / bounds invariant."""


class PersistenceError(OnboardingError):
    """The onboarding transaction failed and was rolled back as a whole."""


class NotFoundError(OnboardingError):
    """A record the summary depends on does not exist yet."""

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"{resource} not found")
