"""Central onboarding client for the admin portal.

Creates student accounts by calling the remote onboarding service with
bounded, retried HTTP attempts and redacted diagnostics. The public entry
points are `OnboardingClient.create_student` and the one-shot
`create_student_via_central_onboarding`.
"""

from .client import OnboardingClient, create_student_via_central_onboarding
from .config import Settings, get_settings
from .diagnostics import DiagnosticEvent, EventKind
from .models.onboarding import OnboardingRequest, OnboardingResult

__all__ = [
    "OnboardingClient",
    "create_student_via_central_onboarding",
    "Settings",
    "get_settings",
    "DiagnosticEvent",
    "EventKind",
    "OnboardingRequest",
    "OnboardingResult",
]
