from .onboarding import (
    SOURCE_ADMIN_PORTAL,
    InvocationConfig,
    NormalizedRequest,
    OnboardingRequest,
    OnboardingResult,
)

__all__ = [
    "SOURCE_ADMIN_PORTAL",
    "InvocationConfig",
    "NormalizedRequest",
    "OnboardingRequest",
    "OnboardingResult",
]
