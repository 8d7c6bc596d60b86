"""Input normalization for student invites.

Trims and lowercases the incoming request and rejects anything malformed
before a network call can happen. Pure functions only.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union

from .models.onboarding import SOURCE_ADMIN_PORTAL, NormalizedRequest, OnboardingRequest

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

INVALID_EMAIL_MESSAGE = "A valid email is required."
MISSING_NAME_MESSAGE = "Full name is required."


@dataclass(frozen=True)
class InvalidInput:
    message: str
    field: str


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_request(request: OnboardingRequest) -> Union[NormalizedRequest, InvalidInput]:
    """Validate and normalize an onboarding request.

    Email is checked before the name so a request with both problems reports
    the email. `source` is always forced to ``admin_portal``.
    """
    email = _clean(request.email).lower()
    full_name = _clean(request.full_name)
    phone = _clean(request.phone)

    if not email or not is_valid_email(email):
        return InvalidInput(message=INVALID_EMAIL_MESSAGE, field="email")
    if not full_name:
        return InvalidInput(message=MISSING_NAME_MESSAGE, field="fullName")

    return NormalizedRequest(
        email=email,
        full_name=full_name,
        phone=phone or None,
        source=SOURCE_ADMIN_PORTAL,
    )


__all__ = [
    "INVALID_EMAIL_MESSAGE",
    "MISSING_NAME_MESSAGE",
    "InvalidInput",
    "is_valid_email",
    "normalize_request",
]
