"""Pydantic models for the central onboarding call.

These models describe the values that cross the module boundary: the request
handed in by the admin portal, the normalized payload that goes on the wire,
the resolved endpoint configuration, and the single result handed back to the
caller. Field names follow Python conventions while the wire and result
serializations keep the camelCase keys the onboarding service and the portal
expect (`fullName`, `userId`, `requestId`, `statusCode`).
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SOURCE_ADMIN_PORTAL: Literal["admin_portal"] = "admin_portal"


class OnboardingRequest(BaseModel):
    """Raw student invite as submitted by the admin portal.

    Values are accepted as given (including blanks and None); the normalizer
    decides whether they are usable so that bad input becomes a 400 result
    instead of an exception.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    email: Optional[str] = None
    full_name: Optional[str] = Field(default=None, alias="fullName")
    phone: Optional[str] = None
    source: Optional[str] = SOURCE_ADMIN_PORTAL


class NormalizedRequest(BaseModel):
    """Validated request body sent to the onboarding service."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    email: str
    full_name: str = Field(alias="fullName")
    phone: Optional[str] = None
    source: Literal["admin_portal"] = SOURCE_ADMIN_PORTAL

    def wire_payload(self) -> dict[str, str]:
        """Return the JSON body; `phone` is omitted when absent."""
        return self.model_dump(by_alias=True, exclude_none=True)


class InvocationConfig(BaseModel):
    """Endpoint and shared secret resolved for one call."""

    model_config = ConfigDict(frozen=True)

    endpoint_url: str
    # Never part of repr/str so accidental logging of the model stays safe.
    shared_secret: str = Field(repr=False)


class OnboardingResult(BaseModel):
    """Terminal outcome of one onboarding call."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool
    message: str
    request_id: str = Field(alias="requestId")
    user_id: Optional[str] = Field(default=None, alias="userId")
    status_code: Optional[int] = Field(default=None, alias="statusCode")


__all__ = [
    "SOURCE_ADMIN_PORTAL",
    "OnboardingRequest",
    "NormalizedRequest",
    "InvocationConfig",
    "OnboardingResult",
]
