"""Classification of onboarding service responses.

Turns a raw HTTP status + body into a typed outcome and maps failures to the
human-readable message shown to the admin. Only the status code drives the
retry decision:

* 2xx                -> SUCCESS
* >= 500             -> SERVER_ERROR (retryable)
* anything else      -> CLIENT_ERROR (never retried; covers 400, 401/403, 409)

Challenge-page detection (an edge/CDN interstitial served instead of the API
payload) is evaluated independently of the status and only changes the
message. A challenge page returned with a 5xx status is therefore still
retried, even though the retry will almost certainly hit the same page.
"""
from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any, Optional

SUCCESS_MESSAGE = "Student created. Magic link email sent."
UNAVAILABLE_MESSAGE = "Onboarding service is temporarily unavailable. Please retry."

_CHALLENGE_MARKERS = (
    "/cdn-cgi/challenge-platform",
    "__cf_chl_",
    "cf-challenge",
)


class ResponseKind(str, enum.Enum):
    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class Classification:
    kind: ResponseKind
    status_code: int
    challenge_detected: bool
    user_id: Optional[str] = None
    backend_error: Optional[str] = None

    @property
    def retryable(self) -> bool:
        return self.kind is ResponseKind.SERVER_ERROR


def is_challenge_page(text: str) -> bool:
    """Return True when the body looks like a Cloudflare challenge page."""
    return any(marker in text for marker in _CHALLENGE_MARKERS)


def parse_json_body(text: str) -> dict[str, Any]:
    """Parse a response body, substituting an empty object on any failure."""
    if not text:
        return {}
    try:
        parsed = json.loads(text)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def extract_user_id(body: dict[str, Any]) -> Optional[str]:
    """Pick the created user's id from `userId`, `user.id` or `id`."""
    user = body.get("user")
    candidates = (
        body.get("userId"),
        user.get("id") if isinstance(user, dict) else None,
        body.get("id"),
    )
    for candidate in candidates:
        if candidate:
            return str(candidate)
    return None


def classify_response(status_code: int, text: str) -> Classification:
    body = parse_json_body(text)
    challenge = is_challenge_page(text)
    if 200 <= status_code < 300:
        return Classification(
            kind=ResponseKind.SUCCESS,
            status_code=status_code,
            challenge_detected=challenge,
            user_id=extract_user_id(body),
        )
    kind = ResponseKind.SERVER_ERROR if status_code >= 500 else ResponseKind.CLIENT_ERROR
    return Classification(
        kind=kind,
        status_code=status_code,
        challenge_detected=challenge,
        backend_error=str(body.get("error") or text or "unknown_error"),
    )


def friendly_message(status_code: int, challenge_detected: bool) -> str:
    """Map a failed response to the message shown to the admin.

    Challenge detection takes precedence over every status-based rule.
    """
    if challenge_detected:
        return (
            "Onboarding API is blocked by Cloudflare challenge. "
            "Disable JS challenge for this endpoint."
        )
    if status_code == 400:
        return "Invalid student input. Check email and full name."
    if status_code in (401, 403):
        return "Onboarding authentication is misconfigured. Please contact support."
    if status_code == 409:
        return "Student already exists. Ask them to log in or reset password."
    if status_code >= 500:
        return UNAVAILABLE_MESSAGE
    return "Unable to create student right now. Please retry."


__all__ = [
    "SUCCESS_MESSAGE",
    "UNAVAILABLE_MESSAGE",
    "ResponseKind",
    "Classification",
    "is_challenge_page",
    "parse_json_body",
    "extract_user_id",
    "classify_response",
    "friendly_message",
]
