"""Structured, redacted diagnostics for onboarding calls.

Every state transition of an onboarding call produces one event. Event kinds
form a closed set (`EventKind`), each with its own typed payload model; at the
boundary the payload is flattened into a `DiagnosticEvent` whose `fields` map
holds scalars only. The same event goes to the module logger and, when given,
to a caller-supplied observer.

Redaction rules applied before anything leaves this module:

* emails are masked to the first two characters of the local part
  (``jo***@example.com``)
* the shared secret is never part of any payload model, and registered
  sensitive values (secret, email) are scrubbed from echoed error text
* endpoint URLs are reduced to their host
* captured error text is truncated to `MAX_ERROR_TEXT` characters
"""
from __future__ import annotations

import enum
import logging
import re
from typing import Any, Callable, Dict, Optional, Pattern, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)

MAX_ERROR_TEXT = 500

Scalar = Union[str, int, float, bool, None]


class EventKind(str, enum.Enum):
    VALIDATION_FAILED = "validation_failed"
    CONFIG_MISSING = "config_missing"
    ATTEMPT_START = "attempt_start"
    RESPONSE_STATUS = "response_status"
    SUCCESS = "success"
    FAILURE = "failure"
    ATTEMPT_RETRY = "attempt_retry"


class FailureReason(str, enum.Enum):
    VALIDATION = "validation"
    HTTP_ERROR = "http_error"
    CLOUDFLARE_CHALLENGE = "cloudflare_challenge"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:2]}***@{domain}"


def safe_host(url: str) -> str:
    try:
        host = urlsplit(url).netloc
    except ValueError:
        return "invalid-url"
    # Drop any userinfo so credentials embedded in the URL never surface.
    host = host.rpartition("@")[2]
    return host or "invalid-url"


def truncate_error(text: Any) -> str:
    return str(text)[:MAX_ERROR_TEXT]


# ---------------------------------------------------------------- payloads


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    kind: EventKind

    def fields(self) -> Dict[str, Scalar]:
        return self.model_dump(exclude={"kind"}, exclude_none=True)


class ValidationFailed(_Payload):
    kind: EventKind = EventKind.VALIDATION_FAILED
    reason: str
    field: str


class ConfigMissing(_Payload):
    kind: EventKind = EventKind.CONFIG_MISSING
    has_url: bool
    has_key: bool


class AttemptStart(_Payload):
    kind: EventKind = EventKind.ATTEMPT_START
    endpoint_host: str
    source: str
    email: str

    @field_validator("email")
    @classmethod
    def _mask(cls, v: str) -> str:
        # Masking is idempotent, so pre-masked values pass through unchanged.
        return mask_email(v)


class ResponseStatus(_Payload):
    kind: EventKind = EventKind.RESPONSE_STATUS
    status_code: int


class Succeeded(_Payload):
    kind: EventKind = EventKind.SUCCESS
    status_code: int
    has_user_id: bool


class Failed(_Payload):
    kind: EventKind = EventKind.FAILURE
    reason: FailureReason
    status_code: Optional[int] = None
    backend_error: Optional[str] = None
    error_message: Optional[str] = None

    @field_validator("backend_error", "error_message")
    @classmethod
    def _truncate(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else truncate_error(v)


class AttemptRetry(_Payload):
    kind: EventKind = EventKind.ATTEMPT_RETRY
    next_attempt: int
    reason: str


EventPayload = Union[
    ValidationFailed, ConfigMissing, AttemptStart, ResponseStatus, Succeeded, Failed, AttemptRetry
]


class DiagnosticEvent(BaseModel):
    """Flattened, log-friendly form of one transition."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    request_id: str
    event: EventKind
    attempt: Optional[int] = None
    fields: Dict[str, Scalar]


EventObserver = Callable[[DiagnosticEvent], None]

_LEVELS = {
    EventKind.VALIDATION_FAILED: logging.WARNING,
    EventKind.CONFIG_MISSING: logging.ERROR,
    EventKind.ATTEMPT_START: logging.INFO,
    EventKind.RESPONSE_STATUS: logging.INFO,
    EventKind.SUCCESS: logging.INFO,
    EventKind.ATTEMPT_RETRY: logging.INFO,
}


def _level_for(payload: EventPayload) -> int:
    if isinstance(payload, Failed):
        # Transport failures are errors; HTTP-level rejections are warnings.
        if payload.reason in (FailureReason.TIMEOUT.value, FailureReason.NETWORK_ERROR.value):
            return logging.ERROR
        return logging.WARNING
    return _LEVELS[EventKind(payload.kind)]


class DiagnosticsEmitter:
    """Emits the events of a single onboarding call.

    One emitter exists per call and is bound to that call's request id, so
    events for a request id are always emitted in transition order.
    """

    def __init__(self, request_id: str, observer: Optional[EventObserver] = None):
        self.request_id = request_id
        self._observer = observer
        # pattern -> replacement, applied to every string field (remote bodies may echo input)
        self._sensitive: Dict[Pattern[str], str] = {}

    def protect(self, value: str, replacement: str = "[redacted]") -> None:
        """Register a value that must never appear verbatim in any event.

        Both value and replacement are taken literally; neither is parsed as
        regex syntax.
        """
        if value:
            self._sensitive[re.compile(re.escape(value), re.IGNORECASE)] = replacement

    def protect_email(self, email: str) -> None:
        self.protect(email, mask_email(email))
        local = email.partition("@")[0]
        if len(local) > 2:
            self.protect(local, f"{local[:2]}***")

    def _scrub(self, fields: Dict[str, Scalar]) -> Dict[str, Scalar]:
        if not self._sensitive:
            return fields
        scrubbed: Dict[str, Scalar] = {}
        for key, value in fields.items():
            if isinstance(value, str):
                for pattern, replacement in self._sensitive.items():
                    value = pattern.sub(lambda _m, r=replacement: r, value)
            scrubbed[key] = value
        return scrubbed

    def emit(self, payload: EventPayload, attempt: Optional[int] = None) -> DiagnosticEvent:
        event = DiagnosticEvent(
            request_id=self.request_id,
            event=EventKind(payload.kind),
            attempt=attempt,
            fields=self._scrub(payload.fields()),
        )
        if logger.isEnabledFor(_level_for(payload)):
            rendered = " ".join(f"{k}={v}" for k, v in event.fields.items())
            logger.log(
                _level_for(payload),
                "onboarding %s request_id=%s attempt=%s %s",
                event.event,
                event.request_id,
                event.attempt if event.attempt is not None else "-",
                rendered,
            )
        if self._observer is not None:
            try:
                self._observer(event)
            except Exception:  # observer bugs must not break the onboarding call
                logger.warning(
                    "onboarding observer raised for event=%s request_id=%s",
                    event.event,
                    event.request_id,
                    exc_info=True,
                )
        return event


__all__ = [
    "MAX_ERROR_TEXT",
    "EventKind",
    "FailureReason",
    "mask_email",
    "safe_host",
    "truncate_error",
    "ValidationFailed",
    "ConfigMissing",
    "AttemptStart",
    "ResponseStatus",
    "Succeeded",
    "Failed",
    "AttemptRetry",
    "EventPayload",
    "DiagnosticEvent",
    "EventObserver",
    "DiagnosticsEmitter",
]
