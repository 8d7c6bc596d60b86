"""Central onboarding client: create a student account via the remote service.

The call runs a small state machine:

    Validating -> ConfiguringEndpoint -> Attempting(n) -> Succeeded | Failed

1. The request is normalized; bad input returns a 400 result.
2. Endpoint and secret are resolved; if either is missing a 500 result is
   returned. No network activity happens before this point.
3. Up to `ONBOARDING_MAX_ATTEMPTS` sequential attempts are driven by
   `tenacity.AsyncRetrying`. Timeouts, network errors and 5xx responses are
   retried; 2xx succeeds; every other status (400, 401/403, 409, ...) fails
   immediately. A duplicate-account 409 is never retried.

Expected failures are always returned as an `OnboardingResult` with
``success=False``; only programming errors propagate to the caller. Callers
must not add their own retries on top of this module.

There is no external cancellation of a call in progress; each attempt is only
bounded by its own timeout.

httpx logs each request with its full URL at INFO on the ``httpx`` logger.
Applications that log at INFO should raise that logger to WARNING, as the CLI
does, so that only the endpoint host appears in their logs.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Union

import httpx
from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_fixed, wait_none

from .classifier import (
    SUCCESS_MESSAGE,
    UNAVAILABLE_MESSAGE,
    Classification,
    ResponseKind,
    classify_response,
    friendly_message,
)
from .config import MissingConfiguration, Settings, get_settings, resolve_invocation_config
from .diagnostics import (
    AttemptRetry,
    AttemptStart,
    ConfigMissing,
    DiagnosticsEmitter,
    EventObserver,
    Failed,
    FailureReason,
    ResponseStatus,
    Succeeded,
    ValidationFailed,
    safe_host,
)
from .models.onboarding import InvocationConfig, NormalizedRequest, OnboardingRequest, OnboardingResult
from .normalizer import InvalidInput, normalize_request
from .transport import NetworkError, TimedOut, TransportResponse, make_client, post_onboarding

logger = logging.getLogger(__name__)

CONFIG_MISSING_MESSAGE = "Onboarding service is not configured."


@dataclass(frozen=True)
class _AttemptOutcome:
    """What one attempt produced, reduced to what the retry loop needs."""

    classification: Optional[Classification] = None
    transport_failure: Optional[Union[TimedOut, NetworkError]] = None

    @property
    def retryable(self) -> bool:
        if self.transport_failure is not None:
            return True
        assert self.classification is not None
        return self.classification.retryable

    @property
    def retry_reason(self) -> str:
        if self.transport_failure is not None:
            return self.transport_failure.reason
        assert self.classification is not None
        return f"http_{self.classification.status_code}"


def _new_request_id() -> str:
    return str(uuid.uuid4())


class OnboardingClient:
    """Creates student accounts through the central onboarding service.

    The client holds only immutable configuration; every call opens and closes
    its own HTTP client, so one instance can serve concurrent calls.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            settings: Configuration captured for the client's lifetime. When
                omitted the process-wide settings are loaded once here.
            transport: Optional httpx transport (e.g. `httpx.MockTransport`
                in tests).
        """
        self._settings = settings if settings is not None else get_settings()
        self._transport = transport

    @property
    def settings(self) -> Settings:
        return self._settings

    async def create_student(
        self,
        request: OnboardingRequest,
        *,
        endpoint_url: Optional[str] = None,
        shared_secret: Optional[str] = None,
        request_id: Optional[str] = None,
        on_event: Optional[EventObserver] = None,
    ) -> OnboardingResult:
        """Create one student account.

        Args:
            request: Invite as entered by the admin.
            endpoint_url: Overrides the configured endpoint for this call.
            shared_secret: Overrides the configured secret for this call.
            request_id: Correlation id; a UUID4 is generated when omitted.
            on_event: Observer receiving every `DiagnosticEvent` of the call.

        Returns:
            The terminal `OnboardingResult`.
        """
        request_id = request_id or _new_request_id()
        emitter = DiagnosticsEmitter(request_id, on_event)

        normalized = normalize_request(request)
        if isinstance(normalized, InvalidInput):
            emitter.emit(ValidationFailed(reason=FailureReason.VALIDATION.value, field=normalized.field))
            return OnboardingResult(
                success=False,
                message=normalized.message,
                request_id=request_id,
                status_code=400,
            )

        emitter.protect_email(normalized.email)

        config = resolve_invocation_config(endpoint_url, shared_secret, self._settings)
        if isinstance(config, MissingConfiguration):
            emitter.emit(ConfigMissing(has_url=config.has_url, has_key=config.has_key))
            return OnboardingResult(
                success=False,
                message=CONFIG_MISSING_MESSAGE,
                request_id=request_id,
                status_code=500,
            )
        emitter.protect(config.shared_secret)

        async with make_client(self._settings.timeout_seconds, self._transport) as client:
            return await self._run_attempts(client, config, normalized, emitter)

    async def _run_attempts(
        self,
        client: httpx.AsyncClient,
        config: InvocationConfig,
        payload: NormalizedRequest,
        emitter: DiagnosticsEmitter,
    ) -> OnboardingResult:
        max_attempts = self._settings.ONBOARDING_MAX_ATTEMPTS
        wait_seconds = self._settings.ONBOARDING_RETRY_WAIT_SECONDS
        last_status: Optional[int] = None
        outcome: Optional[_AttemptOutcome] = None

        def _before_sleep(retry_state) -> None:
            failed = retry_state.outcome.result()
            emitter.emit(
                AttemptRetry(
                    next_attempt=retry_state.attempt_number + 1,
                    reason=failed.retry_reason,
                )
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_fixed(wait_seconds) if wait_seconds > 0 else wait_none(),
            retry=retry_if_result(lambda o: o.retryable),
            before_sleep=_before_sleep,
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                number = attempt.retry_state.attempt_number
                outcome = await self._attempt(client, config, payload, emitter, number)
                if outcome.classification is not None:
                    last_status = outcome.classification.status_code
            if not attempt.retry_state.outcome.failed:
                attempt.retry_state.set_result(outcome)

        assert outcome is not None
        result = self._final_result(outcome, last_status, emitter.request_id)
        logger.debug(
            "onboarding finished request_id=%s success=%s status=%s attempts=%s",
            result.request_id,
            result.success,
            result.status_code,
            retrying.statistics.get("attempt_number"),
        )
        return result

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        config: InvocationConfig,
        payload: NormalizedRequest,
        emitter: DiagnosticsEmitter,
        number: int,
    ) -> _AttemptOutcome:
        emitter.emit(
            AttemptStart(
                endpoint_host=safe_host(config.endpoint_url),
                source=payload.source,
                email=payload.email,
            ),
            attempt=number,
        )
        sent = await post_onboarding(client, config, payload, self._settings.timeout_seconds)

        if not isinstance(sent, TransportResponse):
            emitter.emit(
                Failed(
                    reason=FailureReason(sent.reason),
                    error_message=sent.detail or "unknown_error",
                ),
                attempt=number,
            )
            return _AttemptOutcome(transport_failure=sent)

        emitter.emit(ResponseStatus(status_code=sent.status_code), attempt=number)
        classification = classify_response(sent.status_code, sent.text)

        if classification.kind is ResponseKind.SUCCESS:
            emitter.emit(
                Succeeded(
                    status_code=sent.status_code,
                    has_user_id=classification.user_id is not None,
                ),
                attempt=number,
            )
        else:
            emitter.emit(
                Failed(
                    reason=(
                        FailureReason.CLOUDFLARE_CHALLENGE
                        if classification.challenge_detected
                        else FailureReason.HTTP_ERROR
                    ),
                    status_code=sent.status_code,
                    backend_error=classification.backend_error,
                ),
                attempt=number,
            )
        return _AttemptOutcome(classification=classification)

    @staticmethod
    def _final_result(
        outcome: _AttemptOutcome, last_status: Optional[int], request_id: str
    ) -> OnboardingResult:
        if outcome.transport_failure is not None:
            return OnboardingResult(
                success=False,
                message=UNAVAILABLE_MESSAGE,
                request_id=request_id,
                status_code=last_status or 503,
            )
        classification = outcome.classification
        assert classification is not None
        if classification.kind is ResponseKind.SUCCESS:
            return OnboardingResult(
                success=True,
                message=SUCCESS_MESSAGE,
                user_id=classification.user_id,
                request_id=request_id,
                status_code=classification.status_code,
            )
        return OnboardingResult(
            success=False,
            message=friendly_message(classification.status_code, classification.challenge_detected),
            request_id=request_id,
            status_code=classification.status_code,
        )


async def create_student_via_central_onboarding(
    request: OnboardingRequest,
    *,
    endpoint_url: Optional[str] = None,
    shared_secret: Optional[str] = None,
    request_id: Optional[str] = None,
    on_event: Optional[EventObserver] = None,
    settings: Optional[Settings] = None,
) -> OnboardingResult:
    """One-shot entry point used by the admin invite flow."""
    client = OnboardingClient(settings)
    return await client.create_student(
        request,
        endpoint_url=endpoint_url,
        shared_secret=shared_secret,
        request_id=request_id,
        on_event=on_event,
    )


__all__ = [
    "CONFIG_MISSING_MESSAGE",
    "OnboardingClient",
    "create_student_via_central_onboarding",
]
