from __future__ import annotations

import logging

from central_onboarding.diagnostics import (
    MAX_ERROR_TEXT,
    AttemptStart,
    ConfigMissing,
    DiagnosticEvent,
    DiagnosticsEmitter,
    EventKind,
    Failed,
    FailureReason,
    mask_email,
    safe_host,
)


def test_mask_email():
    assert mask_email("jane.doe@example.com") == "ja***@example.com"
    assert mask_email("j@example.com") == "j***@example.com"
    assert mask_email("no-domain") == "***"
    # idempotent
    assert mask_email(mask_email("jane.doe@example.com")) == "ja***@example.com"


def test_safe_host():
    assert safe_host("https://onboarding.example.com/api/x?y=1") == "onboarding.example.com"
    assert safe_host("http://127.0.0.1:8080/create") == "127.0.0.1:8080"
    assert safe_host("https://user:pw@secure.example.com/create") == "secure.example.com"
    assert safe_host("not a url") == "invalid-url"
    assert safe_host("http://[::1") == "invalid-url"


def test_attempt_start_masks_email():
    payload = AttemptStart(endpoint_host="h", source="admin_portal", email="jane.doe@example.com")
    assert payload.fields()["email"] == "ja***@example.com"


def test_failed_truncates_error_text():
    payload = Failed(reason=FailureReason.HTTP_ERROR, status_code=502, backend_error="x" * 5000)
    fields = payload.fields()
    assert len(fields["backend_error"]) == MAX_ERROR_TEXT
    assert fields["reason"] == "http_error"
    assert "error_message" not in fields


def test_emitter_sends_to_observer_and_log(caplog):
    seen: list[DiagnosticEvent] = []
    emitter = DiagnosticsEmitter("req-1", seen.append)
    with caplog.at_level(logging.INFO, logger="central_onboarding.diagnostics"):
        emitter.emit(
            AttemptStart(endpoint_host="api.example.com", source="admin_portal", email="ab@c.de"),
            attempt=1,
        )
        emitter.emit(ConfigMissing(has_url=True, has_key=False))

    assert [e.event for e in seen] == [EventKind.ATTEMPT_START, EventKind.CONFIG_MISSING]
    assert seen[0].request_id == "req-1"
    assert seen[0].attempt == 1
    assert seen[1].attempt is None
    assert seen[1].fields == {"has_url": True, "has_key": False}

    messages = [r.getMessage() for r in caplog.records]
    assert any("attempt_start" in m and "request_id=req-1" in m for m in messages)
    levels = {r.getMessage().split()[1]: r.levelno for r in caplog.records}
    assert levels["config_missing"] == logging.ERROR


def test_transport_failures_log_as_errors_http_failures_as_warnings(caplog):
    emitter = DiagnosticsEmitter("req-2")
    with caplog.at_level(logging.INFO, logger="central_onboarding.diagnostics"):
        emitter.emit(Failed(reason=FailureReason.TIMEOUT, error_message="slow"), attempt=1)
        emitter.emit(Failed(reason=FailureReason.HTTP_ERROR, status_code=409), attempt=1)
    assert [r.levelno for r in caplog.records] == [logging.ERROR, logging.WARNING]


def test_observer_exception_does_not_propagate(caplog):
    def broken(event: DiagnosticEvent) -> None:
        raise RuntimeError("observer bug")

    emitter = DiagnosticsEmitter("req-3", broken)
    with caplog.at_level(logging.WARNING, logger="central_onboarding.diagnostics"):
        event = emitter.emit(ConfigMissing(has_url=False, has_key=False))
    assert event.event == "config_missing"
    assert any("observer raised" in r.getMessage() for r in caplog.records)
