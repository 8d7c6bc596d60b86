"""Single bounded HTTP attempt against the onboarding service.

`post_onboarding` performs exactly one POST and never raises for transport
problems. Instead it returns a tagged outcome so the retry loop treats
"thrown" and "returned" failures the same way:

* `TransportResponse` - any HTTP response, body already read as text
* `TimedOut`          - the attempt exceeded its hard timeout
* `NetworkError`      - any other transport failure (refused, DNS, bad URL)

The hard timeout wraps the whole request (connect, send, and full body read)
with `asyncio.wait_for`, which cancels the in-flight request when it elapses.
httpx's per-phase timeouts are set to the same bound.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Union

import httpx

from .models.onboarding import InvocationConfig, NormalizedRequest

logger = logging.getLogger(__name__)

ADMIN_KEY_HEADER = "x-admin-key"


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    text: str


@dataclass(frozen=True)
class TimedOut:
    detail: str
    reason: str = "timeout"


@dataclass(frozen=True)
class NetworkError:
    detail: str
    reason: str = "network_error"


TransportOutcome = Union[TransportResponse, TimedOut, NetworkError]


def build_headers(config: InvocationConfig) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        ADMIN_KEY_HEADER: config.shared_secret,
        "Cache-Control": "no-store",
    }


async def _send(
    client: httpx.AsyncClient, config: InvocationConfig, payload: NormalizedRequest
) -> TransportResponse:
    response = await client.post(
        config.endpoint_url,
        json=payload.wire_payload(),
        headers=build_headers(config),
    )
    # Non-streaming request: body is fully read; decode it once for both
    # JSON parsing and challenge-page scanning.
    return TransportResponse(status_code=response.status_code, text=response.text)


async def post_onboarding(
    client: httpx.AsyncClient,
    config: InvocationConfig,
    payload: NormalizedRequest,
    timeout_seconds: float,
) -> TransportOutcome:
    """Issue one onboarding POST bounded by `timeout_seconds`.

    Args:
        client: Open async client (real or backed by a mock transport).
        config: Resolved endpoint and secret.
        payload: Normalized request body.
        timeout_seconds: Hard bound for the whole attempt.

    Returns:
        A `TransportResponse`, `TimedOut`, or `NetworkError`.
    """
    try:
        return await asyncio.wait_for(_send(client, config, payload), timeout=timeout_seconds)
    except (asyncio.TimeoutError, httpx.TimeoutException) as e:
        logger.debug("onboarding attempt timed out after %.3fs", timeout_seconds)
        return TimedOut(detail=str(e) or f"timed out after {timeout_seconds:g}s")
    except (httpx.RequestError, httpx.InvalidURL) as e:
        return NetworkError(detail=str(e) or type(e).__name__)


def make_client(
    timeout_seconds: float, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """Create the per-call async client."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=True,
        transport=transport,
    )


__all__ = [
    "ADMIN_KEY_HEADER",
    "TransportResponse",
    "TimedOut",
    "NetworkError",
    "TransportOutcome",
    "build_headers",
    "post_onboarding",
    "make_client",
]
