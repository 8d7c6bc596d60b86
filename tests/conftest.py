import sys
from pathlib import Path
from typing import Any, Callable, List

import httpx
import pytest

# Ensure `src` is on sys.path for tests when the package is not installed editable.
ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from central_onboarding.config import Settings  # noqa: E402

ENDPOINT = "https://onboarding.example.com/api/admin/students/create"
SECRET = "sk-onboard-7f3a9c"

Step = Callable[[httpx.Request], Any]


def respond(status: int, **kwargs: Any) -> Step:
    """Build a step returning a fresh response each time it runs."""

    def _step(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, **kwargs)

    return _step


def refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("[Errno 111] Connection refused", request=request)


class FakeOnboardingService:
    """Mock onboarding endpoint replaying scripted steps in order.

    The last step repeats once the script is exhausted. Every received request
    is recorded so tests can count hits and inspect headers/bodies.
    """

    def __init__(self, *steps: Step):
        assert steps, "at least one step required"
        self._steps = list(steps)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        index = min(len(self.requests), len(self._steps)) - 1
        return self._steps[index](request)

    @property
    def hits(self) -> int:
        return len(self.requests)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {"ONBOARDING_URL": ENDPOINT, "ONBOARDING_KEY": SECRET}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()
