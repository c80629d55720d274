"""
Pytest configuration and fixtures for the gateway client tests.
"""

import asyncio
import inspect
import json
import os
import sys
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

# Add project root and sandbox directory to Python path for imports
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.append(ROOT_DIR)
sys.path.append(os.path.join(ROOT_DIR, "sandbox"))

from pepdorsa import GatewaySettings, PepDorsaClient  # noqa: E402
from pepdorsa.operations import TOKEN_PATH  # noqa: E402

BASE_URL = "https://gateway.test"
START_TIME = 1_700_000_000.0


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubGateway:
    """Scripted gateway behind ``httpx.MockTransport``.

    ``routes`` maps a URL path to a JSON body, an ``httpx.Response``, an
    exception to raise, or a (possibly async) callable returning one of those.
    Token requests are answered from ``token_response`` and, while
    ``token_gate`` is set, held until the gate opens.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, Any] = {}
        self.token_response: Any = self._issue_token
        self.token_gate: Optional[asyncio.Event] = None
        self.issued = 0

    def _issue_token(self, request: httpx.Request) -> Dict[str, Any]:
        self.issued += 1
        return {"resultCode": 0, "resultMsg": "Successful", "token": f"tok-{self.issued}"}

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == TOKEN_PATH:
            if self.token_gate is not None:
                await self.token_gate.wait()
            reply = self.token_response
        else:
            reply = self.routes.get(path, {"resultCode": 0, "resultMsg": "Successful"})

        if callable(reply) and not isinstance(reply, httpx.Response):
            reply = reply(request)
            if inspect.isawaitable(reply):
                reply = await reply
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, json=reply)

    def calls(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def body(self, path: str, index: int = -1) -> Dict[str, Any]:
        return json.loads(self.calls(path)[index].content)


@pytest.fixture
def settings():
    """Gateway settings pointing at the stub gateway."""
    return GatewaySettings(
        base_url=BASE_URL,
        terminal_number=1000,
        username="merchant",
        password="secret",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def make_client(settings, gateway, clock) -> Callable[..., PepDorsaClient]:
    """Factory building clients wired to the stub gateway."""

    def _make(**overrides: Any) -> PepDorsaClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(gateway.handler))
        return PepDorsaClient(
            overrides.pop("settings", settings), http_client=http, clock=clock, **overrides
        )

    return _make


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def purchase_request():
    return {
        "invoice": "INV-001",
        "invoice_date": "2024-01-15",
        "amount": 100000,
        "callback_api": "https://shop.test/callback",
        "mobile_number": "09120000000",
    }


# Configure pytest-asyncio
def pytest_configure(config):
    """Configure pytest with asyncio support."""
    config.addinivalue_line("markers", "asyncio: mark test as async")
