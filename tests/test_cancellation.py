"""
Test caller cancellation and request timeouts.
"""

import asyncio

import httpx
import pytest

from pepdorsa.exceptions import GatewayTimeoutError, RequestCancelledError
from pepdorsa.operations import CONFIRM_PATH, PURCHASE_PATH, TOKEN_PATH


class HangingRoute:
    """Route that never answers until cancelled."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self.cancelled = False

    async def __call__(self, request: httpx.Request):
        self.entered.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise


@pytest.mark.asyncio
async def test_cancel_aborts_in_flight_call(client, gateway, purchase_request):
    route = HangingRoute()
    gateway.routes[PURCHASE_PATH] = route
    cancel = asyncio.Event()

    task = asyncio.create_task(client.purchase(purchase_request, cancel=cancel))
    await route.entered.wait()
    cancel.set()

    with pytest.raises(RequestCancelledError):
        await task

    assert route.cancelled is True
    assert client.token_cache.is_valid()


@pytest.mark.asyncio
async def test_cancel_set_before_dispatch(client, gateway):
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(RequestCancelledError):
        await client.confirm({"invoice": "INV-001", "url_id": "U1"}, cancel=cancel)

    assert gateway.calls(CONFIRM_PATH) == []


@pytest.mark.asyncio
async def test_cancel_while_waiting_for_token(client, gateway, purchase_request):
    gateway.token_gate = asyncio.Event()
    cancel = asyncio.Event()

    cancelled = asyncio.create_task(client.purchase(purchase_request, cancel=cancel))
    other = asyncio.create_task(client.get_token())
    await asyncio.sleep(0.01)
    cancel.set()

    with pytest.raises(RequestCancelledError):
        await cancelled

    gateway.token_gate.set()
    assert await other == "tok-1"
    assert len(gateway.calls(TOKEN_PATH)) == 1
    assert gateway.calls(PURCHASE_PATH) == []


@pytest.mark.asyncio
async def test_unset_cancel_event_does_not_interfere(client, gateway, purchase_request):
    gateway.routes[PURCHASE_PATH] = {"resultCode": 0, "data": {"urlId": "U1", "url": "u"}}

    result = await client.purchase(purchase_request, cancel=asyncio.Event())

    assert result == {"urlId": "U1", "url": "u"}


@pytest.mark.asyncio
async def test_timeout_is_distinct_from_cancellation(client, gateway, purchase_request):
    gateway.routes[PURCHASE_PATH] = lambda request: httpx.ReadTimeout("slow", request=request)

    with pytest.raises(GatewayTimeoutError) as exc_info:
        await client.purchase(purchase_request, cancel=asyncio.Event())

    assert not isinstance(exc_info.value, RequestCancelledError)
    assert client.token_cache.is_valid()


@pytest.mark.asyncio
async def test_configured_timeout_is_sent(client, gateway, purchase_request):
    await client.purchase(purchase_request)

    timeout = gateway.calls(PURCHASE_PATH)[0].extensions["timeout"]
    assert timeout["read"] == 15.0
    assert timeout["connect"] == 15.0
