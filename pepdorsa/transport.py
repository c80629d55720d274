"""HTTP plumbing shared by the token cache and the operation dispatcher."""

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Dict, Mapping, Optional, TypeVar

import httpx

from .exceptions import GatewayTimeoutError, RequestCancelledError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSON_HEADERS = {"Content-Type": "application/json"}


def bearer_headers(token: str) -> Dict[str, str]:
    return {**JSON_HEADERS, "Authorization": f"Bearer {token}"}


async def run_cancellable(
    awaitable: Awaitable[T], cancel: Optional[asyncio.Event] = None
) -> T:
    """Await ``awaitable`` unless ``cancel`` is set first.

    When the event fires the pending work is cancelled and
    RequestCancelledError is raised in the caller.
    """
    if cancel is None:
        return await awaitable

    work = asyncio.ensure_future(awaitable)
    if cancel.is_set():
        work.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await work
        raise RequestCancelledError("Request cancelled before dispatch")

    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        waiter.cancel()
        raise

    if work.done():
        waiter.cancel()
        return work.result()

    work.cancel()
    with contextlib.suppress(asyncio.CancelledError, httpx.HTTPError):
        await work
    raise RequestCancelledError("Request cancelled by caller")


async def post_json(
    http: httpx.AsyncClient,
    url: str,
    payload: Mapping[str, Any],
    *,
    headers: Mapping[str, str],
    timeout: float,
    cancel: Optional[asyncio.Event] = None,
) -> Dict[str, Any]:
    """POST ``payload`` as JSON and return the decoded JSON object.

    Raises:
        GatewayTimeoutError: If the call exceeds ``timeout`` seconds
        RequestCancelledError: If ``cancel`` is set while the call is pending
        TransportError: On connection failures, a body that is not a JSON
            object, or an error status whose body has no ``resultCode``
    """
    try:
        response = await run_cancellable(
            http.post(url, json=dict(payload), headers=dict(headers), timeout=timeout),
            cancel,
        )
    except httpx.TimeoutException as exc:
        logger.error("POST %s timed out after %ss", url, timeout)
        raise GatewayTimeoutError(f"POST {url} timed out after {timeout}s") from exc
    except httpx.HTTPError as exc:
        logger.error("POST %s failed: %s", url, exc)
        raise TransportError(f"POST {url} failed: {exc}") from exc

    try:
        body = response.json()
    except ValueError as exc:
        logger.error(
            "POST %s returned an unparsable body (HTTP %s)", url, response.status_code
        )
        raise TransportError(
            f"POST {url} returned an unparsable body (HTTP {response.status_code})",
            status_code=response.status_code,
        ) from exc

    if not isinstance(body, dict):
        raise TransportError(
            f"POST {url} returned a non-object body (HTTP {response.status_code})",
            status_code=response.status_code,
        )

    # Error statuses are only judged by resultCode when they carry one;
    # a proxy's {"message": ...} page is a transport failure.
    if not response.is_success and "resultCode" not in body:
        logger.error("POST %s failed with HTTP %s", url, response.status_code)
        raise TransportError(
            f"POST {url} failed with HTTP {response.status_code}",
            status_code=response.status_code,
        )

    logger.debug("POST %s -> HTTP %s", url, response.status_code)
    return body
