"""Bearer token acquisition and caching."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from .config import GatewaySettings
from .exceptions import AuthenticationError
from .models import TokenEnvelope
from .operations import TOKEN_PATH
from .transport import JSON_HEADERS, post_json

logger = logging.getLogger(__name__)

# Numeric expiries above this are epoch milliseconds, below it epoch seconds.
_MILLIS_THRESHOLD = 1e11


def parse_expiry(value: Any) -> Optional[float]:
    """Convert a gateway ``expireAt`` value to epoch seconds.

    Accepts epoch milliseconds, epoch seconds or an ISO-8601 timestamp
    (naive timestamps are taken as UTC). Returns None when the value is
    missing or cannot be read.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value / 1000.0 if value > _MILLIS_THRESHOLD else float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return parse_expiry(float(text))
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp()
    return None


class TokenCache:
    """Holds one bearer token per client and refreshes it on demand.

    Concurrent callers that find the cache empty or expired share a single
    in-flight refresh instead of each authenticating on their own. A failed
    refresh leaves any previously cached token in place.
    """

    def __init__(
        self,
        settings: GatewaySettings,
        http: httpx.AsyncClient,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._http = http
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at: float = 0.0
        self._refresh_task: Optional["asyncio.Future[str]"] = None

    @property
    def expires_at(self) -> Optional[float]:
        return self._expires_at if self._token else None

    def is_valid(self) -> bool:
        return bool(self._token) and self._clock() < self._expires_at

    def invalidate(self) -> None:
        """Forget the cached token so the next call authenticates again."""
        self._token = None
        self._expires_at = 0.0

    async def get_token(self) -> str:
        if self.is_valid():
            logger.debug("Using cached gateway token")
            return self._token

        if self._refresh_task is None:
            task = asyncio.ensure_future(self._refresh())
            task.add_done_callback(self._refresh_done)
            self._refresh_task = task

        # Shielded so one waiter being cancelled does not abort the refresh
        # the other waiters depend on.
        return await asyncio.shield(self._refresh_task)

    def _refresh_done(self, task: "asyncio.Future[str]") -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if not task.cancelled():
            # Mark the exception retrieved; every waiter re-raises it anyway.
            task.exception()

    async def _refresh(self) -> str:
        issued_at = self._clock()
        url = f"{self._settings.base_url}{TOKEN_PATH}"
        logger.info("Requesting gateway token for %s", self._settings.username)

        body = await post_json(
            self._http,
            url,
            {
                "username": self._settings.username,
                "password": self._settings.password.get_secret_value(),
            },
            headers=JSON_HEADERS,
            timeout=self._settings.timeout,
        )

        try:
            envelope = TokenEnvelope.model_validate(body)
        except PydanticValidationError as exc:
            logger.warning("Token endpoint returned a malformed envelope")
            raise AuthenticationError(
                f"[getToken] malformed envelope: {body}", envelope=body
            ) from exc

        if envelope.resultCode != 0 or not envelope.token:
            logger.warning(
                "Token request rejected: resultCode=%s resultMsg=%s",
                envelope.resultCode,
                envelope.resultMsg,
            )
            raise AuthenticationError(f"[getToken] API error: {body}", envelope=body)

        expires_at = parse_expiry(envelope.expireAt)
        if expires_at is None:
            expires_at = issued_at + self._settings.token_ttl

        self._token = envelope.token
        self._expires_at = expires_at
        logger.info("Gateway token cached until %s", expires_at)
        return envelope.token
