"""Asynchronous client for the Pep payment gateway."""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, Type, TypeVar, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from . import operations as ops
from .config import GatewaySettings, get_settings
from .exceptions import GatewayError, InvalidOperatorError, ValidationError
from .models import (
    BillRequest,
    DirectChargeRequest,
    GatewayEnvelope,
    InternetChargeRequest,
    MultiAccPurchaseRequest,
    PinChargeRequest,
    PurchaseRequest,
    TransactionRequest,
    WireModel,
)
from .token_cache import TokenCache
from .transport import bearer_headers, post_json, run_cancellable

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=WireModel)
RequestLike = Union[WireModel, Mapping[str, Any]]


class PepDorsaClient:
    """Typed async access to the gateway's purchase and charge operations.

    Every operation obtains a bearer token through the instance's
    :class:`TokenCache`, posts its body and returns the envelope ``data``
    on ``resultCode == 0`` (the verify and reverse calls return the whole
    envelope). Any other result code raises GatewayError.
    """

    def __init__(
        self,
        settings: GatewaySettings,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=settings.timeout)
        self._tokens = TokenCache(settings, self._http, clock=clock)
        logger.debug(
            "PepDorsaClient initialized for %s (terminal %s)",
            settings.base_url,
            settings.terminal_number,
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> "PepDorsaClient":
        """Build a client from ``PEPDORSA_*`` environment settings."""
        return cls(get_settings(), **kwargs)

    @property
    def settings(self) -> GatewaySettings:
        return self._settings

    @property
    def token_cache(self) -> TokenCache:
        return self._tokens

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "PepDorsaClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ==================== Dispatch ====================

    @staticmethod
    def _coerce(model: Type[M], request: RequestLike) -> M:
        if isinstance(request, model):
            return request
        if isinstance(request, WireModel):
            request = request.model_dump()
        try:
            return model.model_validate(request)
        except PydanticValidationError as exc:
            for error in exc.errors():
                if error["loc"][:1] == ("operator",) and error["type"] != "missing":
                    raise InvalidOperatorError(error.get("input")) from exc
            raise ValidationError(f"Invalid {model.__name__}: {exc}") from exc

    def _purchase_body(self, operation: ops.OperationSpec, request: WireModel,
                       exclude: Optional[set] = None) -> Dict[str, Any]:
        return {
            **request.to_wire(exclude=exclude),
            "terminalNumber": self._settings.terminal_number,
            **operation.constants(),
        }

    async def _invoke(
        self,
        operation: ops.OperationSpec,
        body: Dict[str, Any],
        cancel: Optional[asyncio.Event] = None,
    ) -> Any:
        token = await run_cancellable(self._tokens.get_token(), cancel)
        url = f"{self._settings.base_url}{operation.path}"
        logger.debug("Dispatching %s to %s", operation.name, url)

        envelope = await post_json(
            self._http,
            url,
            body,
            headers=bearer_headers(token),
            timeout=self._settings.timeout,
            cancel=cancel,
        )

        try:
            parsed = GatewayEnvelope.model_validate(envelope)
        except PydanticValidationError as exc:
            logger.warning("%s returned a malformed envelope", operation.name)
            raise GatewayError(operation.name, envelope) from exc

        if not parsed.ok:
            logger.warning(
                "%s rejected: resultCode=%s resultMsg=%s",
                operation.name,
                parsed.resultCode,
                parsed.resultMsg,
            )
            raise GatewayError(operation.name, envelope)

        if operation.returns_envelope:
            return envelope
        return envelope.get("data")

    # ==================== Authentication ====================

    async def get_token(self, *, cancel: Optional[asyncio.Event] = None) -> str:
        """Return a valid bearer token, authenticating when needed."""
        return await run_cancellable(self._tokens.get_token(), cancel)

    # ==================== Purchases ====================

    async def purchase(
        self, request: RequestLike, *, cancel: Optional[asyncio.Event] = None
    ) -> Dict[str, Any]:
        """Register a standard purchase.

        Returns:
            ``{"urlId": ..., "url": ...}`` where ``url`` is the payment page
        """
        req = self._coerce(PurchaseRequest, request)
        return await self._invoke(
            ops.PURCHASE, self._purchase_body(ops.PURCHASE, req), cancel
        )

    async def multi_acc_purchase(
        self, request: RequestLike, *, cancel: Optional[asyncio.Event] = None
    ) -> Dict[str, Any]:
        """Register a purchase whose amount is split across SHEBA accounts."""
        req = self._coerce(MultiAccPurchaseRequest, request)
        return await self._invoke(
            ops.MULTI_ACC_PURCHASE,
            self._purchase_body(ops.MULTI_ACC_PURCHASE, req),
            cancel,
        )

    async def bill(
        self, request: RequestLike, *, cancel: Optional[asyncio.Event] = None
    ) -> Any:
        req = self._coerce(BillRequest, request)
        return await self._invoke(ops.BILL, self._purchase_body(ops.BILL, req), cancel)

    # ==================== Mobile charge ====================

    async def _charge(
        self,
        operation: ops.OperationSpec,
        model: Type[DirectChargeRequest],
        request: RequestLike,
        cancel: Optional[asyncio.Event],
    ) -> Any:
        req = self._coerce(model, request)
        resolved = ops.charge_service(operation, req.operator)
        body = self._purchase_body(resolved, req, exclude={"operator"})
        return await self._invoke(resolved, body, cancel)

    async def direct_charge(
        self, request: RequestLike, *, cancel: Optional[asyncio.Event] = None
    ) -> Any:
        """Top up a mobile number directly through its operator."""
        return await self._charge(ops.DIRECT_CHARGE, DirectChargeRequest, request, cancel)

    async def pin_charge(
        self, request: RequestLike, *, cancel: Optional[asyncio.Event] = None
    ) -> Any:
        """Buy ``count`` prepaid charge PINs for an operator."""
        return await self._charge(ops.PIN_CHARGE, PinChargeRequest, request, cancel)

    async def internet_charge(
        self, request: RequestLike, *, cancel: Optional[asyncio.Event] = None
    ) -> Any:
        """Buy the internet package identified by ``product_code``."""
        return await self._charge(
            ops.INTERNET_CHARGE, InternetChargeRequest, request, cancel
        )

    # ==================== Settlement ====================

    async def confirm(
        self, request: RequestLike, *, cancel: Optional[asyncio.Event] = None
    ) -> Dict[str, Any]:
        """Confirm a paid transaction.

        Returns:
            Transaction details: invoice, referenceNumber, trackId,
            maskedCardNumber, hashedCardNumber, requestDate and amount
        """
        req = self._coerce(TransactionRequest, request)
        return await self._invoke(ops.CONFIRM, req.to_wire(), cancel)

    async def verify_transaction(
        self, request: RequestLike, *, cancel: Optional[asyncio.Event] = None
    ) -> Dict[str, Any]:
        """Check a transaction through ``verify-transactions``.

        Returns the whole ``{resultCode, resultMsg, ...}`` envelope.
        """
        req = self._coerce(TransactionRequest, request)
        return await self._invoke(ops.VERIFY_TRANSACTION, req.to_wire(), cancel)

    async def verify(
        self, request: RequestLike, *, cancel: Optional[asyncio.Event] = None
    ) -> Dict[str, Any]:
        """Fetch detailed payment data through ``verify-payment``.

        Returns the whole envelope; the transaction details sit under ``data``.
        """
        req = self._coerce(TransactionRequest, request)
        return await self._invoke(ops.VERIFY, req.to_wire(), cancel)

    async def reverse(
        self, request: RequestLike, *, cancel: Optional[asyncio.Event] = None
    ) -> Dict[str, Any]:
        req = self._coerce(TransactionRequest, request)
        return await self._invoke(ops.REVERSE, req.to_wire(), cancel)


__all__ = ["PepDorsaClient"]
