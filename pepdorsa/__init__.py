"""Async client for the Pep (Dorsa) payment gateway."""

import logging

from .client import PepDorsaClient
from .config import GatewaySettings, get_settings
from .exceptions import (
    AuthenticationError,
    GatewayError,
    GatewayTimeoutError,
    InvalidOperatorError,
    PaymentError,
    RequestCancelledError,
    TransportError,
    ValidationError,
)
from .models import (
    BillRequest,
    DirectChargeRequest,
    GatewayEnvelope,
    InternetChargeRequest,
    MultiAccPurchaseRequest,
    Operator,
    PinChargeRequest,
    PurchaseRequest,
    TransactionRequest,
)
from .token_cache import TokenCache

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "1.0.0"

__all__ = [
    "PepDorsaClient",
    "GatewaySettings",
    "get_settings",
    "TokenCache",
    "Operator",
    "PurchaseRequest",
    "MultiAccPurchaseRequest",
    "BillRequest",
    "DirectChargeRequest",
    "PinChargeRequest",
    "InternetChargeRequest",
    "TransactionRequest",
    "GatewayEnvelope",
    "PaymentError",
    "ValidationError",
    "InvalidOperatorError",
    "TransportError",
    "GatewayTimeoutError",
    "RequestCancelledError",
    "AuthenticationError",
    "GatewayError",
]
