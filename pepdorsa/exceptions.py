"""Exceptions raised by the Pep gateway client."""

from typing import Any, Dict, Optional


class PaymentError(Exception):
    """Base exception for gateway-related errors."""
    pass


class ValidationError(PaymentError):
    """Raised when request fields fail validation before dispatch."""
    pass


class InvalidOperatorError(ValidationError):
    """Raised when a mobile operator outside MCI/MTN/RTL is requested."""

    def __init__(self, operator: Any) -> None:
        super().__init__(f"Invalid operator: {operator!r}")
        self.operator = operator


class TransportError(PaymentError):
    """Raised when the gateway could not be reached or answered garbage."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GatewayTimeoutError(TransportError):
    """Raised when a gateway call exceeds the configured timeout."""
    pass


class RequestCancelledError(TransportError):
    """Raised when the caller's cancel signal aborts an in-flight call."""
    pass


class AuthenticationError(PaymentError):
    """Raised when the token endpoint refuses to issue a token."""

    def __init__(self, message: str, envelope: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.envelope = envelope


class GatewayError(PaymentError):
    """Raised when an operation envelope carries a non-zero result code.

    The full envelope is kept so callers can branch on gateway-specific
    codes without parsing the message.
    """

    def __init__(self, operation: str, envelope: Dict[str, Any]) -> None:
        self.operation = operation
        self.envelope = envelope
        self.result_code = envelope.get("resultCode")
        self.result_msg = envelope.get("resultMsg")
        super().__init__(
            f"[{operation}] gateway error {self.result_code}: {self.result_msg}"
        )


__all__ = [
    "PaymentError",
    "ValidationError",
    "InvalidOperatorError",
    "TransportError",
    "GatewayTimeoutError",
    "RequestCancelledError",
    "AuthenticationError",
    "GatewayError",
]
