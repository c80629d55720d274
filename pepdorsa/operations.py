"""Per-operation wire constants for the Pep gateway."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .exceptions import InvalidOperatorError
from .models import Operator

TOKEN_PATH = "/token/getToken"
PURCHASE_PATH = "/api/payment/purchase"
PRE_TRANSACTION_PATH = "/api/payment/pre-transaction"
CONFIRM_PATH = "/api/payment/confirm-transactions"
VERIFY_TRANSACTION_PATH = "/api/payment/verify-transactions"
VERIFY_PAYMENT_PATH = "/api/payment/verify-payment"
REVERSE_PATH = "/api/payment/reverse-transactions"


@dataclass(frozen=True)
class OperationSpec:
    """Fixed data distinguishing one gateway operation from its siblings.

    ``service_code`` and ``service_type`` are only set for operations whose
    code does not depend on the request; charge products resolve them per
    operator through :func:`charge_service`.
    """

    name: str
    path: str
    service_code: Optional[str] = None
    service_type: Optional[str] = None
    returns_envelope: bool = False

    def constants(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        if self.service_code is not None:
            fields["serviceCode"] = self.service_code
        if self.service_type is not None:
            fields["serviceType"] = self.service_type
        return fields


PURCHASE = OperationSpec("Purchase", PURCHASE_PATH, "8", "PURCHASE")
MULTI_ACC_PURCHASE = OperationSpec(
    "MultiAccPurchase", PURCHASE_PATH, "9", "MULTIACCPURCHASE"
)
BILL = OperationSpec("Bill", PRE_TRANSACTION_PATH, "4", "BILL")
DIRECT_CHARGE = OperationSpec("Direct Charge", PRE_TRANSACTION_PATH)
PIN_CHARGE = OperationSpec("PIN Charge", PRE_TRANSACTION_PATH)
INTERNET_CHARGE = OperationSpec("Internet Charge", PRE_TRANSACTION_PATH)
CONFIRM = OperationSpec("Confirm", CONFIRM_PATH)
VERIFY_TRANSACTION = OperationSpec(
    "Verify Transaction", VERIFY_TRANSACTION_PATH, returns_envelope=True
)
VERIFY = OperationSpec("Verify", VERIFY_PAYMENT_PATH, returns_envelope=True)
REVERSE = OperationSpec("Reverse", REVERSE_PATH, returns_envelope=True)


# Service codes per product family. Internet packages share the direct
# charge codes; the gateway tells them apart by the productCode field.
_DIRECT_CHARGE_CODES = {Operator.MCI: "1", Operator.MTN: "2", Operator.RTL: "3"}
_PIN_CHARGE_CODES = {Operator.MCI: "5", Operator.MTN: "6", Operator.RTL: "7"}

_CHARGE_FAMILIES = {
    DIRECT_CHARGE.name: (_DIRECT_CHARGE_CODES, ""),
    INTERNET_CHARGE.name: (_DIRECT_CHARGE_CODES, ""),
    PIN_CHARGE.name: (_PIN_CHARGE_CODES, "-PIN"),
}


def parse_operator(value: Any) -> Operator:
    """Coerce ``value`` to an :class:`Operator` or raise InvalidOperatorError."""
    if isinstance(value, Operator):
        return value
    try:
        return Operator(value)
    except ValueError as exc:
        raise InvalidOperatorError(value) from exc


def charge_service(operation: OperationSpec, operator: Any) -> OperationSpec:
    """Resolve a charge operation to its operator-specific service constants."""
    operator = parse_operator(operator)
    codes, suffix = _CHARGE_FAMILIES[operation.name]
    service_code = codes.get(operator)
    if service_code is None:
        raise InvalidOperatorError(operator)
    return OperationSpec(
        name=operation.name,
        path=operation.path,
        service_code=service_code,
        service_type=f"{operator.value}{suffix}",
        returns_envelope=operation.returns_envelope,
    )
