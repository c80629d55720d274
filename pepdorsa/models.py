"""Request and envelope models for the Pep gateway wire contract."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, model_validator
from pydantic.alias_generators import to_camel


class Operator(str, Enum):
    """Mobile network operators supported by the charge products."""

    MCI = "MCI"
    MTN = "MTN"
    RTL = "RTL"


class WireModel(BaseModel):
    """Base for request models: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    def to_wire(self, exclude: Optional[set] = None) -> Dict[str, Any]:
        # Unset optional fields are left out of the JSON body entirely.
        return self.model_dump(by_alias=True, exclude_none=True, exclude=exclude)


# ==================== Requests ====================

class BaseTransactionRequest(WireModel):
    invoice: str = Field(min_length=1)
    invoice_date: str = Field(min_length=1)
    amount: int = Field(gt=0)
    callback_api: str = Field(min_length=1)
    mobile_number: str = Field(min_length=1)
    description: Optional[str] = None
    payer_mail: Optional[str] = None
    payer_name: Optional[str] = None
    pans: Optional[List[str]] = None
    national_code: Optional[str] = None


class PurchaseRequest(BaseTransactionRequest):
    payment_code: Optional[str] = None


class MultiAccPurchaseRequest(BaseTransactionRequest):
    """Purchase split across several SHEBA accounts."""

    shared_value: List[str] = Field(min_length=1)
    sheba: List[str] = Field(min_length=1)

    @model_validator(mode="after")
    def _check_shares(self) -> "MultiAccPurchaseRequest":
        if len(self.shared_value) != len(self.sheba):
            raise ValueError("sharedValue and sheba must have the same length")
        return self


class BillRequest(BaseTransactionRequest):
    bill_id: str = Field(min_length=1)
    payment_id: str = Field(min_length=1)


class DirectChargeRequest(BaseTransactionRequest):
    operator: Operator


class PinChargeRequest(DirectChargeRequest):
    count: int = Field(ge=1)


class InternetChargeRequest(DirectChargeRequest):
    product_code: str = Field(min_length=1)


class TransactionRequest(WireModel):
    """Identifies a registered transaction for confirm, verify and reverse."""

    invoice: str = Field(min_length=1)
    url_id: str = Field(min_length=1)


# ==================== Envelopes ====================

class GatewayEnvelope(BaseModel):
    """Uniform ``{resultCode, resultMsg, data}`` response shape.

    ``resultCode`` must be a JSON integer; ``"0"`` or ``false`` do not pass.
    """

    model_config = ConfigDict(extra="allow")

    resultCode: StrictInt
    resultMsg: Optional[str] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.resultCode == 0


class TokenEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    resultCode: StrictInt
    resultMsg: Optional[str] = None
    token: Optional[str] = None
    expireAt: Optional[Any] = None


__all__ = [
    "Operator",
    "PurchaseRequest",
    "MultiAccPurchaseRequest",
    "BillRequest",
    "DirectChargeRequest",
    "PinChargeRequest",
    "InternetChargeRequest",
    "TransactionRequest",
    "GatewayEnvelope",
    "TokenEnvelope",
]
