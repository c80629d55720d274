import hashlib
import logging
import os
import secrets
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("gateway-mock")


class EndpointFilter(logging.Filter):
    """Filter out noisy health check access logs."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - logging filter
        return "GET /health" not in record.getMessage()


logging.getLogger("uvicorn.access").addFilter(EndpointFilter())

# Result codes used by the sandbox. Only 0 is part of the real contract.
OK = 0
INVALID_SERVICE = 5
DUPLICATE_INVOICE = 12
INVALID_CREDENTIALS = 13
UNKNOWN_TRANSACTION = 14
INVALID_STATE = 16
UNAUTHORIZED = 401

PURCHASE_SERVICES = {"8": "PURCHASE", "9": "MULTIACCPURCHASE"}
PRE_TRANSACTION_CODES = {"1", "2", "3", "4", "5", "6", "7"}


def envelope(code: int, message: str, data=None, http_status: int = status.HTTP_200_OK):
    body = {"resultCode": code, "resultMsg": message}
    if data is not None:
        body["data"] = data
    return JSONResponse(status_code=http_status, content=body)


class UnauthorizedToken(Exception):
    """Raised when a request carries no valid bearer token."""


class TokenRequest(BaseModel):
    username: str
    password: str


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    invoice: str
    invoiceDate: str
    amount: int
    callbackApi: str
    mobileNumber: str
    terminalNumber: int
    serviceCode: str
    serviceType: str


class TransactionRequest(BaseModel):
    invoice: str
    urlId: str


@dataclass
class Transaction:
    invoice: str
    url_id: str
    amount: int
    service_code: str
    service_type: str
    request_date: str
    status: str = "registered"
    reference_number: Optional[str] = None
    track_id: Optional[str] = None
    card_number: str = "6219861012341234"

    def details(self) -> dict:
        return {
            "invoice": self.invoice,
            "referenceNumber": self.reference_number,
            "trackId": self.track_id,
            "maskedCardNumber": f"{self.card_number[:4]}-****-****-{self.card_number[-4:]}",
            "hashedCardNumber": hashlib.sha256(self.card_number.encode()).hexdigest(),
            "requestDate": self.request_date,
            "amount": self.amount,
        }


@dataclass
class GatewayState:
    username: str
    password: str
    terminal_number: int
    token_ttl: float
    tokens: dict = field(default_factory=dict)
    transactions: dict = field(default_factory=dict)
    token_requests: int = 0

    def issue_token(self) -> tuple:
        token = secrets.token_hex(16)
        expires_at = time.time() + self.token_ttl
        self.tokens[token] = expires_at
        self.token_requests += 1
        return token, expires_at

    def token_valid(self, token: str) -> bool:
        expires_at = self.tokens.get(token)
        return expires_at is not None and time.time() < expires_at


def create_app(
    username: str = "sandbox",
    password: str = "sandbox",
    terminal_number: int = 1000,
    token_ttl: float = 600.0,
) -> FastAPI:
    """Build an in-memory stand-in for the Pep gateway."""
    state = GatewayState(username, password, terminal_number, token_ttl)
    app = FastAPI(title="Pep Gateway Mock", version="1.0.0")
    app.state.gateway = state

    async def require_token(authorization: Optional[str] = Header(default=None)) -> None:
        scheme, _, token = (authorization or "").partition(" ")
        if scheme != "Bearer" or not state.token_valid(token):
            raise UnauthorizedToken()

    @app.exception_handler(UnauthorizedToken)
    async def _unauthorized(request: Request, exc: UnauthorizedToken):
        return envelope(UNAUTHORIZED, "Unauthorized", http_status=status.HTTP_401_UNAUTHORIZED)

    def register(payload: RegisterRequest) -> Transaction:
        url_id = uuid.uuid4().hex[:12]
        tx = Transaction(
            invoice=payload.invoice,
            url_id=url_id,
            amount=payload.amount,
            service_code=payload.serviceCode,
            service_type=payload.serviceType,
            request_date=datetime.now(timezone.utc).date().isoformat(),
        )
        state.transactions[payload.invoice] = tx
        logger.info("Registered %s invoice %s as %s", tx.service_type, tx.invoice, url_id)
        return tx

    def pay_url(request: Request, url_id: str) -> str:
        return f"{str(request.base_url).rstrip('/')}/pay/{url_id}"

    def lookup(payload: TransactionRequest) -> Optional[Transaction]:
        tx = state.transactions.get(payload.invoice)
        if tx is None or tx.url_id != payload.urlId:
            return None
        return tx

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "gateway-mock"}

    @app.post("/token/getToken")
    async def get_token(payload: TokenRequest):
        if payload.username != state.username or payload.password != state.password:
            logger.warning("Rejected credentials for %s", payload.username)
            return envelope(INVALID_CREDENTIALS, "Invalid username or password")
        token, expires_at = state.issue_token()
        return JSONResponse(
            content={
                "resultCode": OK,
                "resultMsg": "Successful",
                "token": token,
                "expireAt": int(expires_at * 1000),
            }
        )

    @app.post("/api/payment/purchase", dependencies=[Depends(require_token)])
    async def purchase(payload: RegisterRequest, request: Request):
        if payload.terminalNumber != state.terminal_number:
            return envelope(INVALID_SERVICE, "Unknown terminal")
        if PURCHASE_SERVICES.get(payload.serviceCode) != payload.serviceType:
            return envelope(INVALID_SERVICE, "Invalid service code")
        if payload.invoice in state.transactions:
            return envelope(DUPLICATE_INVOICE, "Duplicate invoice")
        tx = register(payload)
        return envelope(OK, "Successful", {"urlId": tx.url_id, "url": pay_url(request, tx.url_id)})

    @app.post("/api/payment/pre-transaction", dependencies=[Depends(require_token)])
    async def pre_transaction(payload: RegisterRequest, request: Request):
        if payload.terminalNumber != state.terminal_number:
            return envelope(INVALID_SERVICE, "Unknown terminal")
        if payload.serviceCode not in PRE_TRANSACTION_CODES:
            return envelope(INVALID_SERVICE, "Invalid service code")
        if payload.invoice in state.transactions:
            return envelope(DUPLICATE_INVOICE, "Duplicate invoice")
        tx = register(payload)
        return envelope(OK, "Successful", pay_url(request, tx.url_id))

    @app.post("/pay/{url_id}")
    async def pay(url_id: str):
        """Simulate the payer completing the payment page."""
        for tx in state.transactions.values():
            if tx.url_id == url_id and tx.status == "registered":
                tx.status = "paid"
                tx.reference_number = str(uuid.uuid4().int)[:12]
                tx.track_id = str(uuid.uuid4().int)[:8]
                return {"status": tx.status, "invoice": tx.invoice}
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"status": "unknown"})

    @app.post("/api/payment/confirm-transactions", dependencies=[Depends(require_token)])
    async def confirm(payload: TransactionRequest):
        tx = lookup(payload)
        if tx is None:
            return envelope(UNKNOWN_TRANSACTION, "Transaction not found")
        if tx.status != "paid":
            return envelope(INVALID_STATE, f"Transaction is {tx.status}")
        tx.status = "confirmed"
        return envelope(OK, "Successful", tx.details())

    @app.post("/api/payment/verify-transactions", dependencies=[Depends(require_token)])
    async def verify_transactions(payload: TransactionRequest):
        tx = lookup(payload)
        if tx is None:
            return envelope(UNKNOWN_TRANSACTION, "Transaction not found")
        if tx.status != "confirmed":
            return envelope(INVALID_STATE, f"Transaction is {tx.status}")
        return envelope(OK, "Successful")

    @app.post("/api/payment/verify-payment", dependencies=[Depends(require_token)])
    async def verify_payment(payload: TransactionRequest):
        tx = lookup(payload)
        if tx is None:
            return envelope(UNKNOWN_TRANSACTION, "Transaction not found")
        if tx.status not in ("paid", "confirmed"):
            return envelope(INVALID_STATE, f"Transaction is {tx.status}")
        return envelope(OK, "Successful", tx.details())

    @app.post("/api/payment/reverse-transactions", dependencies=[Depends(require_token)])
    async def reverse(payload: TransactionRequest):
        tx = lookup(payload)
        if tx is None:
            return envelope(UNKNOWN_TRANSACTION, "Transaction not found")
        if tx.status not in ("paid", "confirmed"):
            return envelope(INVALID_STATE, f"Transaction is {tx.status}")
        tx.status = "reversed"
        return envelope(OK, "Successful")

    return app


app = create_app(
    username=os.getenv("SANDBOX_USERNAME", "sandbox"),
    password=os.getenv("SANDBOX_PASSWORD", "sandbox"),
    terminal_number=int(os.getenv("SANDBOX_TERMINAL_NUMBER", "1000")),
)

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8002,
        reload=True,
        log_level="info"
    )
