from datetime import datetime, UTC
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel

from wallet_hub.config import GatewayId

SUCCESS_STATES = {"SUCCESS", "SUCCESSFUL", "COMPLETED", "PAID"}
FAILED_STATES = {"FAILED", "FAILURE", "CANCELLED", "CANCEL", "EXPIRED"}


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @classmethod
    def from_provider(cls, raw: Any) -> "PaymentStatus":
        value = str(raw or "").strip().upper()
        if value in SUCCESS_STATES:
            return cls.SUCCESS
        if value in FAILED_STATES:
            return cls.FAILED
        return cls.PENDING

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


class PaymentOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    orderId: str
    gatewayId: GatewayId
    amount: Decimal = Field(gt=0)
    createdAt: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PendingOrderRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    orderId: str
    amount: Decimal


class InitiatePaymentRequest(BaseModel):
    # Left loose so bad input reaches the amount check and gets the usual failure result.
    amount: Any = None


class InitiateResult(BaseModel):
    success: bool
    payment_url: Optional[str] = None
    order_id: Optional[str] = None
    error: Optional[str] = None
    order: Optional[PaymentOrder] = None


class StatusReport(BaseModel):
    """Canonical status plus whatever detail the backend returned."""

    order_id: str
    status: PaymentStatus
    raw_status: str
    amount: Optional[Decimal] = None
    transaction_id: Optional[str] = None
    message: Optional[str] = None
    payload: dict = Field(default_factory=dict)


class ReconcileResult(BaseModel):
    status: Optional[PaymentStatus] = None
    order_id: Optional[str] = None
    amount: Optional[Decimal] = None
    transaction_id: Optional[str] = None
    message: Optional[str] = None


class DepositAction(BaseModel):
    action: Literal["deposit"] = "deposit"
    amount: Decimal
    utrId: str
    receiptRef: Optional[str] = None

    def wire_fields(self) -> dict:
        fields = {"amount": float(self.amount), "utrId": self.utrId}
        if self.receiptRef:
            fields["screenshotPath"] = self.receiptRef
        return fields


class WithdrawAction(BaseModel):
    action: Literal["withdraw"] = "withdraw"
    amount: Decimal

    def wire_fields(self) -> dict:
        return {"amount": float(self.amount)}


class AdminAdjustAction(BaseModel):
    action: Literal["admin_update"] = "admin_update"
    targetUserId: str
    # Signed: negative amounts debit the target wallet.
    amount: Decimal
    reason: str

    def wire_fields(self) -> dict:
        return {"targetUserId": self.targetUserId, "amount": float(self.amount), "reason": self.reason}


class RedeemCodeAction(BaseModel):
    action: Literal["redeem_code"] = "redeem_code"
    code: str

    def wire_fields(self) -> dict:
        return {"code": self.code}


class SaveBankCardAction(BaseModel):
    action: Literal["save_bank_card"] = "save_bank_card"
    holderName: str
    cardNumber: str
    ifsc: str
    bankName: str

    def wire_fields(self) -> dict:
        return {
            "bankCard": {
                "accountHolderName": self.holderName,
                "cardNumber": self.cardNumber,
                "ifscCode": self.ifsc,
                "bankName": self.bankName,
            }
        }


WalletAction = Annotated[
    Union[DepositAction, WithdrawAction, AdminAdjustAction, RedeemCodeAction, SaveBankCardAction],
    Field(discriminator="action"),
]


class WalletActionRequest(RootModel[WalletAction]):
    pass


class ActionResult(BaseModel):
    ok: bool
    error: Optional[str] = None
    transactionId: Optional[str] = None
    newBalance: Optional[float] = None
    amount: Optional[float] = None
    message: Optional[str] = None
    bankCard: Optional[dict] = None
