from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from wallet_hub.config import WalletActionType
from wallet_hub.schemas.app_schemas import WalletAction


class CreatePaymentRequest(BaseModel):
    amount: float

    @classmethod
    def from_amount(cls, amount: Decimal) -> "CreatePaymentRequest":
        return cls(amount=float(amount))


class CreatePaymentResponse(BaseModel):
    success: bool = False
    payment_url: Optional[str] = None
    order_id: Optional[str] = None
    error: Optional[str] = None


class CheckStatusRequest(BaseModel):
    order_id: str


class CheckStatusResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool = True
    order_id: str
    status: str
    amount: Optional[Decimal] = None
    transaction_id: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None


class WalletServerRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    action: WalletActionType

    @classmethod
    def from_action(cls, action: WalletAction) -> "WalletServerRequest":
        return cls(action=WalletActionType(action.action), **action.wire_fields())


class BankCard(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    account_holder_name: Optional[str] = None
    card_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    bank_name: Optional[str] = None


class WalletServerResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: Optional[bool] = None
    error: Optional[str] = None
    transactionId: Optional[str] = None
    newBalance: Optional[float] = None
    amount: Optional[float] = None
    message: Optional[str] = None
    bankCard: Optional[BankCard] = None
