from decimal import Decimal
from enum import Enum
from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    backend_base_url: AnyHttpUrl = "http://mock-backend:8001"
    backend_api_key: Optional[str] = None
    bearer_token: Optional[str] = None
    request_timeout_seconds: float = 8.0
    db_url: str = "sqlite:///./wallet_hub.db"
    corex_min_amount: Decimal = Decimal("1")
    log_level: str = "INFO"

settings = Settings()

class GatewayId(str, Enum):
    COREX = "corex"
    IMB = "imb"

class WalletActionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    ADMIN_UPDATE = "admin_update"
    REDEEM_CODE = "redeem_code"
    SAVE_BANK_CARD = "save_bank_card"

WALLET_FUNCTION = "wallet-server"

create_payment_function_map = {
    GatewayId.COREX: "create-corex-payment",
    GatewayId.IMB: "create-imb-payment",
}

# IMB has no status endpoint; its orders settle through the backend webhook.
check_status_function_map = {
    GatewayId.COREX: "corex-check-status",
}
