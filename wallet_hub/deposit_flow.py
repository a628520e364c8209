from typing import Any, Callable, Optional

from wallet_hub.clients.gateway_client import GatewayClient
from wallet_hub.logging_config import get_logger
from wallet_hub.reconciliation import StatusReconciler
from wallet_hub.schemas.app_schemas import InitiateResult, PendingOrderRecord, ReconcileResult
from wallet_hub.store import PendingOrderStore

logger = get_logger(__name__)


class DepositFlow:
    """
    Redirect hand-off for one gateway: initiate, persist, then navigate away;
    and on the way back, resume from the persisted record.
    """

    def __init__(self, gateway: GatewayClient, store: PendingOrderStore):
        self.gateway = gateway
        self.store = store
        self.reconciler = StatusReconciler(gateway, store)

    @property
    def is_busy(self) -> bool:
        return self.gateway.is_busy

    async def redirect_to_payment(
        self,
        amount,
        navigate: Callable[[str], Any],
        access_token: str | None = None,
    ) -> InitiateResult:
        result = await self.gateway.initiate(amount, access_token)
        if not result.success or not result.payment_url:
            return result
        # The write must land before navigation; nothing in memory survives the redirect.
        if result.order:
            self.store.save(result.order.orderId, result.order.amount)
        else:
            logger.warning("Gateway returned no order id; outcome cannot be reconciled: gateway=%s", self.gateway.gateway_id.value)
        navigate(result.payment_url)
        return result

    def pending(self) -> Optional[PendingOrderRecord]:
        return self.store.load()

    async def resume(self, redirect_status: str | None = None, access_token: str | None = None) -> ReconcileResult:
        return await self.reconciler.resume(redirect_status, access_token)

    def dismiss(self) -> None:
        self.store.clear()
