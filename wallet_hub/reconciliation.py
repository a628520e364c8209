from typing import List, Optional, Tuple

from wallet_hub.clients.gateway_client import GatewayClient
from wallet_hub.helpers import BackendClient
from wallet_hub.logging_config import get_logger
from wallet_hub.schemas.app_schemas import PaymentStatus, ReconcileResult, StatusReport
from wallet_hub.store import KeyValueStore, PendingOrderStore, parse_pending_order_key

logger = get_logger(__name__)

# Hints the gateway appends to the return URL when the user abandons checkout.
FAILURE_HINTS = {"failed", "failure", "cancelled", "cancel"}

STATUS_MESSAGES = {
    PaymentStatus.SUCCESS: "Payment successful",
    PaymentStatus.FAILED: "Payment failed. Please try again.",
    PaymentStatus.PENDING: "Payment is being processed",
}


class StatusReconciler:
    """
    Resolves the outcome of a pending order once the user is back from the gateway.

    One status query per call; terminal outcomes clear the pending slot, PENDING
    keeps it so a later call can pick it up again.
    """

    def __init__(self, gateway: GatewayClient, store: PendingOrderStore):
        self.gateway = gateway
        self.store = store

    async def reconcile(self, order_id: str, access_token: str | None = None) -> PaymentStatus:
        status, _ = await self._reconcile(order_id, access_token)
        return status

    async def _reconcile(self, order_id: str, access_token: str | None) -> Tuple[PaymentStatus, Optional[StatusReport]]:
        report = await self.gateway.check_status(order_id, access_token)
        status = report.status if report else PaymentStatus.PENDING
        logger.info(
            "Reconciled order: gateway=%s order_id=%s status=%s raw_status=%s",
            self.gateway.gateway_id.value,
            order_id,
            status.value,
            report.raw_status if report else None,
        )
        if status.is_terminal:
            self._settle(order_id)
        return status, report

    def _settle(self, order_id: str) -> None:
        record = self.store.load()
        if record is None:
            return
        if record.orderId != order_id:
            # A newer initiation owns the slot now.
            logger.info(
                "Keeping newer pending order: gateway=%s settled_order_id=%s pending_order_id=%s",
                self.gateway.gateway_id.value,
                order_id,
                record.orderId,
            )
            return
        self.store.clear()

    async def resume(self, redirect_status: str | None = None, access_token: str | None = None) -> ReconcileResult:
        record = self.store.load()
        if record is None:
            return ReconcileResult(message="No pending payment")

        if redirect_status and redirect_status.strip().lower() in FAILURE_HINTS:
            logger.info(
                "Gateway reported abandoned checkout: gateway=%s order_id=%s hint=%s",
                self.gateway.gateway_id.value,
                record.orderId,
                redirect_status,
            )
            self.store.clear()
            return ReconcileResult(
                status=PaymentStatus.FAILED,
                order_id=record.orderId,
                amount=record.amount,
                message=STATUS_MESSAGES[PaymentStatus.FAILED],
            )

        status, report = await self._reconcile(record.orderId, access_token)
        amount = record.amount
        if report and report.amount is not None:
            if report.amount != record.amount:
                logger.warning(
                    "Amount mismatch on reconcile: order_id=%s pending_amount=%s backend_amount=%s",
                    record.orderId,
                    record.amount,
                    report.amount,
                )
            amount = report.amount
        return ReconcileResult(
            status=status,
            order_id=record.orderId,
            amount=amount,
            transaction_id=report.transaction_id if report else None,
            message=(report.message if report and report.message else STATUS_MESSAGES[status]),
        )


async def reconcile_pending_orders(kv: KeyValueStore, backend: BackendClient | None = None) -> List[ReconcileResult]:
    """
    Sweep every pending slot in ``kv`` once and return one result per slot.
    Slots for gateways without a status check are left alone.
    """
    results: List[ReconcileResult] = []
    for key in kv.keys():
        parsed = parse_pending_order_key(key)
        if parsed is None:
            continue
        scope, gateway_id = parsed
        gateway = GatewayClient(gateway_id, backend=backend, scope=scope)
        if not gateway.supports_status_check:
            # Settled by the backend webhook; a sweep cannot move these forward.
            logger.info("Skipping slot without status check: key=%s", key)
            continue
        reconciler = StatusReconciler(gateway, PendingOrderStore(kv, gateway_id, scope=scope))
        results.append(await reconciler.resume())
    logger.info("Pending order sweep complete: slots=%s", len(results))
    return results
