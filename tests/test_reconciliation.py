import asyncio
from decimal import Decimal

import pytest

from wallet_hub.clients.gateway_client import GatewayClient
from wallet_hub.commands.reconcile import reconcile
from wallet_hub.config import GatewayId
from wallet_hub.deposit_flow import DepositFlow
from wallet_hub.helpers import SingleFlight
from wallet_hub.reconciliation import StatusReconciler, reconcile_pending_orders
from wallet_hub.schemas.app_schemas import PaymentStatus
from wallet_hub.store import InMemoryKeyValueStore, PendingOrderStore


def _status(order_id, status, amount=100, **extra):
    return {"success": True, "order_id": order_id, "status": status, "amount": amount, **extra}


def _reconciler(backend, kv, gateway_id=GatewayId.COREX):
    gateway = GatewayClient(gateway_id, backend=backend, flights=SingleFlight())
    return StatusReconciler(gateway, PendingOrderStore(kv, gateway_id))


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("SUCCESS", PaymentStatus.SUCCESS),
        ("successful", PaymentStatus.SUCCESS),
        ("COMPLETED", PaymentStatus.SUCCESS),
        ("PAID", PaymentStatus.SUCCESS),
        ("FAILED", PaymentStatus.FAILED),
        ("cancelled", PaymentStatus.FAILED),
        ("EXPIRED", PaymentStatus.FAILED),
        ("PENDING", PaymentStatus.PENDING),
        ("INITIATED", PaymentStatus.PENDING),
        (None, PaymentStatus.PENDING),
    ],
)
def test_provider_status_mapping(raw, expected):
    assert PaymentStatus.from_provider(raw) is expected


def test_success_clears_pending_order(fake_backend):
    kv = InMemoryKeyValueStore()
    reconciler = _reconciler(fake_backend(_status("ORD1", "SUCCESS")), kv)
    reconciler.store.save("ORD1", 100)

    assert asyncio.run(reconciler.reconcile("ORD1")) is PaymentStatus.SUCCESS
    assert reconciler.store.load() is None


def test_failed_clears_pending_order(fake_backend):
    kv = InMemoryKeyValueStore()
    reconciler = _reconciler(fake_backend(_status("ORD1", "FAILED")), kv)
    reconciler.store.save("ORD1", 100)

    assert asyncio.run(reconciler.reconcile("ORD1")) is PaymentStatus.FAILED
    assert reconciler.store.load() is None


def test_pending_keeps_pending_order(fake_backend):
    kv = InMemoryKeyValueStore()
    reconciler = _reconciler(fake_backend(_status("ORD1", "PENDING")), kv)
    reconciler.store.save("ORD1", 100)

    assert asyncio.run(reconciler.reconcile("ORD1")) is PaymentStatus.PENDING
    assert reconciler.store.load().orderId == "ORD1"


def test_unavailable_status_counts_as_pending(fake_backend):
    kv = InMemoryKeyValueStore()
    reconciler = _reconciler(fake_backend(RuntimeError("network down")), kv)
    reconciler.store.save("ORD1", 100)

    assert asyncio.run(reconciler.reconcile("ORD1")) is PaymentStatus.PENDING
    assert reconciler.store.load() is not None


def test_settling_old_order_keeps_newer_record(fake_backend):
    kv = InMemoryKeyValueStore()
    reconciler = _reconciler(fake_backend(_status("ORD1", "SUCCESS")), kv)
    reconciler.store.save("ORD2", 300)

    assert asyncio.run(reconciler.reconcile("ORD1")) is PaymentStatus.SUCCESS
    assert reconciler.store.load().orderId == "ORD2"


def test_redirect_round_trip_settles_and_clears(fake_backend):
    kv = InMemoryKeyValueStore()
    backend = fake_backend(
        {"success": True, "payment_url": "https://pay.example/ORD1", "order_id": "ORD1"},
        _status("ORD1", "SUCCESS", amount=100, transaction_id="UTR123"),
    )
    navigated = []

    def navigate(url):
        # Persist must already have happened when navigation is issued.
        navigated.append((url, PendingOrderStore(kv, GatewayId.COREX).load()))

    before = DepositFlow(GatewayClient(GatewayId.COREX, backend=backend, flights=SingleFlight()), PendingOrderStore(kv, GatewayId.COREX))
    initiated = asyncio.run(before.redirect_to_payment(100, navigate))

    assert initiated.success is True
    url, record_at_navigation = navigated[0]
    assert url == "https://pay.example/ORD1"
    assert record_at_navigation.orderId == "ORD1"
    assert record_at_navigation.amount == Decimal("100")

    # Fresh objects: nothing in memory survives the redirect.
    after = DepositFlow(GatewayClient(GatewayId.COREX, backend=backend, flights=SingleFlight()), PendingOrderStore(kv, GatewayId.COREX))
    result = asyncio.run(after.resume())

    assert result.status is PaymentStatus.SUCCESS
    assert result.order_id == "ORD1"
    assert result.amount == 100
    assert result.transaction_id == "UTR123"
    assert after.pending() is None


def test_failed_initiation_does_not_write_or_navigate(fake_backend):
    kv = InMemoryKeyValueStore()
    backend = fake_backend()
    flow = DepositFlow(GatewayClient(GatewayId.COREX, backend=backend, flights=SingleFlight()), PendingOrderStore(kv, GatewayId.COREX))
    navigated = []

    result = asyncio.run(flow.redirect_to_payment(0.5, navigated.append))

    assert result.model_dump(exclude_none=True) == {"success": False, "error": "Invalid amount"}
    assert navigated == []
    assert kv.keys() == []


def test_cancel_hint_settles_failed_without_status_call(fake_backend):
    kv = InMemoryKeyValueStore()
    backend = fake_backend()
    reconciler = _reconciler(backend, kv, GatewayId.IMB)
    reconciler.store.save("IMB1", 50)

    result = asyncio.run(reconciler.resume(redirect_status="Cancelled"))

    assert result.status is PaymentStatus.FAILED
    assert result.order_id == "IMB1"
    assert backend.calls == []
    assert reconciler.store.load() is None


def test_imb_resume_without_hint_stays_pending(fake_backend):
    kv = InMemoryKeyValueStore()
    reconciler = _reconciler(fake_backend(), kv, GatewayId.IMB)
    reconciler.store.save("IMB1", 50)

    result = asyncio.run(reconciler.resume(redirect_status="success"))

    assert result.status is PaymentStatus.PENDING
    assert result.message == "Payment is being processed"
    assert reconciler.store.load().orderId == "IMB1"


def test_resume_without_pending_order(fake_backend):
    backend = fake_backend()
    result = asyncio.run(_reconciler(backend, InMemoryKeyValueStore()).resume())

    assert result.status is None
    assert backend.calls == []


def test_sweep_reconciles_every_slot(fake_backend):
    kv = InMemoryKeyValueStore()
    PendingOrderStore(kv, GatewayId.COREX, scope="s1").save("ORD1", 100)
    PendingOrderStore(kv, GatewayId.COREX, scope="s2").save("ORD2", 200)
    kv.set("unrelated", {"x": 1})
    backend = fake_backend(_status("ORD1", "SUCCESS"), _status("ORD2", "PENDING", amount=200))

    results = asyncio.run(reconcile_pending_orders(kv, backend=backend))

    assert {r.order_id: r.status for r in results} == {"ORD1": PaymentStatus.SUCCESS, "ORD2": PaymentStatus.PENDING}
    assert sorted(kv.keys()) == ["s2:pending_order::corex", "unrelated"]


def test_reconcile_command_exit_codes(fake_backend):
    kv = InMemoryKeyValueStore()
    PendingOrderStore(kv, GatewayId.COREX).save("ORD1", 100)
    backend = fake_backend(_status("ORD1", "PENDING"), _status("ORD1", "SUCCESS"))

    assert asyncio.run(reconcile(kv, backend=backend)) == 1
    assert asyncio.run(reconcile(kv, backend=backend)) == 0
    assert kv.keys() == []


def test_sweep_leaves_gateways_without_status_check(fake_backend):
    kv = InMemoryKeyValueStore()
    PendingOrderStore(kv, GatewayId.IMB).save("IMB1", 50)
    PendingOrderStore(kv, GatewayId.COREX).save("ORD1", 100)
    backend = fake_backend(_status("ORD1", "SUCCESS"))

    assert asyncio.run(reconcile(kv, backend=backend)) == 0
    assert len(backend.calls) == 1
    assert kv.keys() == ["pending_order::imb"]
