import logging
from decimal import Decimal

import pytest

from wallet_hub.config import GatewayId
from wallet_hub.schemas.app_schemas import PendingOrderRecord
from wallet_hub.store import (
    InMemoryKeyValueStore,
    PendingOrderStore,
    parse_pending_order_key,
    pending_order_key,
)


@pytest.fixture(params=["memory", "sql"])
def kv(request, sql_kv):
    return InMemoryKeyValueStore() if request.param == "memory" else sql_kv


def test_save_then_load_returns_saved_record(kv):
    store = PendingOrderStore(kv, GatewayId.COREX)
    store.save("ORD1", 100)

    assert store.load() == PendingOrderRecord(orderId="ORD1", amount=Decimal("100"))
    assert kv.get("pending_order::corex") == {"orderId": "ORD1", "amount": "100"}


def test_clear_removes_record(kv):
    store = PendingOrderStore(kv, GatewayId.COREX)
    store.save("ORD1", 100)
    store.clear()

    assert store.load() is None
    assert kv.keys() == []


def test_load_without_record(kv):
    assert PendingOrderStore(kv, GatewayId.IMB).load() is None


def test_slots_are_per_gateway_and_scope(kv):
    PendingOrderStore(kv, GatewayId.COREX).save("C1", 10)
    PendingOrderStore(kv, GatewayId.IMB).save("I1", 20)
    PendingOrderStore(kv, GatewayId.COREX, scope="abc").save("C2", 30)

    assert PendingOrderStore(kv, GatewayId.COREX).load().orderId == "C1"
    assert PendingOrderStore(kv, GatewayId.IMB).load().orderId == "I1"
    assert PendingOrderStore(kv, GatewayId.COREX, scope="abc").load().orderId == "C2"
    assert PendingOrderStore(kv, GatewayId.IMB, scope="abc").load() is None


def test_new_save_overwrites_unreconciled_record(kv, caplog):
    store = PendingOrderStore(kv, GatewayId.COREX)
    store.save("ORD1", 100)

    with caplog.at_level(logging.WARNING):
        store.save("ORD2", 250.5)

    assert store.load() == PendingOrderRecord(orderId="ORD2", amount=Decimal("250.5"))
    assert "previous_order_id=ORD1 new_order_id=ORD2" in caplog.text


def test_sql_store_survives_new_store_instance(sql_kv):
    from wallet_hub.store import SqlKeyValueStore

    PendingOrderStore(sql_kv, GatewayId.COREX).save("ORD1", 100)
    reopened = SqlKeyValueStore(sql_kv.session_factory)

    assert PendingOrderStore(reopened, GatewayId.COREX).load().orderId == "ORD1"


def test_unreadable_record_is_discarded(kv):
    kv.set(pending_order_key(GatewayId.COREX), {"order": "???"})
    store = PendingOrderStore(kv, GatewayId.COREX)

    assert store.load() is None
    assert kv.get(pending_order_key(GatewayId.COREX)) is None


def test_pending_order_keys_round_trip():
    assert pending_order_key(GatewayId.IMB) == "pending_order::imb"
    assert pending_order_key(GatewayId.COREX, "s1") == "s1:pending_order::corex"
    assert parse_pending_order_key("s1:pending_order::corex") == ("s1", GatewayId.COREX)
    assert parse_pending_order_key("pending_order::imb") == (None, GatewayId.IMB)
    assert parse_pending_order_key("pending_order::paypal") is None
    assert parse_pending_order_key("settings::theme") is None
