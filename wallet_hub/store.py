from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Tuple

from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session, sessionmaker

from wallet_hub import models
from wallet_hub.config import GatewayId
from wallet_hub.database import SessionLocal
from wallet_hub.logging_config import get_logger
from wallet_hub.schemas.app_schemas import PendingOrderRecord

logger = get_logger(__name__)

PENDING_ORDER_PREFIX = "pending_order::"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[dict]: ...

    def set(self, key: str, value: dict) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...


class InMemoryKeyValueStore:
    def __init__(self) -> None:
        self._data: Dict[str, dict] = {}

    def get(self, key: str) -> Optional[dict]:
        value = self._data.get(key)
        return dict(value) if value is not None else None

    def set(self, key: str, value: dict) -> None:
        self._data[key] = dict(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class SqlKeyValueStore:
    """
    Durable key-value slots backed by SQLAlchemy.

    ``set`` commits before returning, so a value written here survives the
    process being torn down immediately afterwards.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def _entry(self, db: Session, key: str) -> Optional[models.KeyValueEntry]:
        return db.query(models.KeyValueEntry).filter_by(key=key).first()

    def get(self, key: str) -> Optional[dict]:
        with self.session_factory() as db:
            entry = self._entry(db, key)
            return dict(entry.value) if entry else None

    def set(self, key: str, value: dict) -> None:
        with self.session_factory() as db:
            entry = self._entry(db, key)
            if entry:
                entry.value = dict(value)
            else:
                db.add(models.KeyValueEntry(key=key, value=dict(value)))
            db.commit()

    def delete(self, key: str) -> None:
        with self.session_factory() as db:
            db.query(models.KeyValueEntry).filter_by(key=key).delete()
            db.commit()

    def keys(self) -> List[str]:
        with self.session_factory() as db:
            return [key for (key,) in db.query(models.KeyValueEntry.key).all()]


def pending_order_key(gateway_id: GatewayId, scope: str | None = None) -> str:
    key = f"{PENDING_ORDER_PREFIX}{gateway_id.value}"
    return f"{scope}:{key}" if scope else key


def parse_pending_order_key(key: str) -> Optional[Tuple[Optional[str], GatewayId]]:
    scope, sep, gateway = key.rpartition(PENDING_ORDER_PREFIX)
    if not sep:
        return None
    try:
        gateway_id = GatewayId(gateway)
    except ValueError:
        return None
    return (scope.rstrip(":") or None), gateway_id


class PendingOrderStore:
    """
    One durable slot per gateway (and session scope) holding the order in flight
    across the redirect to the payment gateway.
    """

    def __init__(self, kv: KeyValueStore, gateway_id: GatewayId, scope: str | None = None):
        self.kv = kv
        self.gateway_id = gateway_id
        self.key = pending_order_key(gateway_id, scope)

    def save(self, order_id: str, amount) -> PendingOrderRecord:
        previous = self.load()
        if previous and previous.orderId != order_id:
            # Last write wins; the superseded order can still settle by webhook.
            logger.warning(
                "Overwriting unreconciled pending order: gateway=%s previous_order_id=%s new_order_id=%s",
                self.gateway_id.value,
                previous.orderId,
                order_id,
            )
        record = PendingOrderRecord(orderId=order_id, amount=Decimal(str(amount)))
        self.kv.set(self.key, record.model_dump(mode="json"))
        logger.info("Stored pending order: gateway=%s order_id=%s amount=%s", self.gateway_id.value, order_id, record.amount)
        return record

    def load(self) -> Optional[PendingOrderRecord]:
        raw = self.kv.get(self.key)
        if raw is None:
            return None
        try:
            return PendingOrderRecord.model_validate(raw)
        except SchemaError:
            logger.warning("Discarding unreadable pending order record: key=%s", self.key)
            self.kv.delete(self.key)
            return None

    def clear(self) -> None:
        self.kv.delete(self.key)
        logger.info("Cleared pending order: gateway=%s", self.gateway_id.value)
