import asyncio
import csv
import sys

from wallet_hub import models
from wallet_hub.database import engine
from wallet_hub.helpers import BackendClient
from wallet_hub.reconciliation import reconcile_pending_orders
from wallet_hub.schemas.app_schemas import PaymentStatus
from wallet_hub.store import KeyValueStore, SqlKeyValueStore


async def reconcile(kv: KeyValueStore | None = None, backend: BackendClient | None = None) -> int:
    """
    Re-check every stored pending order once. Exit code 1 while any stay pending.
    """
    if kv is None:
        models.Base.metadata.create_all(bind=engine)
        kv = SqlKeyValueStore()
    results = await reconcile_pending_orders(kv, backend=backend)
    writer = csv.writer(sys.stdout)
    writer.writerow(["orderId", "status", "amount"])
    for result in results:
        writer.writerow([result.order_id, result.status.value if result.status else "", result.amount])
    return 1 if any(r.status == PaymentStatus.PENDING for r in results) else 0

if __name__ == "__main__":
    exit_code = asyncio.run(reconcile())
    raise SystemExit(exit_code)
