import uuid

from fastapi import Cookie, Depends, FastAPI, HTTPException, Response
from fastapi.responses import JSONResponse, RedirectResponse

from wallet_hub import models
from wallet_hub.clients.gateway_client import GatewayClient
from wallet_hub.clients.wallet_client import WalletDispatcher
from wallet_hub.config import GatewayId
from wallet_hub.database import SessionLocal, engine
from wallet_hub.deposit_flow import DepositFlow
from wallet_hub.helpers import BackendClient, backend_client
from wallet_hub.logging_config import get_logger
from wallet_hub.schemas.app_schemas import (
    ActionResult,
    InitiatePaymentRequest,
    PendingOrderRecord,
    ReconcileResult,
    WalletActionRequest,
)
from wallet_hub.security import TOKEN_COOKIE, require_bearer_token
from wallet_hub.store import KeyValueStore, PendingOrderStore, SqlKeyValueStore


logger = get_logger(__name__)

models.Base.metadata.create_all(bind=engine)
app = FastAPI(title="Wallet Hub")

SESSION_COOKIE = "wallet_session"
TOKEN_COOKIE_MAX_AGE = 60 * 60


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Closing backend client")
    await backend_client.aclose()


def get_backend_client() -> BackendClient:
    return backend_client


def get_key_value_store() -> KeyValueStore:
    return SqlKeyValueStore(SessionLocal)


def _deposit_flow(gateway: GatewayId, backend: BackendClient, kv: KeyValueStore, scope: str) -> DepositFlow:
    client = GatewayClient(gateway, backend=backend, scope=scope)
    return DepositFlow(client, PendingOrderStore(kv, gateway, scope=scope))


@app.post("/payments/{gateway}/initiate")
async def initiate_payment(
    gateway: GatewayId,
    request: InitiatePaymentRequest,
    access_token: str = Depends(require_bearer_token),
    backend: BackendClient = Depends(get_backend_client),
    kv: KeyValueStore = Depends(get_key_value_store),
    wallet_session: str | None = Cookie(None),
):
    scope = wallet_session or uuid.uuid4().hex
    flow = _deposit_flow(gateway, backend, kv, scope)
    targets: list[str] = []
    result = await flow.redirect_to_payment(request.amount, targets.append, access_token)
    if targets:
        response: Response = RedirectResponse(targets[0], status_code=303)
        response.set_cookie(TOKEN_COOKIE, access_token, max_age=TOKEN_COOKIE_MAX_AGE, httponly=True, samesite="lax")
    else:
        response = JSONResponse({"success": False, "error": result.error})
    response.set_cookie(SESSION_COOKIE, scope, httponly=True, samesite="lax")
    return response


@app.get("/payments/{gateway}/return", response_model=ReconcileResult)
async def payment_return(
    gateway: GatewayId,
    status: str | None = None,
    access_token: str = Depends(require_bearer_token),
    backend: BackendClient = Depends(get_backend_client),
    kv: KeyValueStore = Depends(get_key_value_store),
    wallet_session: str | None = Cookie(None),
):
    if not wallet_session:
        return ReconcileResult(message="No pending payment")
    logger.info("Payment return received: gateway=%s hint=%s", gateway.value, status)
    flow = _deposit_flow(gateway, backend, kv, wallet_session)
    return await flow.resume(status, access_token)


@app.get("/payments/{gateway}/pending", response_model=PendingOrderRecord)
async def get_pending_order(
    gateway: GatewayId,
    kv: KeyValueStore = Depends(get_key_value_store),
    wallet_session: str | None = Cookie(None),
):
    record = PendingOrderStore(kv, gateway, scope=wallet_session).load() if wallet_session else None
    if not record:
        raise HTTPException(status_code=404, detail="no pending order")
    return record


@app.delete("/payments/{gateway}/pending")
async def dismiss_pending_order(
    gateway: GatewayId,
    kv: KeyValueStore = Depends(get_key_value_store),
    wallet_session: str | None = Cookie(None),
):
    if wallet_session:
        PendingOrderStore(kv, gateway, scope=wallet_session).clear()
    return {"status": "cleared"}


@app.post("/wallet/actions", response_model=ActionResult, response_model_exclude_none=True)
async def wallet_action_route(
    request: WalletActionRequest,
    access_token: str = Depends(require_bearer_token),
    backend: BackendClient = Depends(get_backend_client),
):
    return await WalletDispatcher(backend).dispatch(request.root, access_token)


@app.get("/health")
async def health():
    return {"status": "ok"}
