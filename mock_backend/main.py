import logging
import uuid
from typing import Dict, Optional

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("mock-backend")

MIN_DEPOSIT = 50
MIN_WITHDRAWAL = 110
COREX_MIN_AMOUNT = 1

app = FastAPI(title="Mock Payment Backend")

ORDERS: Dict[str, dict] = {}
BALANCES: Dict[str, float] = {}
BANK_CARDS: Dict[str, dict] = {}
REDEEMED: Dict[str, set] = {}
REDEEM_CODES: Dict[str, dict] = {
    "WELCOME50": {"amount": 50.0, "expired": False},
    "OLDPROMO": {"amount": 20.0, "expired": True},
}


class CreatePayment(BaseModel):
    amount: float


class CheckStatus(BaseModel):
    order_id: str


class SettleOrder(BaseModel):
    status: str
    transaction_id: Optional[str] = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _user(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


def _create_order(gateway: str, user: str, amount: float) -> dict:
    order_id = f"{gateway.upper()}{uuid.uuid4().hex[:12].upper()}"
    ORDERS[order_id] = {"user": user, "gateway": gateway, "amount": amount, "status": "PENDING", "transaction_id": None}
    logger.info("Created order gateway=%s order_id=%s amount=%s", gateway, order_id, amount)
    return {
        "success": True,
        "order_id": order_id,
        "payment_url": f"https://pay.{gateway}.example/checkout/{order_id}",
    }


@app.post("/create-corex-payment")
async def create_corex_payment(body: CreatePayment, authorization: str | None = Header(None)):
    user = _user(authorization)
    if not user:
        return _error(401, "Authorization required")
    if body.amount < COREX_MIN_AMOUNT:
        return {"success": False, "error": f"Minimum deposit is ₹{COREX_MIN_AMOUNT}"}
    return _create_order("corex", user, body.amount)


@app.post("/create-imb-payment")
async def create_imb_payment(body: CreatePayment, authorization: str | None = Header(None)):
    user = _user(authorization)
    if not user:
        return _error(401, "Authorization required")
    if body.amount <= 0:
        return {"success": False, "error": "Invalid amount"}
    return _create_order("imb", user, body.amount)


@app.post("/corex-check-status")
async def corex_check_status(body: CheckStatus, authorization: str | None = Header(None)):
    user = _user(authorization)
    if not user:
        return _error(401, "Authorization required")
    order = ORDERS.get(body.order_id)
    if not order or order["user"] != user:
        return _error(404, "Payment not found")
    response = {
        "success": True,
        "order_id": body.order_id,
        "status": order["status"],
        "amount": order["amount"],
    }
    if order["transaction_id"]:
        response["transaction_id"] = order["transaction_id"]
    if order["status"] == "PENDING":
        response["message"] = "Payment is being processed"
    return response


def _deposit(user: str, body: dict):
    amount = body.get("amount") or 0
    if amount < MIN_DEPOSIT:
        return _error(400, f"Minimum deposit is ₹{MIN_DEPOSIT}")
    utr_id = str(body.get("utrId") or "")
    if len(utr_id) < 6:
        return _error(400, "Invalid UTR ID")
    return {
        "success": True,
        "transactionId": f"TXN{uuid.uuid4().hex[:10].upper()}",
        "message": "Deposit request submitted for review",
    }


def _withdraw(user: str, body: dict):
    amount = body.get("amount") or 0
    if amount < MIN_WITHDRAWAL:
        return _error(400, f"Minimum withdrawal is ₹{MIN_WITHDRAWAL}")
    balance = BALANCES.get(user, 0.0)
    if amount > balance:
        return _error(400, "Insufficient balance")
    if user not in BANK_CARDS:
        return _error(400, "Bank card not linked. Please add bank details first.")
    BALANCES[user] = balance - amount
    return {
        "success": True,
        "transactionId": f"TXN{uuid.uuid4().hex[:10].upper()}",
        "newBalance": BALANCES[user],
        "message": "Withdrawal request submitted",
    }


def _admin_update(user: str, body: dict):
    target = body.get("targetUserId")
    amount = body.get("amount")
    if not target or amount is None or not body.get("reason"):
        return _error(400, "Missing required fields")
    if not user.startswith("admin"):
        return _error(403, "Unauthorized - Admin only")
    balance = BALANCES.get(target, 0.0)
    if amount < 0 and -amount > balance:
        return _error(400, "Cannot debit more than current balance")
    BALANCES[target] = balance + amount
    return {
        "success": True,
        "newBalance": BALANCES[target],
        "message": f"Wallet {'credited' if amount > 0 else 'debited'} successfully",
    }


def _redeem_code(user: str, body: dict):
    code = str(body.get("code") or "").strip().upper()
    if not code:
        return _error(400, "Redeem code required")
    entry = REDEEM_CODES.get(code)
    if not entry:
        return _error(400, "Invalid or inactive code")
    if entry["expired"]:
        return _error(400, "Code has expired")
    if code in REDEEMED.setdefault(user, set()):
        return _error(400, "You have already used this code")
    REDEEMED[user].add(code)
    BALANCES[user] = BALANCES.get(user, 0.0) + entry["amount"]
    return {
        "success": True,
        "amount": entry["amount"],
        "newBalance": BALANCES[user],
        "message": f"₹{entry['amount']:g} added to your wallet",
    }


def _save_bank_card(user: str, body: dict):
    card = body.get("bankCard")
    if not isinstance(card, dict):
        return _error(400, "Bank card details required")
    fields = ("accountHolderName", "cardNumber", "ifscCode", "bankName")
    if not all(card.get(field) for field in fields):
        return _error(400, "All bank card fields are required")
    if user in BANK_CARDS:
        return _error(400, "Bank card already linked. Cannot modify.")
    BANK_CARDS[user] = {
        "id": uuid.uuid4().hex,
        "account_holder_name": card["accountHolderName"],
        "card_number": card["cardNumber"],
        "ifsc_code": card["ifscCode"],
        "bank_name": card["bankName"],
    }
    return {"success": True, "bankCard": BANK_CARDS[user], "message": "Bank details saved"}


WALLET_HANDLERS = {
    "deposit": _deposit,
    "withdraw": _withdraw,
    "admin_update": _admin_update,
    "redeem_code": _redeem_code,
    "save_bank_card": _save_bank_card,
}


@app.post("/wallet-server")
async def wallet_server(request: Request, authorization: str | None = Header(None)):
    user = _user(authorization)
    if not user:
        return _error(401, "Unauthorized")
    body = await request.json()
    handler = WALLET_HANDLERS.get(body.get("action"))
    logger.info("Wallet action=%s user=%s", body.get("action"), user)
    if handler is None:
        return _error(400, "Invalid action")
    return handler(user, body)


@app.post("/_mock/orders/{order_id}/status")
async def settle_order(order_id: str, body: SettleOrder):
    order = ORDERS.get(order_id)
    if not order:
        return _error(404, "Payment not found")
    order["status"] = body.status
    order["transaction_id"] = body.transaction_id
    logger.info("Settled order order_id=%s status=%s", order_id, body.status)
    return {"order_id": order_id, "status": body.status}


@app.post("/_mock/reset")
async def reset():
    """
    Dangerous: clears all mock orders, balances and bank cards.
    """
    ORDERS.clear()
    BALANCES.clear()
    BANK_CARDS.clear()
    REDEEMED.clear()
    logger.warning("Cleared mock backend state via admin endpoint")
    return {"status": "cleared"}
