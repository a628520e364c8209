from pydantic import ValidationError as SchemaError

from wallet_hub.config import WALLET_FUNCTION
from wallet_hub.contracts.contracts import WalletServerRequest, WalletServerResponse
from wallet_hub.errors import ApplicationError, UnexpectedError, WalletHubError, error_message
from wallet_hub.helpers import BackendClient, backend_client
from wallet_hub.logging_config import get_logger, mask_card_number
from wallet_hub.schemas.app_schemas import ActionResult, SaveBankCardAction, WalletAction

logger = get_logger(__name__)


def _describe(action: WalletAction) -> str:
    if isinstance(action, SaveBankCardAction):
        return f"card={mask_card_number(action.cardNumber)}"
    amount = getattr(action, "amount", None)
    return f"amount={amount}" if amount is not None else ""


class WalletDispatcher:
    """
    Single call point for every ledger-affecting action.

    All actions go to the wallet function as ``{"action": <tag>, ...fields}``.
    Transport failures, ``error``-bearing payloads and unexpected exceptions all
    come back as ``ActionResult(ok=False, error=...)``.
    """

    def __init__(self, backend: BackendClient | None = None):
        self.backend = backend or backend_client
        self._in_flight = 0

    @property
    def is_busy(self) -> bool:
        return self._in_flight > 0

    async def dispatch(self, action: WalletAction, access_token: str | None = None) -> ActionResult:
        logger.info("Dispatching wallet action=%s %s", action.action, _describe(action))
        self._in_flight += 1
        try:
            response = await self._call(action, access_token)
        except WalletHubError as exc:
            logger.warning(
                "Wallet action failed: action=%s error_type=%s error=%s",
                action.action,
                type(exc).__name__,
                exc.message,
            )
            return ActionResult(ok=False, error=error_message(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Wallet action raised: action=%s", action.action)
            return ActionResult(ok=False, error=error_message(UnexpectedError(str(exc) or None)))
        finally:
            self._in_flight -= 1

        logger.info("Wallet action succeeded: action=%s transaction_id=%s", action.action, response.transactionId)
        return ActionResult(
            ok=True,
            transactionId=response.transactionId,
            newBalance=response.newBalance,
            amount=response.amount,
            message=response.message,
            bankCard=response.bankCard.model_dump(exclude_none=True) if response.bankCard else None,
        )

    async def _call(self, action: WalletAction, access_token: str | None) -> WalletServerResponse:
        request = WalletServerRequest.from_action(action)
        payload = await self.backend.invoke(
            WALLET_FUNCTION,
            request.model_dump(mode="json", exclude_none=True),
            access_token,
        )
        try:
            response = WalletServerResponse.model_validate(payload)
        except SchemaError as exc:
            raise ApplicationError("Malformed response from backend") from exc
        if response.error:
            raise ApplicationError(response.error)
        if response.success is False:
            raise ApplicationError(response.message or "Wallet request failed")
        return response
