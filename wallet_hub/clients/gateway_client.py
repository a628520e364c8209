from decimal import Decimal
from typing import Optional

from pydantic import ValidationError as SchemaError

from wallet_hub.config import GatewayId, check_status_function_map, create_payment_function_map
from wallet_hub.contracts.contracts import (
    CheckStatusRequest,
    CheckStatusResponse,
    CreatePaymentRequest,
    CreatePaymentResponse,
)
from wallet_hub.errors import ApplicationError, UnexpectedError, WalletHubError, error_message
from wallet_hub.helpers import BackendClient, SingleFlight, backend_client, gateway_flights
from wallet_hub.logging_config import get_logger
from wallet_hub.schemas.app_schemas import InitiateResult, PaymentOrder, PaymentStatus, StatusReport
from wallet_hub.validation import validate_amount

logger = get_logger(__name__)


class GatewayClient:
    """
    Initiates payments (and, where the gateway supports it, checks their status)
    for one payment gateway.

    ``initiate`` never raises: validation, transport, application and unexpected
    failures all come back as ``InitiateResult(success=False, error=...)``.
    Persisting the order is the caller's job.
    """

    def __init__(
        self,
        gateway_id: GatewayId,
        backend: BackendClient | None = None,
        flights: SingleFlight | None = None,
        scope: str | None = None,
    ):
        self.gateway_id = gateway_id
        self.backend = backend or backend_client
        self.flights = flights or gateway_flights
        self.flight_key = f"{scope}:{gateway_id.value}" if scope else gateway_id.value
        self.is_checking_status = False

    @property
    def is_busy(self) -> bool:
        return self.flights.is_active(self.flight_key)

    @property
    def supports_status_check(self) -> bool:
        return self.gateway_id in check_status_function_map

    async def initiate(self, amount, access_token: str | None = None) -> InitiateResult:
        try:
            value = validate_amount(amount, self.gateway_id)
            async with self.flights.guard(self.flight_key):
                response = await self._create_payment(value, access_token)
        except WalletHubError as exc:
            logger.warning(
                "Payment initiation failed: gateway=%s amount=%s error_type=%s error=%s",
                self.gateway_id.value,
                amount,
                type(exc).__name__,
                exc.message,
            )
            return InitiateResult(success=False, error=error_message(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Payment initiation raised: gateway=%s amount=%s", self.gateway_id.value, amount)
            return InitiateResult(success=False, error=error_message(UnexpectedError(str(exc) or None)))

        order = None
        if response.order_id:
            order = PaymentOrder(orderId=response.order_id, gatewayId=self.gateway_id, amount=value)
        logger.info(
            "Payment initiated: gateway=%s order_id=%s amount=%s",
            self.gateway_id.value,
            response.order_id,
            value,
        )
        return InitiateResult(
            success=True,
            payment_url=response.payment_url,
            order_id=response.order_id,
            order=order,
        )

    async def _create_payment(self, amount: Decimal, access_token: str | None) -> CreatePaymentResponse:
        request = CreatePaymentRequest.from_amount(amount)
        payload = await self.backend.invoke(
            create_payment_function_map[self.gateway_id],
            request.model_dump(),
            access_token,
        )
        try:
            response = CreatePaymentResponse.model_validate(payload)
        except SchemaError as exc:
            raise ApplicationError("Malformed response from backend") from exc
        if not response.success or not response.payment_url:
            raise ApplicationError(response.error)
        return response

    async def check_status(self, order_id: str, access_token: str | None = None) -> Optional[StatusReport]:
        """
        Best-effort status lookup. Returns None when the gateway has no status
        endpoint or the lookup fails for any reason.
        """
        function_name = check_status_function_map.get(self.gateway_id)
        if not order_id or function_name is None:
            return None
        self.is_checking_status = True
        try:
            payload = await self.backend.invoke(
                function_name,
                CheckStatusRequest(order_id=order_id).model_dump(),
                access_token,
            )
            response = CheckStatusResponse.model_validate({"order_id": order_id, **payload})
            if not response.success:
                raise ApplicationError(response.error or response.message or "Status check failed")
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Status check failed: gateway=%s order_id=%s error=%s",
                self.gateway_id.value,
                order_id,
                error_message(exc),
            )
            return None
        finally:
            self.is_checking_status = False

        return StatusReport(
            order_id=response.order_id,
            status=PaymentStatus.from_provider(response.status),
            raw_status=response.status,
            amount=response.amount,
            transaction_id=response.transaction_id or None,
            message=response.message,
            payload=payload,
        )

