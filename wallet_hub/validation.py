from decimal import Decimal, InvalidOperation

from wallet_hub.config import GatewayId, settings
from wallet_hub.errors import ValidationError


def validate_amount(amount, gateway_id: GatewayId) -> Decimal:
    """
    Check a deposit amount before any network call and return it as a Decimal.

    CoreX requires at least ``settings.corex_min_amount``; IMB only requires a
    positive amount. The backend re-validates independently.
    """
    if isinstance(amount, bool):
        raise ValidationError()
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError() from exc
    if not value.is_finite() or value <= 0:
        raise ValidationError()
    if gateway_id == GatewayId.COREX and value < settings.corex_min_amount:
        raise ValidationError()
    return value
