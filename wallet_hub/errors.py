"""
Failure taxonomy for gateway and wallet calls.

These exceptions never leave a component boundary: gateway clients and the
wallet dispatcher catch them and fold each one into a single error string with
``error_message``.
"""

DEFAULT_UNEXPECTED_MESSAGE = "Something went wrong. Please try again."


class WalletHubError(Exception):
    default_message = DEFAULT_UNEXPECTED_MESSAGE

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(WalletHubError):
    """Amount rejected locally; no network call was made."""

    default_message = "Invalid amount"


class TransportError(WalletHubError):
    """The remote call could not complete or answered with an HTTP error."""

    default_message = "Failed to reach payment backend"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RequestTimeoutError(TransportError):
    def __init__(self, timeout_seconds: float):
        super().__init__(f"Request timed out after {timeout_seconds:g}s. Please retry.")
        self.timeout_seconds = timeout_seconds


class ApplicationError(WalletHubError):
    """The backend answered, but with a structured failure or a malformed payload."""

    default_message = "Failed to get payment URL"


class GatewayBusyError(ApplicationError):
    default_message = "A payment is already being initiated. Please wait."


class UnexpectedError(WalletHubError):
    pass


def error_message(exc: BaseException) -> str:
    if isinstance(exc, WalletHubError):
        return exc.message
    return str(exc) or DEFAULT_UNEXPECTED_MESSAGE
