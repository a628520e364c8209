import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Set

import httpx

from wallet_hub.config import settings
from wallet_hub.errors import ApplicationError, GatewayBusyError, RequestTimeoutError, TransportError
from wallet_hub.logging_config import get_logger

logger = get_logger(__name__)


def _error_from_body(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Backend returned HTTP {response.status_code}"


class BackendClient:
    """
    Thin async client for the remote function host.

    Every call is ``POST {base_url}/{function_name}`` with a JSON body and is
    bounded by a hard timeout. Nothing is retried here.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        base_url = base_url or str(settings.backend_base_url)
        self.api_key = api_key if api_key is not None else settings.backend_api_key
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.request_timeout_seconds
        self.client = httpx.AsyncClient(base_url=base_url, timeout=self.timeout_seconds, transport=transport)

    def _headers(self, access_token: str | None) -> dict:
        headers = {"Accept": "application/json"}
        token = access_token or settings.bearer_token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if self.api_key:
            headers["apikey"] = self.api_key
        return headers

    async def invoke(self, function_name: str, body: dict, access_token: str | None = None) -> dict:
        try:
            return await asyncio.wait_for(
                self._invoke(function_name, body, access_token),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise RequestTimeoutError(self.timeout_seconds) from exc

    async def _invoke(self, function_name: str, body: dict, access_token: str | None) -> dict:
        try:
            response = await self.client.post(function_name, json=body, headers=self._headers(access_token))
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(self.timeout_seconds) from exc
        except httpx.RequestError as exc:
            # Surface network/DNS errors as a transport failure.
            raise TransportError(f"Failed to reach payment backend: {exc}") from exc
        logger.info("Backend response: function=%s status=%s", function_name, response.status_code)
        if response.status_code >= 400:
            raise TransportError(_error_from_body(response), status_code=response.status_code)
        try:
            payload = response.json()
        except ValueError as exc:
            raise ApplicationError("Malformed response from backend") from exc
        if not isinstance(payload, dict):
            raise ApplicationError("Malformed response from backend")
        return payload

    async def aclose(self) -> None:
        await self.client.aclose()


class SingleFlight:
    """At most one guarded operation per key at a time; a second caller is rejected, not queued."""

    def __init__(self) -> None:
        self._in_flight: Set[str] = set()

    def is_active(self, key: str) -> bool:
        return key in self._in_flight

    @asynccontextmanager
    async def guard(self, key: str) -> AsyncIterator[None]:
        if key in self._in_flight:
            raise GatewayBusyError()
        self._in_flight.add(key)
        try:
            yield
        finally:
            self._in_flight.discard(key)


backend_client = BackendClient()
gateway_flights = SingleFlight()
