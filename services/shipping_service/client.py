"""
Shiprocket HTTP client.

Thin wrapper over the courier REST API: bearer-token login with a 24h cache,
pickup location lookup, adhoc order creation and cancellation. It raises
ShiprocketError on failure; retry/degradation policy belongs to the
fulfillment adapter, not here.
"""
import time
from typing import Any, Callable

import httpx
import structlog

from shared.config.settings import Settings

logger = structlog.get_logger(__name__)

TOKEN_TTL_SECONDS = 24 * 60 * 60
WRONG_PICKUP_MARKER = "Wrong Pickup location"


class ShiprocketError(Exception):
    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class WrongPickupLocationError(ShiprocketError):
    """The courier rejected the pickup location and listed the valid ones."""

    def __init__(self, valid_locations: list[dict], status_code: int | None = None, body: Any = None):
        self.valid_locations = valid_locations
        super().__init__(WRONG_PICKUP_MARKER, status_code=status_code, body=body)


def location_name(location: dict) -> str | None:
    return location.get("pickup_location") or location.get("name")


def _suggested_locations(body: Any) -> list[dict] | None:
    """Valid locations listed in a wrong-pickup-location answer, if any."""
    if not isinstance(body, dict):
        return None
    if WRONG_PICKUP_MARKER not in str(body.get("message", "")):
        return None
    data = body.get("data")
    locations = data.get("data") if isinstance(data, dict) else None
    return locations if isinstance(locations, list) else []


class ShiprocketClient:

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings
        self._transport = transport
        self._clock = clock
        self._token: str | None = None
        self._token_expiry: float = 0.0

    def _client(self, headers: dict | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._settings.shiprocket_api_url,
            headers=headers,
            timeout=self._settings.http_timeout,
            transport=self._transport,
        )

    async def _get_token(self) -> str:
        if self._token and self._token_expiry > self._clock():
            return self._token

        if not self._settings.shiprocket_email or not self._settings.shiprocket_password:
            raise ShiprocketError("Shiprocket credentials not properly configured")

        async with self._client() as client:
            resp = await client.post(
                "/auth/login",
                json={
                    "email": self._settings.shiprocket_email,
                    "password": self._settings.shiprocket_password,
                },
            )
        if resp.status_code >= 400:
            raise ShiprocketError(
                "Shiprocket authentication failed", status_code=resp.status_code, body=resp.text
            )
        token = resp.json().get("token")
        if not token:
            raise ShiprocketError("Failed to obtain Shiprocket authentication token")

        self._token = token
        self._token_expiry = self._clock() + TOKEN_TTL_SECONDS
        logger.info("shiprocket_token_refreshed")
        return token

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        token = await self._get_token()
        async with self._client(headers={"Authorization": f"Bearer {token}"}) as client:
            return await client.request(method, path, **kwargs)

    async def get_pickup_locations(self) -> list[dict]:
        resp = await self._request("GET", "/settings/company/pickup")
        body = resp.json() if resp.content else {}
        data = body.get("data") if isinstance(body, dict) else None

        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            if isinstance(data.get("shipping_address"), list):
                return data["shipping_address"]
            if isinstance(data.get("data"), list):
                return data["data"]
        if resp.status_code >= 400:
            raise ShiprocketError(
                "Failed to fetch pickup locations", status_code=resp.status_code, body=body
            )
        return []

    async def create_order(self, payload: dict) -> dict:
        resp = await self._request("POST", "/orders/create/adhoc", json=payload)
        try:
            body = resp.json()
        except ValueError:
            body = resp.text

        # The pickup-location rejection comes back both as 2xx and as 422
        suggested = _suggested_locations(body)
        if suggested is not None:
            raise WrongPickupLocationError(suggested, status_code=resp.status_code, body=body)

        if resp.status_code >= 400:
            message = body.get("message") if isinstance(body, dict) else None
            raise ShiprocketError(
                message or f"Shiprocket request failed ({resp.status_code})",
                status_code=resp.status_code,
                body=body,
            )
        if not isinstance(body, dict):
            raise ShiprocketError("Shiprocket returned an invalid response", body=body)
        return body

    async def cancel_order(self, remote_order_id: str) -> dict:
        resp = await self._request("POST", "/orders/cancel", json={"ids": [remote_order_id]})
        if resp.status_code >= 400:
            raise ShiprocketError(
                "Failed to cancel Shiprocket order", status_code=resp.status_code, body=resp.text
            )
        return resp.json() if resp.content else {}
