"""
Razorpay adapter.

Every failure mode of the remote API (missing credentials, transport errors,
non-2xx answers, malformed bodies) surfaces as PaymentGatewayError so the
order workflow only ever sees the typed taxonomy.
"""
import hashlib
import hmac
import secrets
from typing import Protocol

import httpx
import structlog

from shared.config.settings import Settings
from shared.errors import PaymentGatewayError

from .schemas import PaymentIntent, Refund

logger = structlog.get_logger(__name__)


def to_minor_units(amount: float) -> int:
    """Rupees to paise, rounded to an integer as the gateway requires."""
    return int(round(amount * 100))


def compute_signature(secret: str, intent_id: str, transaction_id: str) -> str:
    message = f"{intent_id}|{transaction_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class PaymentGateway(Protocol):
    async def create_intent(self, amount: int, currency: str, receipt: str) -> PaymentIntent: ...

    async def refund(self, transaction_id: str, amount: int) -> Refund: ...

    def verify_signature(self, intent_id: str, transaction_id: str, signature: str) -> bool: ...


class RazorpayGateway:

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self._settings = settings
        self._transport = transport

    def _ensure_configured(self):
        if not self._settings.razorpay_key_id or not self._settings.razorpay_key_secret:
            logger.error("razorpay_configuration_missing")
            raise PaymentGatewayError("Payment configuration error")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._settings.razorpay_api_url,
            auth=(self._settings.razorpay_key_id, self._settings.razorpay_key_secret),
            timeout=self._settings.http_timeout,
            transport=self._transport,
        )

    async def _post(self, path: str, payload: dict) -> dict:
        self._ensure_configured()
        try:
            async with self._client() as client:
                resp = await client.post(path, json=payload)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "razorpay_request_rejected",
                path=path,
                status_code=e.response.status_code,
                body=e.response.text[:500],
            )
            raise PaymentGatewayError(
                f"Payment gateway rejected the request ({e.response.status_code})",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error("razorpay_unreachable", path=path, error=str(e))
            raise PaymentGatewayError(f"Payment gateway unreachable: {e}") from e
        except ValueError as e:
            raise PaymentGatewayError("Payment gateway returned an invalid response") from e

    async def create_intent(self, amount: int, currency: str, receipt: str) -> PaymentIntent:
        body = await self._post(
            "/orders", {"amount": amount, "currency": currency, "receipt": receipt}
        )
        if not body.get("id"):
            logger.error("razorpay_order_invalid", response=body)
            raise PaymentGatewayError("Failed to create payment order")
        logger.info("razorpay_order_created", intent_id=body["id"], receipt=receipt, amount=amount)
        return PaymentIntent(
            id=body["id"],
            amount=body.get("amount", amount),
            currency=body.get("currency", currency),
            receipt=body.get("receipt", receipt),
            status=body.get("status", "created"),
        )

    async def refund(self, transaction_id: str, amount: int) -> Refund:
        body = await self._post(f"/payments/{transaction_id}/refund", {"amount": amount})
        logger.info("razorpay_refund_created", transaction_id=transaction_id, amount=amount)
        return Refund(
            id=body.get("id", ""),
            payment_id=body.get("payment_id", transaction_id),
            amount=body.get("amount", amount),
            status=body.get("status", "processed"),
        )

    def verify_signature(self, intent_id: str, transaction_id: str, signature: str) -> bool:
        if not self._settings.razorpay_key_secret:
            return False
        expected = compute_signature(self._settings.razorpay_key_secret, intent_id, transaction_id)
        return secrets.compare_digest(expected, str(signature))
