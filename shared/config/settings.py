"""
Runtime settings for the external integrations.

Values come from the environment (a local .env is honoured). Adapters receive
a Settings instance at construction time instead of reading globals, so tests
can build them with fake credentials.
"""
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env(*names: str, default: str = "") -> str:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


@dataclass(frozen=True)
class Settings:
    razorpay_key_id: str = field(
        default_factory=lambda: _env("RAZORPAY_KEY_ID", "NEXT_PUBLIC_RAZORPAY_KEY_ID")
    )
    razorpay_key_secret: str = field(
        default_factory=lambda: _env("RAZORPAY_KEY_SECRET", "NEXT_PUBLIC_RAZORPAY_KEY_SECRET")
    )
    razorpay_api_url: str = field(
        default_factory=lambda: _env("RAZORPAY_API_URL", default="https://api.razorpay.com/v1")
    )
    currency: str = field(default_factory=lambda: _env("ORDER_CURRENCY", default="INR"))

    shiprocket_email: str = field(
        default_factory=lambda: _env("SHIPROCKET_EMAIL", "NEXT_PUBLIC_SHIPROCKET_EMAIL")
    )
    shiprocket_password: str = field(
        default_factory=lambda: _env("SHIPROCKET_PASSWORD", "NEXT_PUBLIC_SHIPROCKET_PASSWORD")
    )
    shiprocket_api_url: str = field(
        default_factory=lambda: _env(
            "SHIPROCKET_API_URL", default="https://apiv2.shiprocket.in/v1/external"
        )
    )
    pickup_location: str = field(
        default_factory=lambda: _env("SHIPROCKET_PICKUP_LOCATION", default="Primary")
    )

    http_timeout: float = field(
        default_factory=lambda: float(_env("INTEGRATION_HTTP_TIMEOUT", default="15.0"))
    )


def get_settings() -> Settings:
    return Settings()
