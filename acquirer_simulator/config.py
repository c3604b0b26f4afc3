# acquirer_simulator/config.py
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .models import MAX_EMIT_AFTER_MS

DEFAULT_CURRENCY = "BRL"
DEFAULT_EMIT_AFTER_MS = 5_000
DEFAULT_CHECKOUT_BASE_URL = "https://checkout.local/invoice"


@dataclass(frozen=True)
class Settings:
    port: int = 8080
    webhook_secret: str = "dev_secret"
    log_level: str = "INFO"
    default_currency: str = DEFAULT_CURRENCY
    default_emit_after_ms: int = DEFAULT_EMIT_AFTER_MS
    webhook_timeout: float = 5.0
    checkout_base_url: str = DEFAULT_CHECKOUT_BASE_URL


def load_settings() -> Settings:
    """Read settings from the environment (and a .env file if there is one)."""
    load_dotenv()
    default_emit_after_ms = int(os.getenv("ACQ_DEFAULT_EMIT_AFTER_MS", str(DEFAULT_EMIT_AFTER_MS)))
    if not 0 <= default_emit_after_ms <= MAX_EMIT_AFTER_MS:
        raise ValueError(f"ACQ_DEFAULT_EMIT_AFTER_MS must be between 0 and {MAX_EMIT_AFTER_MS}")
    return Settings(
        port=int(os.getenv("PORT", "8080")),
        webhook_secret=os.getenv("ACQ_WEBHOOK_SECRET", "dev_secret"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        default_currency=os.getenv("ACQ_DEFAULT_CURRENCY", DEFAULT_CURRENCY),
        default_emit_after_ms=default_emit_after_ms,
        webhook_timeout=float(os.getenv("ACQ_WEBHOOK_TIMEOUT", "5")),
        checkout_base_url=os.getenv("ACQ_CHECKOUT_BASE_URL", DEFAULT_CHECKOUT_BASE_URL).rstrip("/"),
    )
