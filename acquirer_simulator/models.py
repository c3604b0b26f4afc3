# acquirer_simulator/models.py
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

EmitStatus = Literal["paid", "failed", "canceled", "expired", "chargeback"]
InvoiceStatus = Literal["created", "paid", "failed", "canceled", "expired", "chargeback"]

EMIT_STATUSES = ("paid", "failed", "canceled", "expired", "chargeback")
WEBHOOK_EVENT = "invoice.updated"
# one day; longer delays make no sense for a load-test double
MAX_EMIT_AFTER_MS = 86_400_000


def _all_finite(value: Any) -> bool:
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, dict):
        return all(_all_finite(v) for v in value.values())
    if isinstance(value, list):
        return all(_all_finite(v) for v in value)
    return True


class InvoiceCreate(BaseModel):
    amount: int = Field(..., ge=0, strict=True)
    # None means "use the configured default"
    currency: Optional[str] = Field(None, min_length=1, max_length=16)
    webhook_url: str
    emit_after_ms: Optional[int] = Field(None, ge=0, le=MAX_EMIT_AFTER_MS, strict=True)
    emit_status: EmitStatus
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("webhook_url")
    @classmethod
    def _check_webhook_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("webhook_url must be an absolute http or https URL")
        return value

    @field_validator("metadata", mode="before")
    @classmethod
    def _null_metadata(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("metadata")
    @classmethod
    def _finite_metadata(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        if not _all_finite(value):
            raise ValueError("metadata must not contain NaN or Infinity")
        return value


class Invoice(BaseModel):
    id: str
    amount: int
    currency: str
    status: InvoiceStatus = "created"
    webhook_url: str
    emit_after_ms: int
    emit_status: EmitStatus
    created_at: datetime
    emitted_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class InvoiceCreated(BaseModel):
    """What POST /invoices answers with."""

    id: str
    status: InvoiceStatus
    amount: int
    currency: str
    created_at: datetime
    webhook_url: str
    checkout_url: str
    metadata: Dict[str, Any]


class DeliveryRecord(BaseModel):
    invoice_id: str
    url: str
    delivered: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    attempted_at: datetime
