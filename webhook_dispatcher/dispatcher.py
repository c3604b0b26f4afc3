# webhook_dispatcher/dispatcher.py
import asyncio
import hashlib
import hmac
import json
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, Optional

import aiohttp

from acquirer_simulator.errors import DeliveryError, NotFoundError
from acquirer_simulator.models import WEBHOOK_EVENT, DeliveryRecord, Invoice

logger = logging.getLogger("webhook_dispatcher")


def format_timestamp(ts: datetime) -> str:
    """UTC, microseconds, trailing Z: 2024-05-01T12:00:00.000000Z"""
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def build_payload(invoice: Invoice, emitted_at: datetime) -> "OrderedDict[str, object]":
    # field order is part of the wire format, receivers re-hash the raw bytes
    return OrderedDict([
        ("event", WEBHOOK_EVENT),
        ("id", invoice.id),
        ("status", invoice.status),
        ("amount", invoice.amount),
        ("currency", invoice.currency),
        ("emitted_at", format_timestamp(emitted_at)),
        ("metadata", invoice.metadata),
    ])


def encode_payload(payload) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def sign(secret: str, body_bytes: bytes) -> str:
    return hmac.new(secret.encode(), body_bytes, hashlib.sha256).hexdigest()


def verify_signature(secret: str, body_bytes: bytes, signature: Optional[str]) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(sign(secret, body_bytes), signature)


class WebhookDispatcher:
    """Signs and POSTs ``invoice.updated`` callbacks. One attempt, no retries."""

    def __init__(self, secret: str, timeout: float = 5.0, session: Optional[aiohttp.ClientSession] = None):
        self.secret = secret
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self.deliveries: Dict[str, DeliveryRecord] = {}

    async def start(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def get_delivery(self, invoice_id: str) -> DeliveryRecord:
        rec = self.deliveries.get(invoice_id)
        if rec is None:
            raise NotFoundError(f"No webhook delivery recorded for invoice {invoice_id}",
                                error="delivery_not_found")
        return rec

    async def _post(self, url: str, body: bytes, headers: Dict[str, str]) -> int:
        if self._session is None:
            await self.start()
        try:
            async with self._session.post(url, data=body, headers=headers, timeout=self.timeout) as resp:
                status = resp.status
        except asyncio.TimeoutError as e:
            raise DeliveryError(f"timed out after {self.timeout.total}s") from e
        except aiohttp.ClientError as e:
            raise DeliveryError(f"{type(e).__name__}: {e}") from e
        if not 200 <= status < 300:
            raise DeliveryError(f"HTTP {status}", status_code=status)
        return status

    async def dispatch(self, invoice: Invoice, emitted_at: Optional[datetime] = None) -> DeliveryRecord:
        emitted_at = emitted_at or invoice.emitted_at or datetime.now(timezone.utc)
        body = encode_payload(build_payload(invoice, emitted_at))
        headers = {
            "Content-Type": "application/json",
            "X-Event": WEBHOOK_EVENT,
            "X-Signature": sign(self.secret, body),
        }
        url = invoice.webhook_url

        logger.info(f"Emitting webhook for {invoice.id} -> {url} status={invoice.status}")
        attempted_at = datetime.now(timezone.utc)
        try:
            code = await self._post(url, body, headers)
        except DeliveryError as e:
            logger.error(f"Webhook delivery failed for {invoice.id} -> {url}: {e.message}")
            rec = DeliveryRecord(invoice_id=invoice.id, url=url, delivered=False,
                                 status_code=e.status_code, error=e.message, attempted_at=attempted_at)
        else:
            logger.info(f"Webhook delivered for {invoice.id}: HTTP {code}")
            rec = DeliveryRecord(invoice_id=invoice.id, url=url, delivered=True,
                                 status_code=code, attempted_at=attempted_at)
        self.deliveries[invoice.id] = rec
        return rec
