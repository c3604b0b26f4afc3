# acquirer_simulator/store.py
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

import pydantic

from .config import DEFAULT_CURRENCY, DEFAULT_EMIT_AFTER_MS
from .errors import NotFoundError, ValidationError
from .models import EMIT_STATUSES, Invoice, InvoiceCreate

logger = logging.getLogger("acquirer.store")


def validation_details(exc: pydantic.ValidationError) -> list:
    return [
        {"field": ".".join(str(p) for p in err["loc"]) or "body", "message": err["msg"]}
        for err in exc.errors()
    ]


class InvoiceStore:
    """In-memory invoices keyed by id.

    Each invoice gets its own lock when it is inserted, so ``mark_emitted``
    on one invoice never waits on another. Readers always receive copies.
    """

    def __init__(self, default_currency: str = DEFAULT_CURRENCY,
                 default_emit_after_ms: int = DEFAULT_EMIT_AFTER_MS):
        self.default_currency = default_currency
        self.default_emit_after_ms = default_emit_after_ms
        self._invoices: Dict[str, Invoice] = {}
        self._locks: Dict[str, threading.Lock] = {}

    def __len__(self) -> int:
        return len(self._invoices)

    def __contains__(self, invoice_id: object) -> bool:
        return invoice_id in self._invoices

    def create(self, spec: Union[InvoiceCreate, Mapping[str, Any]]) -> Invoice:
        if not isinstance(spec, InvoiceCreate):
            if not isinstance(spec, Mapping):
                raise ValidationError("Request body must be a JSON object")
            try:
                spec = InvoiceCreate.model_validate(dict(spec))
            except pydantic.ValidationError as e:
                raise ValidationError("Invalid invoice", validation_details(e)) from e

        invoice = Invoice(
            id=str(uuid.uuid4()),
            amount=spec.amount,
            currency=spec.currency or self.default_currency,
            webhook_url=spec.webhook_url,
            emit_after_ms=self.default_emit_after_ms if spec.emit_after_ms is None else spec.emit_after_ms,
            emit_status=spec.emit_status,
            created_at=datetime.now(timezone.utc),
            metadata=dict(spec.metadata),
        )
        # lock first: an id visible in _invoices always has its lock
        self._locks[invoice.id] = threading.Lock()
        self._invoices[invoice.id] = invoice
        logger.info(f"Invoice {invoice.id} created: amount={invoice.amount} {invoice.currency}, "
                    f"emit {invoice.emit_status} after {invoice.emit_after_ms}ms")
        return invoice.model_copy(deep=True)

    def get(self, invoice_id: str) -> Invoice:
        invoice = self._invoices.get(invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return invoice.model_copy(deep=True)

    def mark_emitted(self, invoice_id: str, status: str, emitted_at: datetime) -> Optional[Invoice]:
        """Move an invoice from ``created`` to its own ``emit_status``.

        Returns the updated invoice, or None when it was already emitted.
        """
        if status not in EMIT_STATUSES:
            raise ValidationError(f"{status!r} is not a terminal status")
        lock = self._locks.get(invoice_id)
        if lock is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")

        with lock:
            invoice = self._invoices[invoice_id]
            if invoice.status != "created":
                logger.error(f"Invoice {invoice_id} already emitted as {invoice.status}, ignoring {status}")
                return None
            if status != invoice.emit_status:
                raise ValidationError(f"Invoice {invoice_id} can only move to {invoice.emit_status}, not {status}")
            updated = invoice.model_copy(update={"status": status, "emitted_at": emitted_at})
            self._invoices[invoice_id] = updated
        return updated.model_copy(deep=True)
