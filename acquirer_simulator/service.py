# acquirer_simulator/service.py
import logging
from typing import Any, Mapping, Optional, Tuple

from webhook_dispatcher import WebhookDispatcher

from .config import Settings
from .idempotency import IdempotencyGuard
from .models import DeliveryRecord, Invoice, InvoiceCreated
from .scheduler import DelayScheduler
from .store import InvoiceStore

logger = logging.getLogger("acquirer.service")


class AcquirerService:
    """Owns every piece of process state. Built once at startup."""

    def __init__(self, settings: Settings, dispatcher: Optional[WebhookDispatcher] = None):
        self.settings = settings
        self.store = InvoiceStore(settings.default_currency, settings.default_emit_after_ms)
        self.idempotency = IdempotencyGuard(self.store)
        self.dispatcher = dispatcher or WebhookDispatcher(settings.webhook_secret, settings.webhook_timeout)
        self.scheduler = DelayScheduler(self.store, self.dispatcher)

    async def startup(self) -> None:
        await self.dispatcher.start()
        logger.info("fake-acquirer ready")

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
        await self.dispatcher.close()

    def create_invoice(self, data: Mapping[str, Any], idempotency_key: Optional[str] = None) -> Tuple[Invoice, bool]:
        def _create() -> Invoice:
            invoice = self.store.create(data)
            self.scheduler.arm(invoice.id, invoice.emit_after_ms)
            return invoice

        return self.idempotency.get_or_create(idempotency_key, _create)

    def get_invoice(self, invoice_id: str) -> Invoice:
        return self.store.get(invoice_id)

    def get_delivery(self, invoice_id: str) -> DeliveryRecord:
        self.store.get(invoice_id)
        return self.dispatcher.get_delivery(invoice_id)

    def checkout_url(self, invoice: Invoice) -> str:
        return f"{self.settings.checkout_base_url}/{invoice.id}"

    def created_view(self, invoice: Invoice) -> InvoiceCreated:
        return InvoiceCreated(
            id=invoice.id,
            status=invoice.status,
            amount=invoice.amount,
            currency=invoice.currency,
            created_at=invoice.created_at,
            webhook_url=invoice.webhook_url,
            checkout_url=self.checkout_url(invoice),
            metadata=invoice.metadata,
        )
