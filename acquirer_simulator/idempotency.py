# acquirer_simulator/idempotency.py
import logging
import threading
from typing import Callable, Dict, Optional, Tuple

from .models import Invoice
from .store import InvoiceStore

logger = logging.getLogger("acquirer.idempotency")


class IdempotencyGuard:
    """Maps Idempotency-Key values to the invoice created by the first request.

    Keys never expire. A key is only bound once ``create_fn`` succeeded, so a
    request rejected by validation does not burn its key.
    """

    def __init__(self, store: InvoiceStore):
        self.store = store
        self._ids: Dict[str, str] = {}
        self._locks: Dict[str, threading.Lock] = {}

    def __len__(self) -> int:
        return len(self._ids)

    def get_or_create(self, key: Optional[str], create_fn: Callable[[], Invoice]) -> Tuple[Invoice, bool]:
        """Return ``(invoice, created)``."""
        if not key:
            return create_fn(), True

        # fast path, no lock needed once the key is bound
        existing_id = self._ids.get(key)
        if existing_id is not None:
            logger.info(f"Idempotency-Key {key!r} replayed, returning invoice {existing_id}")
            return self.store.get(existing_id), False

        # dict.setdefault is atomic, so every racer ends up with the same lock
        lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            existing_id = self._ids.get(key)
            if existing_id is not None:
                logger.info(f"Idempotency-Key {key!r} replayed, returning invoice {existing_id}")
                return self.store.get(existing_id), False
            invoice = create_fn()
            self._ids[key] = invoice.id
        return invoice, True
