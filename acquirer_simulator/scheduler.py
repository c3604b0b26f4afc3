# acquirer_simulator/scheduler.py
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from webhook_dispatcher import WebhookDispatcher

from .errors import NotFoundError
from .store import InvoiceStore

logger = logging.getLogger("acquirer.scheduler")


class DelayScheduler:
    """One fire-once asyncio task per invoice.

    Tasks live in ``_tasks`` until they finish. There is no cancel API;
    ``shutdown`` drops whatever is still waiting.
    """

    def __init__(self, store: InvoiceStore, dispatcher: WebhookDispatcher):
        self.store = store
        self.dispatcher = dispatcher
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def arm(self, invoice_id: str, delay_ms: int) -> Optional[asyncio.Task]:
        if invoice_id in self._tasks:
            logger.warning(f"Timer for invoice {invoice_id} already armed")
            return None
        loop = asyncio.get_running_loop()
        # create_task never runs the coroutine inline, even with delay_ms == 0
        task = loop.create_task(self._fire(invoice_id, delay_ms), name=f"emit-{invoice_id}")
        self._tasks[invoice_id] = task
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        invoice_id = task.get_name()[len("emit-"):]
        self._tasks.pop(invoice_id, None)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Webhook task for invoice {invoice_id} crashed: {exc!r}", exc_info=exc)

    async def _fire(self, invoice_id: str, delay_ms: int) -> None:
        await asyncio.sleep(delay_ms / 1000)
        try:
            invoice = self.store.get(invoice_id)
            updated = self.store.mark_emitted(invoice_id, invoice.emit_status, datetime.now(timezone.utc))
        except NotFoundError:
            logger.warning(f"Invoice {invoice_id} not found when emitting webhook")
            return
        if updated is None:
            return
        logger.info(f"Invoice {invoice_id} -> {updated.status}")
        await self.dispatcher.dispatch(updated)

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Abandoned {len(tasks)} pending webhook timer(s)")
        self._tasks.clear()
