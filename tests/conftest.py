"""Shared fixtures for the fake acquirer test suite."""

from __future__ import annotations

import time
from typing import Callable

import pytest
from fastapi.testclient import TestClient

from acquirer_simulator.app import create_app
from acquirer_simulator.config import Settings
from acquirer_simulator.service import AcquirerService
from acquirer_simulator.store import InvoiceStore
from webhook_dispatcher import WebhookDispatcher

SECRET = "test_secret"


class RecordingDispatcher(WebhookDispatcher):
    """Dispatcher that records what it would have POSTed instead of using the network."""

    def __init__(self, secret: str = SECRET, fail_with: Exception | None = None):
        super().__init__(secret, timeout=1.0)
        self.sent: list[tuple[str, bytes, dict]] = []
        self.fail_with = fail_with

    async def start(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def _post(self, url, body, headers):
        self.sent.append((url, body, dict(headers)))
        if self.fail_with is not None:
            raise self.fail_with
        return 200


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture()
def settings() -> Settings:
    return Settings(webhook_secret=SECRET, webhook_timeout=1.0)


@pytest.fixture()
def store() -> InvoiceStore:
    return InvoiceStore()


@pytest.fixture()
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture()
def service(settings: Settings, dispatcher: RecordingDispatcher) -> AcquirerService:
    return AcquirerService(settings, dispatcher=dispatcher)


@pytest.fixture()
def client(settings: Settings, service: AcquirerService):
    app = create_app(settings, service)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def invoice_body() -> dict:
    return {
        "amount": 10000,
        "currency": "BRL",
        "webhook_url": "http://x/wh",
        "emit_after_ms": 100,
        "emit_status": "paid",
    }
