"""Tests for InvoiceStore: validation, defaults, lookups and the single status transition."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from acquirer_simulator.errors import NotFoundError, ValidationError
from acquirer_simulator.models import MAX_EMIT_AFTER_MS, InvoiceCreate
from acquirer_simulator.store import InvoiceStore


def _body(**overrides):
    body = {"amount": 500, "webhook_url": "https://merchant.test/hook", "emit_status": "failed"}
    body.update(overrides)
    return body


class TestCreate:

    def test_defaults_applied(self, store):
        inv = store.create(_body())
        assert inv.status == "created"
        assert inv.currency == "BRL"
        assert inv.emit_after_ms == 5000
        assert inv.metadata == {}
        assert inv.emitted_at is None
        assert inv.created_at.tzinfo is not None

    def test_configured_defaults(self):
        store = InvoiceStore(default_currency="USD", default_emit_after_ms=250)
        inv = store.create(_body())
        assert inv.currency == "USD"
        assert inv.emit_after_ms == 250

    def test_explicit_zero_delay_is_kept(self, store):
        assert store.create(_body(emit_after_ms=0)).emit_after_ms == 0

    def test_accepts_model(self, store):
        spec = InvoiceCreate(amount=1, webhook_url="http://a/b", emit_status="chargeback")
        assert store.create(spec).emit_status == "chargeback"

    def test_ids_unique(self, store):
        ids = {store.create(_body()).id for _ in range(50)}
        assert len(ids) == 50
        assert len(store) == 50

    def test_metadata_echoed(self, store):
        meta = {"order_id": "o-1", "nested": {"a": [1, 2]}}
        assert store.create(_body(metadata=meta)).metadata == meta

    def test_null_metadata_becomes_empty(self, store):
        assert store.create(_body(metadata=None)).metadata == {}

    @pytest.mark.parametrize("field", ["amount", "webhook_url", "emit_status"])
    def test_missing_required_field(self, store, field):
        body = _body()
        del body[field]
        with pytest.raises(ValidationError) as exc:
            store.create(body)
        assert any(d["field"] == field for d in exc.value.details)
        assert len(store) == 0

    @pytest.mark.parametrize("overrides", [
        {"amount": -1},
        {"amount": "100"},
        {"amount": 1.5},
        {"emit_status": "created"},
        {"emit_status": "approved"},
        {"webhook_url": "ftp://merchant.test/hook"},
        {"webhook_url": "/relative/path"},
        {"webhook_url": "http://"},
        {"emit_after_ms": -5},
        {"emit_after_ms": MAX_EMIT_AFTER_MS + 1},
        {"emit_after_ms": 10**400},
        {"currency": ""},
        {"metadata": ["not", "a", "map"]},
        {"metadata": {"score": float("nan")}},
        {"metadata": {"nested": {"limit": float("inf")}}},
        {"metadata": {"items": [1.0, float("-inf")]}},
    ])
    def test_rejects_bad_fields(self, store, overrides):
        with pytest.raises(ValidationError):
            store.create(_body(**overrides))
        assert len(store) == 0

    def test_longest_delay_accepted(self, store):
        assert store.create(_body(emit_after_ms=MAX_EMIT_AFTER_MS)).emit_after_ms == MAX_EMIT_AFTER_MS

    def test_finite_floats_in_metadata_accepted(self, store):
        assert store.create(_body(metadata={"rate": 0.25})).metadata == {"rate": 0.25}

    def test_rejects_non_object(self, store):
        with pytest.raises(ValidationError):
            store.create(["amount", 1])


class TestGet:

    def test_unknown_id(self, store):
        with pytest.raises(NotFoundError) as exc:
            store.get("nope")
        assert exc.value.error == "invoice_not_found"

    def test_returns_copy(self, store):
        inv = store.create(_body(metadata={"k": "v"}))
        got = store.get(inv.id)
        got.metadata["k"] = "changed"
        got.status = "paid"
        again = store.get(inv.id)
        assert again.metadata == {"k": "v"}
        assert again.status == "created"


class TestMarkEmitted:

    def test_transition_once(self, store):
        inv = store.create(_body())
        now = datetime.now(timezone.utc)
        updated = store.mark_emitted(inv.id, "failed", now)
        assert updated.status == "failed"
        assert updated.emitted_at == now
        assert store.get(inv.id).status == "failed"

    def test_second_call_is_noop(self, store):
        inv = store.create(_body())
        now = datetime.now(timezone.utc)
        assert store.mark_emitted(inv.id, "failed", now) is not None
        assert store.mark_emitted(inv.id, "paid", now) is None
        assert store.get(inv.id).status == "failed"

    def test_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            store.mark_emitted("missing", "paid", datetime.now(timezone.utc))

    def test_only_own_emit_status_allowed(self, store):
        inv = store.create(_body(emit_status="failed"))
        with pytest.raises(ValidationError):
            store.mark_emitted(inv.id, "paid", datetime.now(timezone.utc))
        current = store.get(inv.id)
        assert current.status == "created"
        assert current.emitted_at is None
        # the legal transition is still available afterwards
        assert store.mark_emitted(inv.id, "failed", datetime.now(timezone.utc)).status == "failed"

    def test_non_terminal_status_rejected(self, store):
        inv = store.create(_body())
        with pytest.raises(ValidationError):
            store.mark_emitted(inv.id, "created", datetime.now(timezone.utc))
        assert store.get(inv.id).status == "created"

    def test_concurrent_calls_only_one_wins(self, store):
        inv = store.create(_body())
        now = datetime.now(timezone.utc)
        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(lambda _: store.mark_emitted(inv.id, "failed", now), range(64)))
        assert sum(r is not None for r in results) == 1
