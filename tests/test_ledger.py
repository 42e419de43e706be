"""Tests for the in-memory orders, complaints and call log."""

from __future__ import annotations

import threading

import pytest
from pydantic import ValidationError

from pharmacy_voice.services.ledger import CallLog, FulfillmentLedger, IdGenerator


def _order_fields(**overrides):
    fields = dict(product_name="Paracetamol 500mg", quantity=2, unit_price=10, total_price=20)
    fields.update(overrides)
    return fields


class TestIdGenerator:
    def test_prefix(self):
        assert IdGenerator("ORD").next_id().startswith("ORD-")

    def test_rapid_ids_are_unique(self):
        gen = IdGenerator("ORD")
        ids = [gen.next_id() for _ in range(1000)]
        assert len(set(ids)) == 1000

    def test_unique_across_threads(self):
        gen = IdGenerator("CMP")
        ids: list[str] = []
        lock = threading.Lock()

        def worker():
            local = [gen.next_id() for _ in range(200)]
            with lock:
                ids.extend(local)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(set(ids)) == 1000


class TestFulfillmentLedger:
    def test_create_order_defaults(self):
        ledger = FulfillmentLedger()
        order = ledger.create_order(**_order_fields())
        assert order.order_id.startswith("ORD-")
        assert order.status == "pending"
        assert order.created_at
        assert ledger.orders == [order]

    def test_order_quantity_must_be_positive(self):
        ledger = FulfillmentLedger()
        with pytest.raises(ValidationError):
            ledger.create_order(**_order_fields(quantity=0))
        assert ledger.orders == []

    def test_complaint_defaults(self):
        ledger = FulfillmentLedger()
        complaint = ledger.log_complaint(description="Late delivery")
        assert complaint.complaint_id.startswith("CMP-")
        assert complaint.status == "open"
        assert complaint.complaint_type == "general"

    def test_recent_returns_last_n_in_order(self):
        ledger = FulfillmentLedger()
        orders = [ledger.create_order(**_order_fields()) for _ in range(5)]
        assert ledger.recent_orders(2) == orders[-2:]
        assert ledger.recent_orders(50) == orders

    def test_orders_returns_a_copy(self):
        ledger = FulfillmentLedger()
        ledger.create_order(**_order_fields())
        ledger.orders.clear()
        assert len(ledger.orders) == 1


class TestCallLog:
    def test_append_and_len(self):
        log = CallLog()
        entry = log.append("call_started", "call_1", {"x": 1})
        assert len(log) == 1
        assert entry.event == "call_started"
        assert entry.call_id == "call_1"
        assert entry.timestamp

    def test_recent_limit(self):
        log = CallLog()
        for i in range(30):
            log.append("unknown", f"c{i}")
        recent = log.recent(20)
        assert len(recent) == 20
        assert recent[0].call_id == "c10"
        assert recent[-1].call_id == "c29"
