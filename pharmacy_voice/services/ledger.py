"""Append-only in-memory records: orders, complaints and the call log.

Everything here is process-lifetime only.  Data is lost on restart, which is
acceptable for the pilot; there is no durable store behind these classes.

Appends are serialised with a ``threading.Lock`` because route handlers may
run the dispatcher in a worker thread.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now().astimezone().isoformat()


class IdGenerator:
    """Produce ``<PREFIX>-<epoch millis>-<seq>`` identifiers.

    The sequence number makes ids unique even when two are generated in the
    same millisecond.
    """

    def __init__(self, prefix: str) -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            seq = next(self._counter)
        return f"{self._prefix}-{int(time.time() * 1000)}-{seq:04d}"


# ── Records ──────────────────────────────────────────────────────────


class Order(BaseModel):
    order_id: str
    created_at: str = Field(default_factory=_now_iso)
    product_name: str
    size_variant: str = ""
    quantity: int = Field(..., ge=1)
    customer_name: str | None = None
    customer_phone: str | None = None
    delivery_address: str | None = None
    is_pwd_senior: bool = False
    unit_price: float
    total_price: float
    status: Literal["pending"] = "pending"


class Complaint(BaseModel):
    complaint_id: str
    created_at: str = Field(default_factory=_now_iso)
    customer_name: str | None = None
    customer_phone: str | None = None
    complaint_type: str = "general"
    description: str = ""
    status: Literal["open"] = "open"


class CallLogEntry(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event: str
    call_id: str
    data: Any = None


# ── Ledgers ──────────────────────────────────────────────────────────


class FulfillmentLedger:
    """Orders and complaints recorded by the tool handlers."""

    def __init__(self) -> None:
        self._orders: list[Order] = []
        self._complaints: list[Complaint] = []
        self._lock = threading.Lock()
        self._order_ids = IdGenerator("ORD")
        self._complaint_ids = IdGenerator("CMP")

    def create_order(self, **fields: Any) -> Order:
        """Build an ``Order`` with a fresh id and append it."""
        order = Order(order_id=self._order_ids.next_id(), **fields)
        with self._lock:
            self._orders.append(order)
        logger.info(
            "Order %s created: %d x %s, total %.2f",
            order.order_id, order.quantity, order.product_name, order.total_price,
        )
        return order

    def log_complaint(self, **fields: Any) -> Complaint:
        """Build a ``Complaint`` with a fresh id and append it."""
        complaint = Complaint(complaint_id=self._complaint_ids.next_id(), **fields)
        with self._lock:
            self._complaints.append(complaint)
        logger.info(
            "Complaint %s logged (type=%s)",
            complaint.complaint_id, complaint.complaint_type,
        )
        return complaint

    @property
    def orders(self) -> list[Order]:
        with self._lock:
            return list(self._orders)

    @property
    def complaints(self) -> list[Complaint]:
        with self._lock:
            return list(self._complaints)

    def recent_orders(self, limit: int) -> list[Order]:
        with self._lock:
            return self._orders[-limit:]

    def recent_complaints(self, limit: int) -> list[Complaint]:
        with self._lock:
            return self._complaints[-limit:]


class CallLog:
    """Every webhook delivery and transfer request, in arrival order."""

    def __init__(self) -> None:
        self._entries: list[CallLogEntry] = []
        self._lock = threading.Lock()

    def append(self, event: str, call_id: str, data: Any = None) -> CallLogEntry:
        entry = CallLogEntry(event=event, call_id=call_id, data=data)
        with self._lock:
            self._entries.append(entry)
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[CallLogEntry]:
        with self._lock:
            return list(self._entries)

    def recent(self, limit: int) -> list[CallLogEntry]:
        """The last *limit* entries, oldest first."""
        with self._lock:
            return self._entries[-limit:]
