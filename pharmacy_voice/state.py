"""Process-wide mutable state, owned in one place.

A single :class:`PharmacyState` is created by the FastAPI lifespan (or the
CLI) and handed to everything that needs it.  Tests build their own with a
temporary catalog.
"""

from __future__ import annotations

from pharmacy_voice.services.catalog import ProductCatalog
from pharmacy_voice.services.ledger import CallLog, FulfillmentLedger
from pharmacy_voice.services.rate_limiter import RateLimiter


class PharmacyState:
    """Catalog, ledgers, call log and web-call rate limiter."""

    def __init__(
        self,
        catalog: ProductCatalog | None = None,
        ledger: FulfillmentLedger | None = None,
        call_log: CallLog | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.catalog = catalog if catalog is not None else ProductCatalog()
        self.ledger = ledger if ledger is not None else FulfillmentLedger()
        self.call_log = call_log if call_log is not None else CallLog()
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()
