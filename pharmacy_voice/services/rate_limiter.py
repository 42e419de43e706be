"""Admission control for web-call creation.

Two independent gates protect the call-platform budget:

* **Per identity** (client IP): at most ``hourly_limit_per_identity``
  admissions in any rolling 60-minute window.
* **Global daily budget**: at most ``daily_limit`` *successful* creations per
  local calendar day.  The counter resets the first time a request observes a
  new date string.

A creation is a three-step exchange::

    limiter.admit(identity)     # may raise RateLimitError
    try:
        create_the_call()
    except Exception:
        limiter.release()       # frees the reserved daily slot
        raise
    limiter.confirm()           # counts the creation

``admit`` reserves a daily slot so that concurrent requests cannot overshoot
the cap; only ``confirm`` increments the daily counter.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Literal

from pharmacy_voice.config import WEB_CALL_DAILY_LIMIT, WEB_CALL_HOURLY_LIMIT_PER_IP

logger = logging.getLogger(__name__)

WINDOW = timedelta(hours=1)
UNKNOWN_IDENTITY = "unknown"


class RateLimitError(Exception):
    """Raised when a web-call creation is refused by admission control."""

    def __init__(self, message: str, scope: Literal["identity", "daily"]):
        self.scope = scope
        super().__init__(message)


def resolve_identity(forwarded_for: str | None, client_host: str | None) -> str:
    """Caller identity: first ``X-Forwarded-For`` hop, else the peer address."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return client_host or UNKNOWN_IDENTITY


class RateLimiter:
    """Thread-safe per-identity and daily counters."""

    def __init__(
        self,
        hourly_limit_per_identity: int = WEB_CALL_HOURLY_LIMIT_PER_IP,
        daily_limit: int = WEB_CALL_DAILY_LIMIT,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.hourly_limit_per_identity = hourly_limit_per_identity
        self.daily_limit = daily_limit
        self._clock = clock
        self._lock = threading.Lock()
        # identity → admission timestamps within the rolling window
        self._admissions: dict[str, deque[datetime]] = {}
        self._last_sweep = self._clock()
        self._day = self._last_sweep.date().isoformat()
        self._daily_used = 0
        self._daily_reserved = 0

    # ── Internal (call with the lock held) ───────────────────────────

    def _roll_day(self, now: datetime) -> None:
        today = now.date().isoformat()
        if today != self._day:
            logger.info(
                "Daily web-call counter reset (%s: %d used)", self._day, self._daily_used,
            )
            self._day = today
            self._daily_used = 0

    def _prune(self, identity: str, now: datetime) -> deque[datetime]:
        stamps = self._admissions.pop(identity, None) or deque()
        while stamps and now - stamps[0] >= WINDOW:
            stamps.popleft()
        if stamps:
            self._admissions[identity] = stamps
        return stamps

    def _sweep(self, now: datetime) -> None:
        # Drops identities whose whole window has expired, at most once per window
        if now - self._last_sweep < WINDOW:
            return
        self._last_sweep = now
        for identity in list(self._admissions):
            self._prune(identity, now)

    # ── Public API ───────────────────────────────────────────────────

    def admit(self, identity: str) -> None:
        """Check both gates and reserve a slot, or raise ``RateLimitError``."""
        with self._lock:
            now = self._clock()
            self._roll_day(now)
            self._sweep(now)

            stamps = self._prune(identity, now)
            if len(stamps) >= self.hourly_limit_per_identity:
                logger.warning("Web-call rate limit hit for %s", identity)
                raise RateLimitError(
                    "Too many call requests from your connection. "
                    "Please try again later.",
                    scope="identity",
                )

            if self._daily_used + self._daily_reserved >= self.daily_limit:
                logger.warning("Daily web-call budget exhausted (%d)", self.daily_limit)
                raise RateLimitError(
                    "The daily call limit has been reached. Please try again tomorrow.",
                    scope="daily",
                )

            stamps.append(now)
            self._admissions[identity] = stamps
            self._daily_reserved += 1

    def confirm(self) -> None:
        """Count a successful creation against the daily budget."""
        with self._lock:
            self._daily_reserved = max(0, self._daily_reserved - 1)
            self._roll_day(self._clock())
            self._daily_used += 1

    def release(self) -> None:
        """Give back a reserved slot after a failed creation."""
        with self._lock:
            self._daily_reserved = max(0, self._daily_reserved - 1)

    @property
    def daily_used(self) -> int:
        return self._daily_used

    def status(self, identity: str | None = None) -> dict[str, Any]:
        """Current usage.  Read-only: stale windows are ignored, not pruned."""
        with self._lock:
            now = self._clock()
            same_day = now.date().isoformat() == self._day
            used = self._daily_used if same_day else 0
            result: dict[str, Any] = {
                "daily_used": used,
                "daily_limit": self.daily_limit,
                "daily_remaining": max(0, self.daily_limit - used),
                "hourly_limit_per_ip": self.hourly_limit_per_identity,
            }
            if identity is not None:
                recent = [
                    ts for ts in self._admissions.get(identity, ())
                    if now - ts < WINDOW
                ]
                result["identity"] = identity
                result["hourly_used"] = len(recent)
        return result
