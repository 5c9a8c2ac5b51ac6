"""
Lintgate Backend: Rate Limiter
===============================

What:  Per-client request ceilings over two fixed windows (minute, hour),
       with a stricter policy for authentication-sensitive paths.
How:   Each (policy, client) pair owns two counters `{count, reset_at}` kept
       in a `MemoryStore`. A check walks the minute window first, then the
       hour window; the first exceeded ceiling denies the request and the
       hour counter is left untouched when the minute window denies.
Who:   The security stage, once per non-preflight request.

Algorithm: Fixed Window Counter
    1. now > reset_at            → count = 1, reset_at = now + window, allow
    2. otherwise                 → count += 1
    3. count > ceiling           → deny, retry_after = ceil(reset_at - now)

    A client can burst up to 2× the ceiling across a window boundary. In
    exchange each client costs O(1) memory and no background sweeping is
    needed: idle clients are pruned inline every PRUNE_INTERVAL checks.

Caveat:
    State is process-local. Several uvicorn workers each enforce their own
    ceilings, so the effective limit is multiplied by the worker count.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from starlette.requests import HTTPConnection

from lintgate.config import RateLimitSettings
from lintgate.storage import MemoryStore

logger = logging.getLogger(__name__)

GENERAL_POLICY = "general"
AUTH_POLICY = "auth"

# (period name, window length in seconds), evaluated in this order
WINDOWS: Tuple[Tuple[str, int], ...] = (("minute", 60), ("hour", 3600))

PRUNE_INTERVAL = 1000


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of one rate limit check."""

    allowed: bool
    policy: str = GENERAL_POLICY
    limit: int = 0
    period: str = ""
    retry_after: int = 0

    @property
    def message(self) -> str:
        if self.allowed:
            return ""
        if self.policy == AUTH_POLICY:
            return (
                "Too many authentication attempts. You have exceeded the "
                f"{self.limit} attempts per {self.period} rate limit."
            )
        return f"You have exceeded the {self.limit} requests per {self.period} rate limit."


def resolve_client_id(request: HTTPConnection) -> str:
    """
    Identify the caller for rate limiting purposes.

    Order: the API key already attached by the auth stage, the first address
    in X-Forwarded-For, the direct peer address, and finally "unknown".
    """
    api_key = getattr(request.state, "api_key", None)
    if api_key:
        return api_key

    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RateLimiter:
    """
    Fixed-window limiter with a general and an auth-sensitive policy.

    Thread Safety:
        Every (policy, client) pair gets its own lock, created on first use,
        so unrelated clients never contend. The lock table itself is only
        locked for insertion.
    """

    def __init__(
        self,
        settings: RateLimitSettings,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self._clock = clock
        self._windows = MemoryStore()
        self._locks = MemoryStore()
        self._checks = 0
        self._checks_lock = threading.Lock()

    def ceilings(self, auth_sensitive: bool) -> Dict[str, int]:
        if auth_sensitive:
            return {
                "minute": self.settings.auth_requests_per_minute,
                "hour": self.settings.auth_requests_per_hour,
            }
        return {
            "minute": self.settings.requests_per_minute,
            "hour": self.settings.requests_per_hour,
        }

    def check(self, client_id: str, auth_sensitive: bool = False) -> RateLimitDecision:
        """Count one request for `client_id` and decide whether it may proceed."""
        policy = AUTH_POLICY if auth_sensitive else GENERAL_POLICY
        ceilings = self.ceilings(auth_sensitive)
        key = f"{policy}:{client_id}"

        self._maybe_prune()

        lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            now = self._clock()
            windows = self._windows.get(key)
            if windows is None:
                windows = {}
                self._windows.set(key, windows)

            for period, length in WINDOWS:
                ceiling = ceilings[period]
                if ceiling <= 0:
                    continue

                window = windows.get(period)
                if window is None or now > window["reset_at"]:
                    windows[period] = {"count": 1, "reset_at": now + length}
                    continue

                window["count"] += 1
                if window["count"] > ceiling:
                    retry_after = max(1, math.ceil(window["reset_at"] - now))
                    return RateLimitDecision(
                        allowed=False,
                        policy=policy,
                        limit=ceiling,
                        period=period,
                        retry_after=retry_after,
                    )

        return RateLimitDecision(allowed=True, policy=policy)

    def window_state(self, client_id: str, auth_sensitive: bool = False) -> Optional[Dict[str, Dict[str, float]]]:
        """Current counters for a client, for diagnostics and tests."""
        policy = AUTH_POLICY if auth_sensitive else GENERAL_POLICY
        windows = self._windows.get(f"{policy}:{client_id}")
        if windows is None:
            return None
        return {period: dict(state) for period, state in windows.items()}

    def __len__(self) -> int:
        return len(self._windows)

    # ── Housekeeping ──────────────────────────────────────────────────────

    def _maybe_prune(self) -> None:
        with self._checks_lock:
            self._checks += 1
            due = self._checks % PRUNE_INTERVAL == 0
        if due:
            self.prune()

    def prune(self) -> int:
        """Drop clients whose every window has already expired."""
        now = self._clock()
        removed = 0
        for key, windows in self._windows.items():
            if all(now > state["reset_at"] for state in windows.values()):
                self._windows.delete(key)
                self._locks.delete(key)
                removed += 1
        if removed:
            logger.debug("Pruned %d idle rate limit entries", removed)
        return removed
