"""
Sliding-window admission control keyed by client identity.

Each key keeps the instants of its requests within the trailing window. A
request is admitted while fewer than ``max_requests`` instants remain in the
window. Windows that went quiet are swept on a small random fraction of
calls instead of by a background task.

State lives in one process; several workers each enforce their own limit.
"""

from __future__ import annotations

import logging
import math
import random
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping

from .config import DEFAULT_TIER_KEY, AdmissionTier, ReconcilerConfig

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000.0


@dataclass(frozen=True, slots=True)
class AdmissionDecision:
    """Outcome of one admission check."""

    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int
    reset_at_ms: float


@dataclass(slots=True)
class RateLimitWindow:
    """Request instants (epoch milliseconds) recorded for one key."""

    key: str
    window_ms: int
    max_requests: int
    reset_at_ms: float
    request_timestamps: List[float] = field(default_factory=list)

    def prune(self, now_ms: float) -> None:
        cutoff = now_ms - self.window_ms
        self.request_timestamps = [t for t in self.request_timestamps if t > cutoff]


class AdmissionController(ABC):
    """Gatekeeper consulted before a request is allowed to reach the model."""

    def __init__(self, tiers: Mapping[str, AdmissionTier]) -> None:
        self._tiers = dict(tiers)

    def tier_for(self, endpoint: str) -> AdmissionTier:
        """Return the tier for ``endpoint``, or the default tier when unknown."""
        return self._tiers.get(endpoint) or self._tiers[DEFAULT_TIER_KEY]

    def check_endpoint(self, key: str, endpoint: str) -> AdmissionDecision:
        """Check ``key`` against the limits configured for ``endpoint``.

        The key is namespaced by endpoint so each endpoint counts separately.
        """
        return self.check(namespaced(endpoint, key), self.tier_for(endpoint))

    @abstractmethod
    def check(self, key: str, tier: AdmissionTier) -> AdmissionDecision:
        """Record a request for ``key`` if the tier allows it."""
        raise NotImplementedError

    @abstractmethod
    def shutdown(self) -> None:
        """Release any state held by the controller."""
        raise NotImplementedError


class InMemoryAdmissionController(AdmissionController):
    """Process-local controller; all window mutation happens under one lock."""

    def __init__(
        self,
        config: ReconcilerConfig | None = None,
        *,
        clock: Callable[[], float] = _now_ms,
        rng: Callable[[], float] = random.random,
    ) -> None:
        cfg = config or ReconcilerConfig()
        tiers = dict(cfg.admission_tiers)
        tiers.setdefault(DEFAULT_TIER_KEY, ReconcilerConfig().tier_for(DEFAULT_TIER_KEY))
        super().__init__(tiers)
        self._cleanup_probability = cfg.admission_cleanup_probability
        self._clock = clock
        self._rng = rng
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()
        self._closed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def check(self, key: str, tier: AdmissionTier) -> AdmissionDecision:
        with self._lock:
            if self._closed:
                raise RuntimeError("Admission controller has been shut down.")
            now = self._clock()
            if self._rng() < self._cleanup_probability:
                self._evict_stale(now)

            window = self._windows.get(key)
            if window is None:
                window = RateLimitWindow(
                    key=key,
                    window_ms=tier.window_ms,
                    max_requests=tier.max_requests,
                    reset_at_ms=now + tier.window_ms,
                )
                self._windows[key] = window
            window.window_ms = tier.window_ms
            window.max_requests = tier.max_requests
            window.prune(now)

            if len(window.request_timestamps) >= tier.max_requests:
                oldest = min(window.request_timestamps, default=now)
                retry_after = math.ceil((oldest + tier.window_ms - now) / 1000.0)
                return AdmissionDecision(
                    allowed=False,
                    limit=tier.max_requests,
                    remaining=0,
                    retry_after_seconds=max(1, retry_after),
                    reset_at_ms=window.reset_at_ms,
                )

            window.request_timestamps.append(now)
            window.reset_at_ms = now + tier.window_ms
            return AdmissionDecision(
                allowed=True,
                limit=tier.max_requests,
                remaining=tier.max_requests - len(window.request_timestamps),
                retry_after_seconds=0,
                reset_at_ms=window.reset_at_ms,
            )

    def sweep(self) -> int:
        """Evict stale windows now; returns how many were removed."""
        with self._lock:
            return self._evict_stale(self._clock())

    def shutdown(self) -> None:
        with self._lock:
            self._windows.clear()
            self._closed = True

    def _evict_stale(self, now: float) -> int:
        # Caller holds self._lock.
        stale: List[str] = []
        for key, window in self._windows.items():
            window.prune(now)
            if not window.request_timestamps and window.reset_at_ms < now:
                stale.append(key)
        for key in stale:
            del self._windows[key]
        if stale:
            logger.debug("Evicted %s idle admission windows", len(stale))
        return len(stale)


def client_address_key(headers: Mapping[str, str], remote_addr: str | None = None) -> str:
    """Derive the default key from proxy headers or the socket address."""
    lowered = {name.lower(): value for name, value in headers.items()}
    forwarded = lowered.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    real_ip = lowered.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    return remote_addr or "unknown"


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


def api_key_key(api_key: str) -> str:
    return f"api:{api_key}"


def namespaced(endpoint: str, key: str) -> str:
    return f"{endpoint}|{key}"
