#!/usr/bin/env python3
"""
In-Memory Rate Limiting

Fixed-window request counting per caller identity and named policy.

A fixed window allows a caller to burst up to twice the limit across a
window boundary; that approximation is accepted. State lives in process
memory only and resets on restart.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

from .clock import Clock
from .exceptions import ConfigurationError, RateLimitExceededError

logger = logging.getLogger(__name__)

FALLBACK_IDENTITY = 'unknown'


@dataclass(frozen=True)
class RateLimitPolicy:
    """Window length and request budget for one class of endpoint."""
    name: str
    window_seconds: float
    max_requests: int


@dataclass
class RateLimitWindow:
    """Request counter for one identity under one policy."""
    identity: str
    window_start: float
    reset_at: float
    count: int = 0


@dataclass
class RateLimitResult:
    """Outcome of a single rate-limit check."""
    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def retry_after_seconds(self, now: float) -> float:
        return max(0.0, self.reset_at - now)

    def to_headers(self) -> Dict[str, str]:
        """Standard rate-limit response headers (reset in epoch ms)."""
        return {
            'X-RateLimit-Limit': str(self.limit),
            'X-RateLimit-Remaining': str(self.remaining),
            'X-RateLimit-Reset': str(int(self.reset_at * 1000)),
        }


DEFAULT_POLICIES: Dict[str, RateLimitPolicy] = {
    'scrape': RateLimitPolicy('scrape', window_seconds=3600, max_requests=10),
    'analyze': RateLimitPolicy('analyze', window_seconds=3600, max_requests=20),
    'posts': RateLimitPolicy('posts', window_seconds=60, max_requests=60),
    'health': RateLimitPolicy('health', window_seconds=60, max_requests=100),
}


class RateLimiter:
    """
    Thread-safe fixed-window rate limiter.

    Features:
    - Independent windows per (policy, identity)
    - Atomic check-and-increment under a lock
    - Periodic sweep of expired windows to bound memory
    """

    def __init__(self,
                 policies: Optional[Mapping[str, RateLimitPolicy]] = None,
                 sweep_interval: float = 600,  # 10 minutes
                 clock: Optional[Clock] = None):
        """
        Initialize rate limiter.

        Args:
            policies: Named policies; defaults to DEFAULT_POLICIES
            sweep_interval: Seconds between sweeps of expired windows
            clock: Time source
        """
        self.policies: Dict[str, RateLimitPolicy] = dict(policies or DEFAULT_POLICIES)
        self.sweep_interval = sweep_interval
        self.clock = clock or Clock()

        self._windows: Dict[Tuple[str, str], RateLimitWindow] = {}
        self._lock = threading.RLock()
        self._last_sweep = self.clock.time()

    def _get_policy(self, policy_name: str) -> RateLimitPolicy:
        policy = self.policies.get(policy_name)
        if policy is None:
            available = ', '.join(sorted(self.policies))
            raise ConfigurationError(f"rate_limit.{policy_name}", f"unknown policy (available: {available})")
        return policy

    def check(self, policy_name: str, identity: str) -> RateLimitResult:
        """
        Count one request and report whether it is allowed.

        Args:
            policy_name: Name of a registered policy
            identity: Caller identity (see resolve_client_identity)

        Returns:
            Rate-limit result for this request
        """
        policy = self._get_policy(policy_name)
        key = (policy_name, identity)

        with self._lock:
            now = self.clock.time()
            window = self._windows.get(key)

            if window is None or window.reset_at <= now:
                window = RateLimitWindow(
                    identity=identity,
                    window_start=now,
                    reset_at=now + policy.window_seconds
                )
                self._windows[key] = window

            window.count += 1
            allowed = window.count <= policy.max_requests
            result = RateLimitResult(
                allowed=allowed,
                limit=policy.max_requests,
                remaining=max(0, policy.max_requests - window.count),
                reset_at=window.reset_at
            )

            self._maybe_sweep(now)

        if not allowed:
            logger.warning(f"Rate limit '{policy_name}' exceeded for {identity} "
                           f"({window.count}/{policy.max_requests})")
        return result

    def enforce(self, policy_name: str, identity: str) -> RateLimitResult:
        """
        Like check(), but raise when the request is not allowed.

        Raises:
            RateLimitExceededError: If the identity is over its budget
        """
        result = self.check(policy_name, identity)
        if not result.allowed:
            raise RateLimitExceededError(
                policy=policy_name,
                identity=identity,
                limit=result.limit,
                reset_at=result.reset_at,
                retry_after_seconds=result.retry_after_seconds(self.clock.time())
            )
        return result

    def _maybe_sweep(self, now: float) -> None:
        """Run sweep if interval has passed."""
        if now - self._last_sweep >= self.sweep_interval:
            self.sweep()

    def sweep(self) -> int:
        """
        Remove expired windows.

        Returns:
            Number of windows removed
        """
        with self._lock:
            now = self.clock.time()
            expired = [key for key, window in self._windows.items() if window.reset_at <= now]
            for key in expired:
                del self._windows[key]
            self._last_sweep = now

        if expired:
            logger.debug(f"Swept {len(expired)} expired rate-limit windows")
        return len(expired)

    def window_count(self) -> int:
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        """Drop all windows."""
        with self._lock:
            self._windows.clear()


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def resolve_client_identity(headers: Optional[Mapping[str, str]]) -> str:
    """
    Derive a rate-limit identity from proxy headers.

    Uses the first X-Forwarded-For entry, then X-Real-IP. Callers with
    neither header all share the fallback identity and therefore one bucket.
    """
    if not headers:
        return FALLBACK_IDENTITY

    forwarded_for = _header(headers, 'x-forwarded-for')
    if forwarded_for:
        first = forwarded_for.split(',')[0].strip()
        if first:
            return first

    real_ip = _header(headers, 'x-real-ip')
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return FALLBACK_IDENTITY
