"""
Rate limiting for router actions.

Each (tool, action, access context, user) combination gets its own token
bucket, so a burst of deletes from one web user does not throttle another
user's reads.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from statamic_mcp.core.context import get_access_context
from statamic_mcp.core.observability import audit_log

logger = logging.getLogger(__name__)

# Seconds between sweeps for idle buckets
PRUNE_INTERVAL = 60.0


@dataclass
class RateLimitConfig:
    """
    Configuration for a rate limit.
    """
    requests_per_minute: int = 60
    burst_limit: int = 10
    enabled: bool = True


@dataclass
class RateLimitState:
    """
    Current state of a rate limiter.
    """
    tokens: float = 0.0
    last_update: float = 0.0
    request_count: int = 0
    throttle_count: int = 0


@dataclass
class RateLimitResult:
    """
    Result of a rate limit check.
    """
    allowed: bool
    remaining: int = 0
    reset_in: float = 0.0
    limit: int = 0


class TokenBucketLimiter:
    """
    Token bucket rate limiter with burst support.
    """

    def __init__(self, config: RateLimitConfig, clock: Callable[[], float] = time.monotonic):
        self.config = config
        self._clock = clock
        self.state = RateLimitState(
            tokens=float(config.burst_limit),
            last_update=clock(),
        )

    def acquire(self) -> RateLimitResult:
        """Attempt to take a token for one request."""
        if not self.config.enabled:
            return RateLimitResult(allowed=True, remaining=-1)

        self._refill()
        self.state.request_count += 1

        if self.state.tokens >= 1.0:
            self.state.tokens -= 1.0
            return RateLimitResult(
                allowed=True,
                remaining=int(self.state.tokens),
                reset_in=self._time_to_next_token(),
                limit=self.config.requests_per_minute,
            )

        self.state.throttle_count += 1
        return RateLimitResult(
            allowed=False,
            remaining=0,
            reset_in=self._time_to_next_token(),
            limit=self.config.requests_per_minute,
        )

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self.state.last_update
        self.state.last_update = now

        tokens_per_second = self.config.requests_per_minute / 60.0
        self.state.tokens = min(
            float(self.config.burst_limit),
            self.state.tokens + elapsed * tokens_per_second,
        )

    def _time_to_next_token(self) -> float:
        if self.state.tokens >= 1.0:
            return 0.0
        tokens_per_second = self.config.requests_per_minute / 60.0
        if tokens_per_second <= 0:
            return 60.0
        return (1.0 - self.state.tokens) / tokens_per_second

    def is_idle(self, now: float) -> bool:
        """True once the bucket has been full for longer than a refill window.

        An idle bucket can be discarded: a fresh bucket starts full, so
        the caller sees the same allowance either way.
        """
        tokens_per_second = self.config.requests_per_minute / 60.0
        if tokens_per_second <= 0:
            return False
        refill_window = self.config.burst_limit / tokens_per_second
        missing = max(0.0, self.config.burst_limit - self.state.tokens)
        full_at = self.state.last_update + missing / tokens_per_second
        return now - full_at > refill_window

    def get_stats(self) -> Dict[str, Any]:
        return {
            "requests": self.state.request_count,
            "throttled": self.state.throttle_count,
            "current_tokens": int(self.state.tokens),
            "limit": self.config.requests_per_minute,
            "burst": self.config.burst_limit,
            "enabled": self.config.enabled,
        }


def rate_limit_key(tool: str, action: str, context: Optional[str] = None, user: Optional[str] = None) -> str:
    """Build the bucket key ``mcp_rate_limit:{tool}:{action}:{context}:{user}``."""
    access = get_access_context()
    return f"mcp_rate_limit:{tool}:{action}:{context or access.mode}:{user or access.user}"


class RateLimitManager:
    """
    Owns the token buckets for every tool/action/context/user key.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._limiters: Dict[str, TokenBucketLimiter] = {}
        self._lock = threading.Lock()
        self._last_prune = clock()

    def check_limit(self, tool: str, action: str, config: RateLimitConfig) -> RateLimitResult:
        """Consume one token for the current caller, logging throttled calls."""
        key = rate_limit_key(tool, action)
        with self._lock:
            now = self._clock()
            if now - self._last_prune >= PRUNE_INTERVAL:
                self._prune(now)
            limiter = self._limiters.get(key)
            if limiter is None or limiter.config != config:
                limiter = TokenBucketLimiter(config, clock=self._clock)
                self._limiters[key] = limiter
            result = limiter.acquire()

        if not result.allowed:
            audit_log(
                "rate_limit",
                tool=tool,
                action=action,
                key=key,
                limit=result.limit,
                reset_in=round(result.reset_in, 2),
            )
            logger.warning("Rate limit exceeded for %s", key)
        return result

    def prune(self) -> int:
        """Drop idle buckets. Returns how many were removed."""
        with self._lock:
            return self._prune(self._clock())

    def _prune(self, now: float) -> int:
        idle = [key for key, limiter in self._limiters.items() if limiter.is_idle(now)]
        for key in idle:
            del self._limiters[key]
        self._last_prune = now
        if idle:
            logger.debug("Pruned %d idle rate limit buckets", len(idle))
        return len(idle)

    def get_all_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {key: limiter.get_stats() for key, limiter in self._limiters.items()}

    def reset(self, tool: Optional[str] = None) -> None:
        """Reset buckets for one tool, or all of them."""
        with self._lock:
            if tool is None:
                self._limiters.clear()
                return
            prefix = f"mcp_rate_limit:{tool}:"
            for key in [k for k in self._limiters if k.startswith(prefix)]:
                del self._limiters[key]


_manager: Optional[RateLimitManager] = None


def get_rate_limit_manager() -> RateLimitManager:
    """Get the global rate limit manager."""
    global _manager
    if _manager is None:
        _manager = RateLimitManager()
    return _manager
