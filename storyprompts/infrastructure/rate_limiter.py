"""Per-identity throttle for calls to the generation capability.

Each identity gets a single counter that expires one window after its first
request (fixed window). This approximates a rolling limit; it is not an exact
sliding-window count.
"""

import logging
from dataclasses import dataclass

from storyprompts.infrastructure.cache import KeyValueStore
from storyprompts.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Rate limit configuration."""

    requests: int  # Number of requests allowed
    window_seconds: int  # Time window in seconds
    key_prefix: str = "rl"


@dataclass
class RateLimitDecision:
    """Outcome of a rate-limit check."""

    allowed: bool
    remaining: int
    count: int


# Default rate limit configurations for the generation paths
RATE_LIMITS = {
    # Personalised prompt generation - most expensive (LLM calls)
    "generation": RateLimitConfig(
        requests=settings.generation_rate_limit_requests,
        window_seconds=settings.generation_rate_limit_window_seconds,
        key_prefix="rl:gen",
    ),
    # Follow-up question generation - one request per few seconds
    "follow_up": RateLimitConfig(
        requests=1,
        window_seconds=settings.follow_up_throttle_seconds,
        key_prefix="rl:followup",
    ),
}


class GenerationRateLimiter:
    """Fixed-window request counter keyed by identity."""

    def __init__(self, store: KeyValueStore, config: RateLimitConfig | None = None) -> None:
        self.store = store
        self.config = config or RATE_LIMITS["generation"]

    async def check(self, identity: str) -> RateLimitDecision:
        """Count a request for ``identity`` and decide whether it may proceed.

        Args:
            identity: User or project identifier

        Returns:
            RateLimitDecision; ``allowed`` is False once the identity has made
            more than ``config.requests`` requests in the current window
        """
        key = f"{self.config.key_prefix}:{identity}"
        count = await self.store.incr(key, self.config.window_seconds)
        allowed = count <= self.config.requests
        if not allowed:
            logger.warning(
                f"Rate limit exceeded for {identity} "
                f"(limit: {self.config.requests}/{self.config.window_seconds}s)"
            )
        return RateLimitDecision(
            allowed=allowed,
            remaining=max(0, self.config.requests - count),
            count=count,
        )

    async def reset(self, identity: str) -> None:
        """Forget the counter for ``identity``."""
        await self.store.delete(f"{self.config.key_prefix}:{identity}")
