"""Rate limiting for code requests and redemptions.

Fixed-window counters in Valkey, keyed per client IP and per identifier
(email for requests, a code prefix for redemptions). The counter lives in
shared storage so limits hold across every app instance; there is no
in-process fallback. If Valkey is unreachable the redis error propagates
and the request fails.
"""

import logging

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.exceptions import RateLimitedError

logger = logging.getLogger(__name__)

# IP key for clients whose address can't be resolved (unix sockets, odd proxies)
UNKNOWN_CLIENT = "unknown"


class RateLimiter:
    """Per-IP and per-identifier throttling using Valkey."""

    KEY_PREFIX = "ratelimit:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._limit = config.rate_limit_attempts
        self._window_seconds = config.rate_limit_window_minutes * 60

    def _key(self, scope: str, value: str) -> str:
        """Rate limit key, normalized to lowercase."""
        return f"{self.KEY_PREFIX}{scope}:{value.strip().lower()}"

    def _judge(self, key: str, count: int) -> None:
        if count > self._limit:
            ttl = self._valkey.ttl(key)
            retry_after = max(ttl, 1)  # At least 1 second
            logger.warning(f"Rate limit exceeded for {key.split(':')[1]} key ({count} hits)")
            raise RateLimitedError(retry_after_seconds=retry_after)

    def check(self, action: str, ip_address: str | None, identifier: str | None = None) -> None:
        """Count one attempt of action against the IP and the identifier.

        Both counters are incremented before either is judged, so hammering
        with rotating identifiers still exhausts the IP budget.

        Raises:
            RateLimitedError: If either counter is over the limit.
        """
        keys = []
        if ip_address:
            keys.append(self._key(f"ip:{action}", ip_address))
        if identifier:
            keys.append(self._key(f"id:{action}", identifier))
        counts = [(key, self._valkey.incr_window(key, self._window_seconds)) for key in keys]
        for key, count in counts:
            self._judge(key, count)

    def reset(self, action: str, identifier: str) -> None:
        """Clear an identifier's counter (after a successful redemption)."""
        self._valkey.delete(self._key(f"id:{action}", identifier))

    def get_remaining_attempts(self, action: str, identifier: str) -> int:
        """Attempts left before the identifier is limited."""
        current = self._valkey.get(self._key(f"id:{action}", identifier))
        if current is None:
            return self._limit
        return max(self._limit - int(current), 0)
