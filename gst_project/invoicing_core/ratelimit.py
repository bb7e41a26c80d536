from django.conf import settings
from django.core.cache import caches

from .exceptions import RateLimitExceeded


class RateLimiter:
    """
    Fixed-window counter kept in a Django cache.
    Views receive an instance instead of sharing module state, so tests
    can hand in their own limiter (or a separate cache alias).
    """

    def __init__(self, limit, window_seconds, cache_alias="default", prefix="ratelimit"):
        self.limit = limit
        self.window_seconds = window_seconds
        self.cache = caches[cache_alias]
        self.prefix = prefix

    def _key(self, key):
        return f"{self.prefix}:{key}"

    def hit(self, key) -> bool:
        """Count one request; False once the window's limit is reached."""
        cache_key = self._key(key)
        # add() is a no-op when the window is already open
        self.cache.add(cache_key, 0, timeout=self.window_seconds)
        try:
            count = self.cache.incr(cache_key)
        except ValueError:
            # expired between add() and incr()
            self.cache.set(cache_key, 1, timeout=self.window_seconds)
            count = 1
        return count <= self.limit

    def check(self, key):
        if not self.hit(key):
            raise RateLimitExceeded(
                f"Too many requests, try again in {self.window_seconds} seconds")

    def reset(self, key):
        self.cache.delete(self._key(key))


def bank_import_limiter():
    return RateLimiter(
        settings.BANK_IMPORT_RATE_LIMIT,
        settings.BANK_IMPORT_RATE_WINDOW_SECONDS,
        prefix="bank-import",
    )
