"""Per-route-class admission control."""

import enum
import logging
import math
import threading
import time
from collections.abc import Callable

from fastapi import Request
from limits import RateLimitItem, parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address

from warden.config import Settings
from warden.errors import RateLimited

logger = logging.getLogger("warden")


class RouteClass(str, enum.Enum):
    GENERIC = "generic"
    AUTH_SENSITIVE = "auth-sensitive"
    EMAIL_TRIGGERING = "email-triggering"
    PROFILE_UPDATE = "profile-update"
    ACCOUNT_SENSITIVE = "account-sensitive"


DEFAULT_LIMITS: dict[RouteClass, str] = {
    RouteClass.GENERIC: "100 per 15 minutes",
    RouteClass.AUTH_SENSITIVE: "5 per 15 minutes",
    RouteClass.EMAIL_TRIGGERING: "3 per 60 minutes",
    RouteClass.PROFILE_UPDATE: "10 per 60 minutes",
    RouteClass.ACCOUNT_SENSITIVE: "3 per 15 minutes",
}

REJECTION_MESSAGES: dict[RouteClass, str] = {
    RouteClass.GENERIC: "Too many requests, please try again later",
    RouteClass.AUTH_SENSITIVE: "Too many authentication attempts, please try again later",
    RouteClass.EMAIL_TRIGGERING: "Too many email requests, please try again later",
    RouteClass.PROFILE_UPDATE: "Too many profile updates, please try again later",
    RouteClass.ACCOUNT_SENSITIVE: "Too many sensitive operations, please try again later",
}


class RateLimiter:
    """Fixed-window counters keyed by (client key, route class).

    The first request of a window starts it with a count of one; later requests
    increment the counter and are admitted while it stays within the class
    maximum. The increment and the comparison happen under one lock, so
    concurrent requests sharing a key cannot overshoot the limit.

    Counters live in process memory: they reset on restart and are not shared
    between worker processes.
    """

    def __init__(
        self,
        limits: dict[RouteClass, str] | None = None,
        key_func: Callable[[Request], str] = get_remote_address,
    ) -> None:
        configured = {**DEFAULT_LIMITS, **(limits or {})}
        self.limits: dict[RouteClass, RateLimitItem] = {rc: parse(value) for rc, value in configured.items()}
        self.key_func = key_func
        self.enabled = True
        self._storage = MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimiter":
        return cls(
            limits={
                RouteClass.GENERIC: settings.RATE_LIMIT_GENERIC,
                RouteClass.AUTH_SENSITIVE: settings.RATE_LIMIT_AUTH_SENSITIVE,
                RouteClass.EMAIL_TRIGGERING: settings.RATE_LIMIT_EMAIL_TRIGGERING,
                RouteClass.PROFILE_UPDATE: settings.RATE_LIMIT_PROFILE_UPDATE,
                RouteClass.ACCOUNT_SENSITIVE: settings.RATE_LIMIT_ACCOUNT_SENSITIVE,
            }
        )

    def hit(self, route_class: RouteClass, key: str) -> None:
        """Count one request for ``key`` against ``route_class``. Raises RateLimited when over quota."""
        if not self.enabled:
            return
        item = self.limits[route_class]
        with self._lock:
            if self._strategy.hit(item, key, route_class.value):
                return
            stats = self._strategy.get_window_stats(item, key, route_class.value)

        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        logger.warning("Rate limit exceeded: class=%s key=%s retry_after=%ds", route_class.value, key, retry_after)
        raise RateLimited(retry_after=retry_after, message=REJECTION_MESSAGES[route_class])

    def remaining(self, route_class: RouteClass, key: str) -> int:
        """Requests still admissible in the current window."""
        stats = self._strategy.get_window_stats(self.limits[route_class], key, route_class.value)
        return stats.remaining

    def reset(self) -> None:
        """Drop every counter."""
        self._storage.reset()


def rate_limit(route_class: RouteClass) -> Callable[[Request], None]:
    """FastAPI dependency admitting the request against the app's limiter."""

    def dependency(request: Request) -> None:
        limiter: RateLimiter = request.app.state.rate_limiter
        limiter.hit(route_class, limiter.key_func(request))

    dependency.__name__ = f"rate_limit_{route_class.name.lower()}"
    return dependency
