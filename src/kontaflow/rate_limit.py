"""Per-client request throttling backed by slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from kontaflow.config import Settings


def build_limiter(settings: Settings) -> Limiter:
    """Limiter keyed by client address.

    ``SlowAPIMiddleware`` applies the default limit to every route, so no
    endpoint needs its own decorator. Counters live in process memory.
    """
    return Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )
