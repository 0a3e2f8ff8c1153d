"""Rate limiting configuration using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from linkdeck.core.config import get_settings

settings = get_settings()


def get_real_client_ip(request: Request) -> str:
    """Get the real client IP address, handling proxies.

    Checks X-Forwarded-For and X-Real-IP headers before falling back
    to the direct client address.
    """
    # X-Forwarded-For can contain multiple IPs: client, proxy1, proxy2
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    # Common in nginx setups
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_real_client_ip,
    default_limits=["1000/hour"],
    storage_uri=settings.rate_limit_storage_uri or settings.redis_url,
    strategy="fixed-window",
    enabled=settings.rate_limit_enabled,
)

# Rate limit constants for different endpoint types
# These can be used as decorators: @limiter.limit(RATE_LIMIT_AUTH)

# Login and registration - prevent brute force
RATE_LIMIT_AUTH = "20/minute"

# Click recording - generous, but stops scripted inflation
RATE_LIMIT_CLICK = "120/minute"

# General API endpoints - moderate limit
RATE_LIMIT_API = "100/minute"
