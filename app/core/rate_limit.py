"""
Rate limiting configuration for the auth endpoints
"""
from slowapi import Limiter
from fastapi import Request

from app.core.config import settings


def get_client_ip(request: Request) -> str:
    """
    Extract client IP from request, checking for proxy headers first
    """
    # Check common proxy headers
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs, take the first
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    # Fall back to direct connection
    if request.client:
        return request.client.host

    return "unknown"


# Create limiter instance
limiter = Limiter(key_func=get_client_ip, enabled=settings.rate_limit_enabled)

# Strict rate limiting for login/register
AUTH_RATE_LIMIT = "5/minute"

# Very strict for anything that sends an email or changes a password
PASSWORD_RATE_LIMIT = "3/minute"
