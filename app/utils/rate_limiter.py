"""
Rate Limiter Configuration

Supports both in-memory and Redis storage for rate limiting.
Redis is required for limits shared across multiple instances.
"""

import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from ..config import settings

logger = logging.getLogger(__name__)


def get_real_client_ip(request: Request) -> str:
    """Get real client IP behind reverse proxy"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP (original client)
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter() -> Limiter:
    """
    Create a rate limiter with the configured storage backend.
    REDIS_URL selects shared storage, otherwise limits are per process.
    """
    storage_uri = settings.rate_limit_storage_uri
    if storage_uri == "memory://":
        logger.info("Using in-memory rate limiter storage")
    else:
        logger.info("Using shared rate limiter storage")

    return Limiter(
        key_func=get_real_client_ip,
        storage_uri=storage_uri,
        default_limits=["100/minute"]
    )


# Global rate limiter instance
limiter = create_limiter()


# ================================
# RATE LIMIT CONFIGURATIONS
# ================================

RATE_LIMITS = {
    # Webhooks - per sender IP
    "webhook": settings.webhook_rate_limit,

    # Manual operations - resource intensive
    "sync": "5/minute",
    "retry": "10/minute",
}


def get_rate_limit(operation: str) -> str:
    """Get rate limit for a specific operation."""
    return RATE_LIMITS.get(operation, "100/minute")
