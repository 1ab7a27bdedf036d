"""
Rate Limiter Configuration

Centralized rate limiter instance for use across all API endpoints.
Prevents circular imports between main.py and API route files.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from recall.config import get_settings

settings = get_settings()

# Uses client IP for rate limiting; point RATE_LIMIT_STORAGE_URI at Redis to share limits
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["100/minute"],
    storage_uri=settings.rate_limit_storage_uri,
    strategy="fixed-window",
)
