"""Rate limiting middleware using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from treenote.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

auth_limiter = limiter.limit(settings.auth_rate_limit)
