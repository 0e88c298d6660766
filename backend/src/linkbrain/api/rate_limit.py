"""Rate limiting for the invite endpoint.

Limits are declared per route with ``@limiter.limit``; there is no
app-wide default.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from linkbrain.settings import settings

# Counts are kept per client address, and only enforced in production
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=settings.env == "production",
)
