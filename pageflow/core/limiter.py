# pageflow/core/limiter.py
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from pageflow.core.config import settings

LAYOUT_LIMIT = settings.LAYOUT_RATE_LIMIT
HIGHLIGHT_LIMIT = settings.HIGHLIGHT_RATE_LIMIT

def get_client_key(request: Request) -> str:
    """Buckets requests per X-User-ID workspace, or per caller address when the header is absent."""
    return request.headers.get("x-user-id") or get_remote_address(request)

limiter = Limiter(
    key_func=get_client_key,
    storage_uri=settings.LIMITER_STORAGE_URI or settings.REDIS_URL,
    strategy="fixed-window"
)
