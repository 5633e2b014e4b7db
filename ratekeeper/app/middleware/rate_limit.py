"""Rate limiting middleware.

Extracts a client key from each request, asks the LimiterRegistry for a
verdict and answers 429 Too Many Requests when the key is out of tokens.
"""

from typing import Iterable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from ratekeeper.app.core.logging import get_log_context, get_logger
from ratekeeper.app.exceptions import RateLimitExceededError
from ratekeeper.app.ratelimit import LimiterRegistry

logger = get_logger(__name__)

UNKNOWN_CLIENT = "unknown"


def get_client_key(request: Request) -> str:
    """Get the rate limit key (client IP) for the request.

    Precedence:
    1. First entry of X-Forwarded-For ("client, proxy1, proxy2")
    2. X-Real-IP
    3. Address of the connected peer
    4. "unknown" when the peer address is not available

    Args:
        request: Incoming request

    Returns:
        Client key string
    """
    forwarded = request.headers.get("X-Forwarded-For", "")
    client_ip = forwarded.split(",")[0].strip()
    if client_ip:
        return client_ip

    real_ip = request.headers.get("X-Real-IP", "").strip()
    if real_ip:
        return real_ip

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce per-client rate limits on requests.

    The registry is owned by the application and passed in explicitly;
    the middleware never stops it.

    Usage:
        app.add_middleware(RateLimitMiddleware, registry=registry, exempt_paths=["/health"])
    """

    def __init__(
        self,
        app,
        registry: LimiterRegistry,
        exempt_paths: Iterable[str] = (),
    ):
        super().__init__(app)
        self.registry = registry
        self.exempt_paths = frozenset(exempt_paths)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request with rate limiting."""
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        key = get_client_key(request)
        if not self.registry.check(key):
            exc = RateLimitExceededError(client_key=key)
            logger.info(
                "Rate limit exceeded",
                extra=get_log_context(
                    client_key=key,
                    path=request.url.path,
                    method=request.method,
                    status_code=exc.status_code,
                ),
            )
            return JSONResponse(status_code=exc.status_code, content=exc.to_response())

        return await call_next(request)
