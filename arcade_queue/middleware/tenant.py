"""
Tenant Middleware

Extracts the tenant (chat group) from every request and makes it available
throughout the request lifecycle. This is CRITICAL for tenant isolation:
every query downstream is scoped by request.state.tenant_id.

Tenants are not registered anywhere; a chat group exists as soon as the
gateway forwards a message from it. The X-Tenant-ID header carries
"<platform>:<group>".
"""
from typing import Optional
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"


def parse_tenant_id(value: Optional[str]) -> Optional[str]:
    """Normalized tenant id, or None when the header is malformed."""
    if not value:
        return None
    platform, sep, group = value.strip().partition(":")
    if not sep or not platform or not group:
        return None
    return f"{platform}:{group}"


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Middleware to extract and validate the tenant header.

    SECURITY: This is the first line of defense for tenant isolation.
    deps.get_actor additionally checks the header against the token.
    """

    def __init__(self, app):
        super().__init__(app)
        self.excluded_paths = [
            "/docs",
            "/redoc",
            "/openapi.json",
            "/health",
        ]

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/" or any(request.url.path.startswith(path) for path in self.excluded_paths):
            return await call_next(request)

        tenant_id = parse_tenant_id(request.headers.get(TENANT_HEADER))
        if not tenant_id:
            logger.warning(f"No valid tenant identifier in request: {request.url}")
            return JSONResponse(
                status_code=400,
                content={
                    "detail": f"Tenant identifier required ({TENANT_HEADER}: <platform>:<group>)",
                    "type": "invalid_input"
                }
            )

        request.state.tenant_id = tenant_id
        logger.debug(f"Request for tenant: {tenant_id}")

        return await call_next(request)
