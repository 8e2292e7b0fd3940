"""
API Dependencies

Reusable FastAPI dependencies for tenant context, the calling actor and the
core services. Process-wide collaborators (tenant locks, reset scheduler,
platform directory) live on app.state and are created in the lifespan.
"""
from typing import Optional
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from arcade_queue.config import Settings, get_settings
from arcade_queue.core.directory import ActorContext, DirectoryClient
from arcade_queue.core.exceptions import AuthenticationError, TenantIsolationError
from arcade_queue.core.locking import TenantLocks
from arcade_queue.core.queue import ArcadeService
from arcade_queue.core.reports import ReportAggregator
from arcade_queue.core.scheduler import ResetScheduler
from arcade_queue.core.security import decode_access_token, token_tenant_id
from arcade_queue.core.store import RecordStore
from arcade_queue.database import get_db
from arcade_queue.utils.logging import log_security_event

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def get_current_tenant_id(request: Request) -> str:
    """
    Tenant id set by TenantMiddleware.

    CRITICAL: This is a key part of tenant isolation.
    """
    tenant_id = getattr(request.state, "tenant_id", None)
    if not tenant_id:
        logger.error("No tenant in request state - middleware may have failed")
        raise TenantIsolationError("Tenant context not available")
    return tenant_id


def get_locks(request: Request) -> TenantLocks:
    return request.app.state.locks


def get_scheduler(request: Request) -> Optional[ResetScheduler]:
    return getattr(request.app.state, "scheduler", None)


def get_directory(request: Request) -> Optional[DirectoryClient]:
    return getattr(request.app.state, "directory", None)


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


async def get_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tenant_id: str = Depends(get_current_tenant_id),
    directory: Optional[DirectoryClient] = Depends(get_directory),
) -> ActorContext:
    """
    The chat user a request acts for.

    This dependency:
    1. Validates the gateway JWT
    2. Verifies the token's group matches the request tenant (CRITICAL)
    3. Attaches the platform directory for privilege lookups
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        log_security_event("invalid_token", {"tenant_id": tenant_id}, logger)
        raise AuthenticationError("Invalid or expired token")

    # CRITICAL SECURITY CHECK: a token issued for one group must not act in another
    token_tenant = token_tenant_id(payload)
    if token_tenant != tenant_id:
        log_security_event(
            "tenant_isolation_violation",
            {"tenant_id": tenant_id, "token_tenant": token_tenant, "user_id": payload.get("sub")},
            logger
        )
        raise TenantIsolationError("Token tenant mismatch")

    return ActorContext(
        platform_id=str(payload["platform"]),
        group_id=str(payload["group_id"]),
        user_id=str(payload["sub"]),
        display_name=payload.get("name") or "",
        directory=directory,
    )


def get_arcade_service(
    store: RecordStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    locks: TenantLocks = Depends(get_locks),
    scheduler: Optional[ResetScheduler] = Depends(get_scheduler),
) -> ArcadeService:
    return ArcadeService(store, settings, locks, scheduler=scheduler)


def get_report_aggregator(
    store: RecordStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    scheduler: Optional[ResetScheduler] = Depends(get_scheduler),
) -> ReportAggregator:
    return ReportAggregator(store, settings, scheduler=scheduler)
