"""
Admin Endpoints

Group-level status, statistics, privilege check and the full data reset.
"""
from fastapi import APIRouter, Depends, Query

from arcade_queue.api.deps import get_actor, get_arcade_service, get_report_aggregator
from arcade_queue.core.directory import ActorContext
from arcade_queue.core.queue import ArcadeService
from arcade_queue.core.reports import ReportAggregator
from arcade_queue.schemas.report import (
    ArcadeReport,
    PrivilegeReport,
    TenantResetRequest,
    TenantResetResponse,
    TenantStatus,
)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/status", response_model=TenantStatus)
def get_status(
    actor: ActorContext = Depends(get_actor),
    reports: ReportAggregator = Depends(get_report_aggregator)
):
    return reports.status(actor.tenant_id)


@router.get("/report", response_model=ArcadeReport)
def get_report(
    actor: ActorContext = Depends(get_actor),
    reports: ReportAggregator = Depends(get_report_aggregator)
):
    """Statistics over local and bound arcades."""
    return reports.report(actor.tenant_id)


@router.get("/whoami", response_model=PrivilegeReport)
def whoami(
    include_member: bool = Query(False),
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    """
    Privilege tiers of the caller.

    With include_member the raw directory record is returned too, which
    helps when configuring OWNER_IDS / ADMIN_ROLES for a new platform.
    """
    return service.auth.privileges(actor, include_member=include_member)


@router.post("/reset", response_model=TenantResetResponse)
def reset_group(
    reset_data: TenantResetRequest,
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    """
    Delete all of the group's data.

    DANGER: irreversible. The body must repeat RESET_CONFIRMATION_TEXT
    exactly.
    """
    return service.reset_tenant(actor, reset_data.confirmation)
