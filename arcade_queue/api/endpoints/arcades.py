"""
Arcade Endpoints

Queue lookups and updates within a tenant (chat group).

Access:
- List / search / info / queue update: any member of the group
- Add arcade, manual count reset: owner, or admin / allow-listed per mode
"""
from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from arcade_queue.api.deps import get_actor, get_arcade_service, get_report_aggregator
from arcade_queue.core.directory import ActorContext
from arcade_queue.core.queue import ArcadeService
from arcade_queue.core.reports import ReportAggregator
from arcade_queue.schemas.arcade import (
    ArcadeCreate,
    ArcadeListResponse,
    ArcadeView,
    CountResetResponse,
    QueueUpdate,
    QueueUpdateResult,
    SearchResult,
)

router = APIRouter(prefix="/arcades", tags=["arcades"])


@router.get("", response_model=ArcadeListResponse)
def list_arcades(
    actor: ActorContext = Depends(get_actor),
    reports: ReportAggregator = Depends(get_report_aggregator)
):
    """
    All arcades visible to the group, sorted by name.

    Includes read-only projections of the bound group's arcades.
    """
    arcades = reports.list_all(actor.tenant_id)
    return ArcadeListResponse(arcades=arcades, total=len(arcades))


@router.get("/search", response_model=SearchResult)
def search_arcades(
    q: Optional[str] = Query(None, max_length=255),
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    """
    General query entry point.

    Empty query lists everything, a trailing "j" lists every arcade whose
    alias contains the rest, anything else resolves one arcade and falls
    back to a fuzzy scan.
    """
    return service.search(q, actor.tenant_id)


@router.get("/{query}", response_model=ArcadeView)
def get_arcade(
    query: str,
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    return service.get_info(query, actor.tenant_id)


@router.post("", response_model=ArcadeView, status_code=status.HTTP_201_CREATED)
def add_arcade(
    arcade_data: ArcadeCreate,
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    """
    Add an arcade to the group.

    Names are unique per group; aliases are unique across the group's
    names and aliases.
    """
    return service.add_arcade(arcade_data.name, arcade_data.aliases, actor)


@router.post("/reset-counts", response_model=CountResetResponse)
def reset_counts(
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    """Zero every queue in the group now, outside the daily schedule."""
    return service.reset_counts(actor)


@router.post("/{query}/queue", response_model=QueueUpdateResult)
def update_queue(
    query: str,
    update: QueueUpdate,
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    """
    Record the current queue length of an arcade.

    Arcades seen through a binding are never written; the update creates
    (or reuses) a local arcade of the same name.
    """
    return service.update_queue(query, update.count, actor)
