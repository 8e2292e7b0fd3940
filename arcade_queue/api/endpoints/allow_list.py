"""
Allow-list Endpoints

Per-group list of users granted management rights when ALLOW_LIST_ENABLED
is on. Changing the list requires owner or admin rights unless
ALLOW_LIST_REQUIRE_ADMIN is off.
"""
from fastapi import APIRouter, Depends, status

from arcade_queue.api.deps import get_actor, get_arcade_service
from arcade_queue.core.directory import ActorContext
from arcade_queue.core.queue import ArcadeService
from arcade_queue.schemas.allow_list import (
    AllowListAdd,
    AllowListClearResponse,
    AllowListEntryResponse,
    AllowListResponse,
)

router = APIRouter(prefix="/allow-list", tags=["allow-list"])


@router.get("", response_model=AllowListResponse)
def list_allow_list(
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    entries = service.list_allow_list(actor.tenant_id)
    return AllowListResponse(entries=entries, total=len(entries))


@router.post("", response_model=AllowListEntryResponse, status_code=status.HTTP_201_CREATED)
def add_allow_list_entry(
    entry_data: AllowListAdd,
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    """
    Add a user to the allow-list.

    A bare user id is taken to be on the caller's platform.
    """
    return service.add_allow_list(entry_data.user_id, entry_data.user_name, actor)


@router.delete("/{user_id}", response_model=AllowListEntryResponse)
def remove_allow_list_entry(
    user_id: str,
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    entry = service.remove_allow_list(user_id, actor)
    return AllowListEntryResponse.model_validate(entry)


@router.delete("", response_model=AllowListClearResponse)
def clear_allow_list(
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    removed = service.clear_allow_list(actor)
    return AllowListClearResponse(tenant_id=actor.tenant_id, removed=removed)
