"""
Binding Endpoints

A group can mirror another group's arcades read-only. At most one binding
per group; setting it again replaces source and enabled flag.
"""
from fastapi import APIRouter, Depends

from arcade_queue.api.deps import get_actor, get_arcade_service
from arcade_queue.core.directory import ActorContext
from arcade_queue.core.exceptions import NotFoundError
from arcade_queue.core.queue import ArcadeService
from arcade_queue.schemas.binding import BindingRequest, BindingResponse, UnbindResponse

router = APIRouter(prefix="/binding", tags=["binding"])


@router.get("", response_model=BindingResponse)
def get_binding(
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    binding = service.bindings.get_binding(actor.tenant_id)
    if not binding:
        raise NotFoundError("This group is not bound to another group")
    return binding


@router.put("", response_model=BindingResponse)
def set_binding(
    binding_data: BindingRequest,
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    """Bind this group to a source group, or toggle the existing binding."""
    return service.bind(binding_data.source_tenant_id, binding_data.enabled, actor)


@router.delete("", response_model=UnbindResponse)
def unbind(
    actor: ActorContext = Depends(get_actor),
    service: ArcadeService = Depends(get_arcade_service)
):
    """
    Remove the binding.

    Also deletes every local arcade copied from the source group, with its
    history.
    """
    result = service.unbind(actor)
    return UnbindResponse(
        tenant_id=result.tenant_id,
        source_tenant_id=result.source_tenant_id,
        deleted_arcades=result.deleted_arcades,
    )
