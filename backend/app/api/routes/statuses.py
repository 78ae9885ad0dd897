"""Status API Routes - Status registry endpoints"""
from typing import Any, Dict, List
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from ..deps import get_actor_dep, get_correlation_id_dep, get_runtime_dep
from ...domain.models import ActorRef, StatusDefinition
from ...services.runtime import EngineRuntime
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


class StatusListResponse(BaseModel):
    """Response for status lists"""
    items: List[Dict[str, Any]]
    total: int


@router.post("", status_code=status.HTTP_201_CREATED)
def create_status(
    request: StatusDefinition,
    actor: ActorRef = Depends(get_actor_dep),
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Register a new status

    Sub-statuses must name an existing master status in parent_status.
    """
    created = runtime.status_registry.create(request)
    logger.info(
        f"Created status '{created.name}'",
        extra={"status_id": created.status_id, "actor_id": actor.actor_id}
    )
    return created.model_dump(mode="json")


@router.get("", response_model=StatusListResponse)
def list_statuses(
    active_only: bool = Query(False),
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """List all statuses ordered by name"""
    statuses = runtime.status_registry.list_statuses(active_only=active_only)
    return StatusListResponse(items=[s.model_dump(mode="json") for s in statuses], total=len(statuses))


@router.get("/{name}")
def get_status(
    name: str,
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Get a status by its name"""
    return runtime.status_registry.find_by_name(name).model_dump(mode="json")


@router.get("/{name}/substatuses", response_model=StatusListResponse)
def list_substatuses(
    name: str,
    active_only: bool = Query(False),
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Sub-statuses of a master status, in display order"""
    statuses = runtime.status_registry.substatuses_of(name, active_only=active_only)
    return StatusListResponse(items=[s.model_dump(mode="json") for s in statuses], total=len(statuses))


@router.post("/{name}/deactivate")
def deactivate_status(
    name: str,
    actor: ActorRef = Depends(get_actor_dep),
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Mark a status inactive; masters with active sub-statuses are refused"""
    deactivated = runtime.status_registry.deactivate(name)
    logger.info(
        f"Deactivated status '{deactivated.name}'",
        extra={"status_id": deactivated.status_id, "actor_id": actor.actor_id}
    )
    return deactivated.model_dump(mode="json")
