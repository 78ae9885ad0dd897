"""Entity API Routes - Status transitions and history of business entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..deps import get_actor_dep, get_correlation_id_dep, get_runtime_dep
from ...config.settings import settings
from ...domain.models import ActorRef
from ...domain.enums import EntityType
from ...services.runtime import EngineRuntime
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


class TransitionRequest(BaseModel):
    """Request to move an entity to another status"""
    to_status_id: str = Field(..., min_length=1)
    from_status_id: Optional[str] = Field(
        None,
        description="Status the caller saw; omit to transition from the current status with retries"
    )
    comment: Optional[str] = Field(None, max_length=2000)


class NextStatusesResponse(BaseModel):
    """Legal next statuses of an entity"""
    entity_id: str
    entity_type: EntityType
    current_status_id: str
    items: List[Dict[str, Any]]


class HistoryResponse(BaseModel):
    """Status history of an entity, oldest first"""
    entity_id: str
    entity_type: EntityType
    items: List[Dict[str, Any]]
    total: int


@router.get("/{entity_type}/{entity_id}/next-statuses", response_model=NextStatusesResponse)
def get_next_statuses(
    entity_type: EntityType,
    entity_id: str,
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Statuses the entity can move to from its current status"""
    current_status_id = runtime.entity_stores.get(entity_type).read_status(entity_id)
    next_statuses = runtime.engine.get_next_statuses(entity_type, current_status_id)
    return NextStatusesResponse(
        entity_id=entity_id,
        entity_type=entity_type,
        current_status_id=current_status_id,
        items=[n.model_dump(mode="json") for n in next_statuses]
    )


@router.post("/{entity_type}/{entity_id}/transitions")
def transition_entity(
    entity_type: EntityType,
    entity_id: str,
    request: TransitionRequest,
    actor: ActorRef = Depends(get_actor_dep),
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Transition an entity

    With from_status_id the transition fails with 409 if the entity moved in
    the meantime. Without it the current status is read and the transition
    is retried on concurrent modification.
    """
    if request.from_status_id:
        result = runtime.engine.transition(
            entity_type, entity_id, request.from_status_id, request.to_status_id, actor, request.comment
        )
    else:
        result = runtime.engine.transition_to(
            entity_type, entity_id, request.to_status_id, actor, request.comment,
            max_retries=settings.transition_max_retries
        )
    return result.model_dump(mode="json")


@router.get("/{entity_type}/{entity_id}/history", response_model=HistoryResponse)
def get_history(
    entity_type: EntityType,
    entity_id: str,
    since: Optional[datetime] = Query(None),
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Status history of an entity, oldest first"""
    records = runtime.history.history_of(entity_id, entity_type, since=since)
    return HistoryResponse(
        entity_id=entity_id,
        entity_type=entity_type,
        items=[r.model_dump(mode="json") for r in records],
        total=len(records)
    )


@router.post("/{entity_type}/{entity_id}/reconcile")
def reconcile_entity(
    entity_type: EntityType,
    entity_id: str,
    actor: ActorRef = Depends(get_actor_dep),
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Append a catch-up history record if history lags the entity status"""
    result = runtime.reconciler.reconcile(entity_type, entity_id)
    logger.info(
        f"Reconcile requested for {entity_type.value} {entity_id} (in_sync={result.in_sync})",
        extra={"entity_id": entity_id, "entity_type": entity_type.value, "actor_id": actor.actor_id}
    )
    return result.model_dump(mode="json")
