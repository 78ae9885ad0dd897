"""Workflow API Routes - Designer endpoints"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from ..deps import get_actor_dep, get_correlation_id_dep, get_runtime_dep
from ...domain.models import ActorRef, WorkflowEdge, WorkflowNode
from ...domain.enums import EntityType
from ...services.runtime import EngineRuntime
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class CreateDraftRequest(BaseModel):
    """Request to create a new workflow draft"""
    name: str = Field(..., min_length=1, max_length=200)
    entity_type: EntityType
    description: Optional[str] = Field(None, max_length=2000)
    initial_node_id: Optional[str] = None
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)


class SaveDraftRequest(BaseModel):
    """Request to save a workflow draft"""
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)
    initial_node_id: Optional[str] = None
    description: Optional[str] = Field(None, max_length=2000)
    expected_version: int = Field(..., ge=1, description="Draft version the edit was based on")


class DraftFromPublishedRequest(BaseModel):
    """Request to copy the active published graph back into a draft"""
    name: str = Field(..., min_length=1, max_length=200)
    entity_type: EntityType


class ValidationResult(BaseModel):
    """Validation result"""
    is_valid: bool
    violations: List[Dict[str, Any]] = Field(default_factory=list)


class SaveDraftResponse(BaseModel):
    """Response after saving draft"""
    workflow: Dict[str, Any]
    validation: ValidationResult


class WorkflowListResponse(BaseModel):
    """Response for workflow lists"""
    items: List[Dict[str, Any]]
    total: int


# ============================================================================
# Drafts
# ============================================================================

@router.post("/drafts", status_code=status.HTTP_201_CREATED)
def create_draft(
    request: CreateDraftRequest,
    actor: ActorRef = Depends(get_actor_dep),
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Create a workflow draft; one draft exists per name and entity type"""
    draft = runtime.workflow_service.create_draft(
        name=request.name,
        entity_type=request.entity_type,
        actor=actor,
        description=request.description,
        nodes=request.nodes,
        edges=request.edges,
        initial_node_id=request.initial_node_id
    )
    logger.info(
        f"Created workflow draft: {draft.workflow_id}",
        extra={"workflow_id": draft.workflow_id, "actor_id": actor.actor_id}
    )
    return draft.model_dump(mode="json")


@router.post("/drafts/from-published", status_code=status.HTTP_201_CREATED)
def create_draft_from_published(
    request: DraftFromPublishedRequest,
    actor: ActorRef = Depends(get_actor_dep),
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Start editing from the active published version"""
    draft = runtime.workflow_service.create_draft_from_published(request.name, request.entity_type, actor)
    return draft.model_dump(mode="json")


@router.get("/drafts", response_model=WorkflowListResponse)
def list_drafts(
    entity_type: Optional[EntityType] = Query(None),
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """List drafts, most recently edited first"""
    drafts = runtime.workflow_service.list_drafts(entity_type=entity_type)
    return WorkflowListResponse(items=[d.model_dump(mode="json") for d in drafts], total=len(drafts))


@router.get("/drafts/{workflow_id}")
def get_draft(
    workflow_id: str,
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Get a workflow draft"""
    return runtime.workflow_service.get_draft(workflow_id).model_dump(mode="json")


@router.put("/drafts/{workflow_id}", response_model=SaveDraftResponse)
def save_draft(
    workflow_id: str,
    request: SaveDraftRequest,
    actor: ActorRef = Depends(get_actor_dep),
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Save a workflow draft

    The save is never rejected for structural problems; they are returned
    as violations so the editor can show them.
    """
    draft, violations = runtime.workflow_service.save_draft(
        workflow_id=workflow_id,
        nodes=request.nodes,
        edges=request.edges,
        expected_version=request.expected_version,
        initial_node_id=request.initial_node_id,
        description=request.description
    )
    return SaveDraftResponse(
        workflow=draft.model_dump(mode="json"),
        validation=ValidationResult(
            is_valid=not violations,
            violations=[v.model_dump(mode="json") for v in violations]
        )
    )


@router.post("/drafts/{workflow_id}/validate", response_model=ValidationResult)
def validate_draft(
    workflow_id: str,
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Validate a draft without publishing it"""
    violations = runtime.workflow_service.validate_draft(workflow_id)
    return ValidationResult(is_valid=not violations, violations=[v.model_dump(mode="json") for v in violations])


@router.post("/drafts/{workflow_id}/publish", status_code=status.HTTP_201_CREATED)
def publish_draft(
    workflow_id: str,
    actor: ActorRef = Depends(get_actor_dep),
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """
    Publish a draft as a new immutable version

    Fails with 400 and the full violation list when the draft is invalid;
    the active published version stays in place.
    """
    published = runtime.workflow_service.publish_workflow(workflow_id, actor)
    return published.model_dump(mode="json")


# ============================================================================
# Published versions
# ============================================================================

@router.get("/published/{entity_type}")
def get_published_for_type(
    entity_type: EntityType,
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Workflow the transition engine currently uses for an entity type"""
    return runtime.engine.get_published_workflow(entity_type).graph.model_dump(mode="json")


@router.get("/published/{entity_type}/{name}/versions", response_model=WorkflowListResponse)
def list_versions(
    entity_type: EntityType,
    name: str,
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """All published versions of a workflow, newest first"""
    versions = runtime.workflow_service.list_versions(name, entity_type)
    return WorkflowListResponse(items=[v.model_dump(mode="json") for v in versions], total=len(versions))


@router.get("/versions/{workflow_id}")
def get_workflow_version(
    workflow_id: str,
    runtime: EngineRuntime = Depends(get_runtime_dep),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Any published version by ID, including superseded ones"""
    return runtime.workflow_service.get_workflow_version(workflow_id).model_dump(mode="json")
