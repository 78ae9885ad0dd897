"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator

from .enums import EntityType, NodeType, HistoryRecordKind, ViolationCode


# ============================================================================
# Actor Snapshots
# ============================================================================

class ActorRef(BaseModel):
    """Snapshot of whoever caused a change"""
    model_config = ConfigDict(extra="forbid")

    actor_id: str = Field(..., min_length=1, description="Stable actor identifier")
    display_name: Optional[str] = Field(None, description="Display name at the time of the change")
    email: Optional[EmailStr] = Field(None, description="Actor email if known")


SYSTEM_ACTOR = ActorRef(actor_id="system", display_name="Status Reconciler")


# ============================================================================
# Status
# ============================================================================

class StatusDefinition(BaseModel):
    """Administrator input for a new status"""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=200)
    color_code: str = Field(..., min_length=1, max_length=32)
    description: Optional[str] = Field(None, max_length=2000)
    is_substatus: bool = False
    parent_status: Optional[str] = Field(None, description="Name of the master status (sub-statuses only)")
    is_positive: bool = True
    is_active: bool = True
    order: int = Field(default=0, description="Sort key among siblings")
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("name", "parent_status")
    @classmethod
    def _normalize_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip().lower()


class Status(StatusDefinition):
    """A named state an entity can occupy"""
    model_config = ConfigDict(extra="ignore")

    status_id: str = Field(..., description="Unique status ID")
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Workflow Graph
# ============================================================================

class WorkflowNode(BaseModel):
    """A status placed in a workflow graph"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    node_id: str = Field(..., min_length=1, description="Unique within the graph")
    status_id: str = Field(..., min_length=1)
    node_type: NodeType = NodeType.MASTER
    parent_node_id: Optional[str] = Field(None, description="Master node of a substatus node")
    order: int = 0
    is_initial: bool = False
    is_final: bool = False


class WorkflowEdge(BaseModel):
    """A permitted transition between two nodes"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    from_node_id: str = Field(..., min_length=1)
    to_node_id: str = Field(..., min_length=1)
    condition: Optional[str] = Field(None, description="Opaque label evaluated by the caller")
    is_loop: bool = Field(default=False, description="May return to an already visited node")

    @property
    def key(self) -> str:
        return f"{self.from_node_id}->{self.to_node_id}"


class WorkflowGraph(BaseModel):
    """
    One version of a workflow for an entity type

    Drafts are editable working copies; published graphs are immutable
    snapshots. The two halves of one logical workflow point at each other
    through draft_workflow_id / final_workflow_id.
    """
    model_config = ConfigDict(extra="ignore")

    workflow_id: str
    name: str = Field(..., min_length=1, max_length=200)
    entity_type: EntityType
    is_draft: bool = True
    description: Optional[str] = None
    draft_workflow_id: Optional[str] = None
    final_workflow_id: Optional[str] = None
    initial_node_id: Optional[str] = None
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)

    # Draft optimistic lock / published sequence
    version: int = 1
    version_number: Optional[int] = None

    created_by: Optional[ActorRef] = None
    created_at: datetime
    updated_at: datetime
    published_by: Optional[ActorRef] = None
    published_at: Optional[datetime] = None
    superseded_at: Optional[datetime] = None


class GraphViolation(BaseModel):
    """A single structural problem in a workflow graph"""
    code: ViolationCode
    message: str
    node_id: Optional[str] = None
    edge: Optional[str] = Field(None, description="Edge key 'from->to'")


class PublishedPointer(BaseModel):
    """Names the active published graph for (name, entity_type)"""
    name: str
    entity_type: EntityType
    workflow_id: str
    published_at: datetime


class NextStatus(BaseModel):
    """Read-only projection of one legal transition"""
    status_id: str
    status_name: Optional[str] = None
    display_name: Optional[str] = None
    node_id: str
    condition: Optional[str] = None
    is_loop: bool = False
    is_final: bool = False


# ============================================================================
# Status History
# ============================================================================

class StatusHistoryRecord(BaseModel):
    """Immutable audit record of one status change"""
    model_config = ConfigDict(extra="ignore")

    record_id: str
    entity_id: str
    entity_type: EntityType
    status_id: str
    status_name: Optional[str] = None
    from_status_id: Optional[str] = None
    workflow_id: Optional[str] = None
    kind: HistoryRecordKind = HistoryRecordKind.TRANSITION
    sequence: int = 0
    changed_at: datetime
    changed_by: ActorRef
    comment: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    correlation_id: Optional[str] = None


class TransitionResult(BaseModel):
    """Outcome of a successful transition"""
    entity_id: str
    entity_type: EntityType
    from_status_id: str
    to_status_id: str
    workflow_id: str
    record: StatusHistoryRecord


class ReconciliationResult(BaseModel):
    """Outcome of comparing an entity's cached status with its history"""
    entity_id: str
    entity_type: EntityType
    cached_status_id: str
    history_status_id: Optional[str] = None
    in_sync: bool
    repaired_record: Optional[StatusHistoryRecord] = None
