"""
Transition Engine - Validates and executes entity status changes

=============================================================================
MODULE STRUCTURE
=============================================================================

1. PUBLISHED GRAPH RESOLUTION
   - get_published_workflow: Active graph for an entity type (cached)

2. READ-ONLY PROJECTIONS
   - get_next_statuses: Legal targets from a status

3. TRANSITIONS
   - transition: Single compare-and-swap transition with history append
   - transition_to: Re-read and retry wrapper for callers without a
     known current status

=============================================================================
CONSISTENCY
=============================================================================

History is the authoritative trail; the entity's status field is a cache.
The compare-and-swap on the entity document is the only serialization point.
When the history append fails after the swap committed, the entity is NOT
rolled back: the error is raised with status_committed=True and the
reconciler appends the missing record later.
=============================================================================
"""
from typing import Callable, List, Optional

from ..domain.models import ActorRef, NextStatus, Status, TransitionResult, WorkflowNode
from ..domain.enums import EntityType
from ..domain.errors import (
    ConcurrentModificationError, InvalidTransitionError, StorageError,
    WorkflowNotFoundError
)
from ..repositories.workflow_repo import WorkflowRepository
from ..repositories.entity_repo import EntityStoreRegistry
from .graph import CompiledWorkflow
from .history_store import HistoryStore
from .published_cache import PublishedWorkflowCache
from ..utils.logger import get_logger

logger = get_logger(__name__)


class TransitionEngine:
    """
    Execute status transitions against the published workflow of an entity type

    Responsibilities:
    - Resolve the published graph (never a draft)
    - Reject transitions without a matching edge
    - Swap the entity status only if it still equals the expected status
    - Append exactly one history record per successful transition
    """

    def __init__(
        self,
        workflow_repo: WorkflowRepository,
        entity_stores: EntityStoreRegistry,
        history: HistoryStore,
        cache: PublishedWorkflowCache,
        status_lookup: Optional[Callable[[str], Optional[Status]]] = None
    ):
        self.workflow_repo = workflow_repo
        self.entity_stores = entity_stores
        self.history = history
        self.cache = cache
        self.status_lookup = status_lookup

    # =========================================================================
    # Published graph resolution
    # =========================================================================

    def get_published_workflow(self, entity_type: EntityType) -> CompiledWorkflow:
        """
        Active published workflow for an entity type

        Raises:
            WorkflowNotFoundError: Nothing published for the type
        """
        cached = self.cache.get_for_type(entity_type)
        if cached is not None:
            return cached

        generation = self.cache.generation()
        pointer = self.workflow_repo.get_latest_pointer_for_type(entity_type)
        graph = self.workflow_repo.get_published_graph(pointer.workflow_id) if pointer else None
        if graph is None:
            raise WorkflowNotFoundError(
                f"No published workflow for entity type {entity_type.value}",
                details={"entity_type": entity_type.value}
            )

        workflow = CompiledWorkflow(graph)
        self.cache.put_for_type(entity_type, workflow, generation)
        return workflow

    # =========================================================================
    # Read-only projections
    # =========================================================================

    def get_next_statuses(self, entity_type: EntityType, current_status_id: str) -> List[NextStatus]:
        """
        Statuses reachable in one step from current_status_id

        An empty list means the status is terminal in the published graph.

        Raises:
            WorkflowNotFoundError: Nothing published for the type
            InvalidTransitionError: Status is not part of the published graph
        """
        workflow = self.get_published_workflow(entity_type)
        node = self._resolve_node(workflow, current_status_id)

        next_statuses = []
        for edge in workflow.legal_transitions(node.node_id):
            target = workflow.node(edge.to_node_id)
            if target is None:
                continue
            status = self.status_lookup(target.status_id) if self.status_lookup else None
            next_statuses.append(NextStatus(
                status_id=target.status_id,
                status_name=status.name if status else None,
                display_name=status.display_name if status else None,
                node_id=target.node_id,
                condition=edge.condition,
                is_loop=edge.is_loop,
                is_final=workflow.is_terminal(target.node_id)
            ))
        return next_statuses

    # =========================================================================
    # Transitions
    # =========================================================================

    def transition(
        self,
        entity_type: EntityType,
        entity_id: str,
        from_status_id: str,
        to_status_id: str,
        actor: ActorRef,
        comment: Optional[str] = None
    ) -> TransitionResult:
        """
        Move an entity from from_status_id to to_status_id

        Raises:
            WorkflowNotFoundError: Nothing published for the type
            InvalidTransitionError: No edge between the two statuses
            ConcurrentModificationError: Entity status is no longer from_status_id
            EntityNotFoundError: Entity does not exist
            StorageError: Storage failure; details.status_committed tells
                whether the entity status was already changed
        """
        workflow = self.get_published_workflow(entity_type)
        from_node = self._resolve_node(workflow, from_status_id)
        to_node = workflow.resolve_node_for_status(to_status_id)

        edge = workflow.find_edge(from_node.node_id, to_node.node_id) if to_node else None
        if edge is None:
            raise InvalidTransitionError(
                f"Transition from {from_status_id} to {to_status_id} is not allowed "
                f"by workflow {workflow.workflow_id}",
                details={
                    "entity_type": entity_type.value,
                    "from_status_id": from_status_id,
                    "to_status_id": to_status_id,
                    "workflow_id": workflow.workflow_id,
                }
            )

        store = self.entity_stores.get(entity_type)
        swapped = store.compare_and_swap_status(entity_id, from_status_id, to_status_id)
        if not swapped:
            logger.warning(
                f"Status of {entity_type.value} {entity_id} is no longer {from_status_id}",
                extra={
                    "entity_id": entity_id,
                    "entity_type": entity_type.value,
                    "from_status_id": from_status_id,
                    "to_status_id": to_status_id,
                    "actor_id": actor.actor_id,
                }
            )
            raise ConcurrentModificationError(
                f"{entity_type.value} {entity_id} was modified concurrently. Please refresh and try again.",
                details={"entity_id": entity_id, "expected_status_id": from_status_id}
            )

        status = self.status_lookup(to_status_id) if self.status_lookup else None
        try:
            record = self.history.record_transition(
                entity_type=entity_type,
                entity_id=entity_id,
                from_status_id=from_status_id,
                to_status_id=to_status_id,
                actor=actor,
                workflow_id=workflow.workflow_id,
                status_name=status.name if status else None,
                comment=comment
            )
        except StorageError as e:
            logger.error(
                f"History append failed after status change of {entity_type.value} {entity_id}: {e.message}",
                extra={
                    "entity_id": entity_id,
                    "entity_type": entity_type.value,
                    "from_status_id": from_status_id,
                    "to_status_id": to_status_id,
                    "workflow_id": workflow.workflow_id,
                    "error_code": e.error_code,
                }
            )
            raise StorageError(
                f"Status of {entity_type.value} {entity_id} changed but history was not recorded",
                details={**e.details, "entity_id": entity_id, "status_committed": True}
            ) from e

        logger.info(
            f"Transitioned {entity_type.value} {entity_id}: {from_status_id} -> {to_status_id}",
            extra={
                "entity_id": entity_id,
                "entity_type": entity_type.value,
                "from_status_id": from_status_id,
                "to_status_id": to_status_id,
                "workflow_id": workflow.workflow_id,
                "actor_id": actor.actor_id,
                "record_id": record.record_id,
            }
        )

        return TransitionResult(
            entity_id=entity_id,
            entity_type=entity_type,
            from_status_id=from_status_id,
            to_status_id=to_status_id,
            workflow_id=workflow.workflow_id,
            record=record
        )

    def transition_to(
        self,
        entity_type: EntityType,
        entity_id: str,
        to_status_id: str,
        actor: ActorRef,
        comment: Optional[str] = None,
        max_retries: int = 3
    ) -> TransitionResult:
        """
        Transition from whatever status the entity currently has

        The current status is re-read after each lost compare-and-swap. The
        edge check is repeated every attempt, so a concurrent move to a
        status without an edge ends in InvalidTransitionError.
        """
        store = self.entity_stores.get(entity_type)
        attempts = max(1, max_retries)
        attempt = 1

        while True:
            current_status_id = store.read_status(entity_id)
            try:
                return self.transition(
                    entity_type, entity_id, current_status_id, to_status_id, actor, comment
                )
            except ConcurrentModificationError:
                if attempt >= attempts:
                    raise
                attempt += 1
                logger.info(
                    f"Retrying transition of {entity_type.value} {entity_id} (attempt {attempt}/{attempts})",
                    extra={"entity_id": entity_id, "entity_type": entity_type.value}
                )

    @staticmethod
    def _resolve_node(workflow: CompiledWorkflow, status_id: str) -> WorkflowNode:
        node = workflow.resolve_node_for_status(status_id)
        if node is None:
            raise InvalidTransitionError(
                f"Status {status_id} is not part of workflow {workflow.workflow_id}",
                details={"status_id": status_id, "workflow_id": workflow.workflow_id}
            )
        return node
