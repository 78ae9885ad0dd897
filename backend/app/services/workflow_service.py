"""Workflow Service - Workflow draft editing and publishing"""
from typing import List, Optional, Tuple

from ..domain.models import ActorRef, GraphViolation, WorkflowEdge, WorkflowGraph, WorkflowNode
from ..domain.enums import EntityType
from ..domain.errors import StorageError, WorkflowNotFoundError, WorkflowValidationError
from ..repositories.workflow_repo import WorkflowRepository
from ..engine.graph import CompiledWorkflow
from ..engine.published_cache import PublishedWorkflowCache
from .status_service import StatusRegistry
from ..utils.idgen import generate_draft_workflow_id, generate_published_workflow_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class WorkflowService:
    """
    Service for workflow graph operations

    Drafts are edited freely; each save reports its violations without
    rejecting the save. Publishing copies a valid draft into a new immutable
    version and swaps the published pointer, which is the single commit point.
    """

    def __init__(
        self,
        repo: Optional[WorkflowRepository] = None,
        status_registry: Optional[StatusRegistry] = None,
        cache: Optional[PublishedWorkflowCache] = None
    ):
        self.repo = repo or WorkflowRepository()
        self.status_registry = status_registry or StatusRegistry()
        self.cache = cache or PublishedWorkflowCache()

    # =========================================================================
    # Drafts
    # =========================================================================

    def create_draft(
        self,
        name: str,
        entity_type: EntityType,
        actor: ActorRef,
        description: Optional[str] = None,
        nodes: Optional[List[WorkflowNode]] = None,
        edges: Optional[List[WorkflowEdge]] = None,
        initial_node_id: Optional[str] = None
    ) -> WorkflowGraph:
        """Create a new draft (one per name and entity type)"""
        now = utc_now()
        draft = WorkflowGraph(
            workflow_id=generate_draft_workflow_id(),
            name=name,
            entity_type=entity_type,
            is_draft=True,
            description=description,
            initial_node_id=initial_node_id,
            nodes=nodes or [],
            edges=edges or [],
            created_by=actor,
            created_at=now,
            updated_at=now,
            version=1
        )
        return self.repo.create_draft(draft)

    def get_draft(self, workflow_id: str) -> WorkflowGraph:
        return self.repo.get_draft_or_raise(workflow_id)

    def list_drafts(self, entity_type: Optional[EntityType] = None) -> List[WorkflowGraph]:
        return self.repo.list_drafts(entity_type=entity_type)

    def save_draft(
        self,
        workflow_id: str,
        nodes: List[WorkflowNode],
        edges: List[WorkflowEdge],
        expected_version: int,
        initial_node_id: Optional[str] = None,
        description: Optional[str] = None
    ) -> Tuple[WorkflowGraph, List[GraphViolation]]:
        """
        Save the draft graph

        Returns:
            Tuple of (updated draft, violations found in it)

        Raises:
            ConcurrentModificationError: Draft was saved by someone else
        """
        updates = {
            "nodes": [n.model_dump(mode="json") for n in nodes],
            "edges": [e.model_dump(mode="json") for e in edges],
            "initial_node_id": initial_node_id,
        }
        if description is not None:
            updates["description"] = description

        draft = self.repo.update_draft(workflow_id, updates, expected_version=expected_version)
        return draft, self.validate_graph(draft)

    def create_draft_from_published(self, name: str, entity_type: EntityType, actor: ActorRef) -> WorkflowGraph:
        """
        Copy the active published graph into the draft for further editing

        An existing draft for (name, entity_type) is overwritten.
        """
        published = self.get_published(name, entity_type)
        content = {
            "description": published.description,
            "initial_node_id": published.initial_node_id,
            "nodes": [n.model_dump(mode="json") for n in published.nodes],
            "edges": [e.model_dump(mode="json") for e in published.edges],
            "final_workflow_id": published.workflow_id,
        }

        existing = self.repo.get_draft_by_name(name, entity_type)
        if existing:
            return self.repo.update_draft(existing.workflow_id, content, expected_version=existing.version)

        draft = self.create_draft(
            name=name,
            entity_type=entity_type,
            actor=actor,
            description=published.description,
            nodes=list(published.nodes),
            edges=list(published.edges),
            initial_node_id=published.initial_node_id
        )
        return self.repo.update_draft(draft.workflow_id, {"final_workflow_id": published.workflow_id})

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_graph(self, graph: WorkflowGraph) -> List[GraphViolation]:
        """Structural violations of a graph, checked against the status registry"""
        return CompiledWorkflow(graph).validate(self.status_registry.lookup)

    def validate_draft(self, workflow_id: str) -> List[GraphViolation]:
        return self.validate_graph(self.repo.get_draft_or_raise(workflow_id))

    # =========================================================================
    # Publishing
    # =========================================================================

    def publish_workflow(self, workflow_id: str, actor: ActorRef) -> WorkflowGraph:
        """
        Publish a draft as a new immutable version

        Raises:
            WorkflowValidationError: Draft has violations; the active
                published version is left untouched
            ConcurrentModificationError: Same version published concurrently
            StorageError: Storage failure; details.publish_committed tells
                whether the new version is already active
        """
        draft = self.repo.get_draft_or_raise(workflow_id)

        violations = self.validate_graph(draft)
        if violations:
            raise WorkflowValidationError(
                f"Workflow '{draft.name}' has {len(violations)} violation(s) and cannot be published",
                details={
                    "workflow_id": workflow_id,
                    "violations": [v.model_dump(mode="json") for v in violations]
                }
            )

        compiled = CompiledWorkflow(draft)
        now = utc_now()
        published = WorkflowGraph(
            workflow_id=generate_published_workflow_id(),
            name=draft.name,
            entity_type=draft.entity_type,
            is_draft=False,
            description=draft.description,
            draft_workflow_id=draft.workflow_id,
            initial_node_id=compiled.initial_node().node_id,
            nodes=list(draft.nodes),
            edges=list(draft.edges),
            version=1,
            version_number=self.repo.get_next_version_number(draft.name, draft.entity_type),
            created_by=draft.created_by,
            created_at=now,
            updated_at=now,
            published_by=actor,
            published_at=now
        )
        self.repo.create_published(published)

        # Commit point: the new version becomes active here
        previous_id = self.repo.swap_published_pointer(
            draft.name, draft.entity_type, published.workflow_id, now
        )
        self.cache.invalidate(draft.name, draft.entity_type)

        try:
            if previous_id and previous_id != published.workflow_id:
                self.repo.mark_superseded(previous_id, now)
            self.repo.update_draft(draft.workflow_id, {"final_workflow_id": published.workflow_id})
        except StorageError as e:
            logger.error(
                f"Workflow '{draft.name}' published as {published.workflow_id} but bookkeeping failed: {e.message}",
                extra={"workflow_id": published.workflow_id, "error_code": e.error_code}
            )
            raise StorageError(
                f"Workflow '{draft.name}' was published but its previous version or draft link was not updated",
                details={**e.details, "workflow_id": published.workflow_id, "publish_committed": True}
            ) from e

        logger.info(
            f"Published workflow '{draft.name}' version {published.version_number}: {published.workflow_id}",
            extra={"workflow_id": published.workflow_id, "entity_type": draft.entity_type.value}
        )
        return published

    # =========================================================================
    # Published versions
    # =========================================================================

    def get_published(self, name: str, entity_type: EntityType) -> WorkflowGraph:
        """Active published version of (name, entity_type)"""
        cached = self.cache.get_for_name(name, entity_type)
        if cached is not None:
            return cached.graph

        generation = self.cache.generation()
        pointer = self.repo.get_pointer(name, entity_type)
        graph = self.repo.get_published_graph(pointer.workflow_id) if pointer else None
        if graph is None:
            raise WorkflowNotFoundError(
                f"Workflow '{name}' is not published for {entity_type.value}",
                details={"name": name, "entity_type": entity_type.value}
            )

        self.cache.put_for_name(name, entity_type, CompiledWorkflow(graph), generation)
        return graph

    def get_workflow_version(self, workflow_id: str) -> WorkflowGraph:
        """Any published version, superseded ones included"""
        graph = self.repo.get_published_graph(workflow_id)
        if graph is None:
            raise WorkflowNotFoundError(
                f"Published workflow {workflow_id} not found",
                details={"workflow_id": workflow_id}
            )
        return graph

    def list_versions(self, name: str, entity_type: EntityType) -> List[WorkflowGraph]:
        """Published versions of (name, entity_type), newest first"""
        return self.repo.list_published_versions(name, entity_type)
