"""Shared test builders and doubles"""
import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from app.domain.enums import EntityType, NodeType
from app.domain.errors import EntityNotFoundError
from app.domain.models import WorkflowEdge, WorkflowGraph, WorkflowNode
from app.repositories.entity_repo import EntityStatusStore
from app.utils.time import utc_now


def master(node_id: str, status_id: str, order: int = 0, initial: bool = False, final: bool = False) -> WorkflowNode:
    return WorkflowNode(
        node_id=node_id, status_id=status_id, node_type=NodeType.MASTER,
        order=order, is_initial=initial, is_final=final
    )


def sub(node_id: str, status_id: str, parent: Optional[str], order: int = 0, final: bool = False) -> WorkflowNode:
    return WorkflowNode(
        node_id=node_id, status_id=status_id, node_type=NodeType.SUBSTATUS,
        parent_node_id=parent, order=order, is_final=final
    )


def edge(source: str, target: str, loop: bool = False, condition: Optional[str] = None) -> WorkflowEdge:
    return WorkflowEdge(from_node_id=source, to_node_id=target, is_loop=loop, condition=condition)


def make_graph(
    nodes: List[WorkflowNode],
    edges: List[WorkflowEdge],
    entity_type: EntityType = EntityType.LEAD,
    initial_node_id: Optional[str] = None
) -> WorkflowGraph:
    now = utc_now()
    return WorkflowGraph(
        workflow_id="WFD-test",
        name="test-graph",
        entity_type=entity_type,
        initial_node_id=initial_node_id,
        nodes=nodes,
        edges=edges,
        created_at=now,
        updated_at=now
    )


class InMemoryEntityStore(EntityStatusStore):
    """Thread-safe entity status store double"""

    def __init__(self, entity_type: EntityType):
        self.entity_type = entity_type
        self._lock = threading.Lock()
        self._entities: Dict[str, Tuple[str, datetime]] = {}

    def create_entity(self, entity_id: str, status_id: str, changed_at: Optional[datetime] = None) -> None:
        with self._lock:
            self._entities[entity_id] = (status_id, changed_at or utc_now())

    def force_status(self, entity_id: str, status_id: str, changed_at: Optional[datetime] = None) -> None:
        """Change the cached status without going through the engine"""
        self.create_entity(entity_id, status_id, changed_at)

    def read_status(self, entity_id: str) -> str:
        with self._lock:
            if entity_id not in self._entities:
                raise EntityNotFoundError(f"{self.entity_type.value} {entity_id} not found")
            return self._entities[entity_id][0]

    def compare_and_swap_status(self, entity_id: str, expected_status_id: str, new_status_id: str) -> bool:
        with self._lock:
            if entity_id not in self._entities:
                raise EntityNotFoundError(f"{self.entity_type.value} {entity_id} not found")
            if self._entities[entity_id][0] != expected_status_id:
                return False
            self._entities[entity_id] = (new_status_id, utc_now())
            return True

    def list_changed_between(self, since: datetime, until: datetime, limit: int) -> List[Tuple[str, str]]:
        with self._lock:
            changed = sorted(
                (changed_at, entity_id, status_id)
                for entity_id, (status_id, changed_at) in self._entities.items()
                if since <= changed_at <= until
            )
        return [(entity_id, status_id) for _, entity_id, status_id in changed[:limit]]
