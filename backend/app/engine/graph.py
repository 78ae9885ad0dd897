"""Compiled Workflow - Indexed, read-only view of one workflow graph version"""
from collections import defaultdict, deque
from typing import Callable, Dict, List, Optional, Set

from ..domain.models import Status, WorkflowGraph, WorkflowNode, WorkflowEdge, GraphViolation
from ..domain.enums import EntityType, NodeType
from .graph_validator import GraphValidator


class CompiledWorkflow:
    """
    Answer reachability and transition questions for one workflow version

    Nodes and edges are kept in an arena indexed by node ID; nothing holds a
    reference to another node object. The underlying WorkflowGraph is never
    mutated, so a compiled instance can be shared between threads.
    """

    def __init__(self, graph: WorkflowGraph):
        self.graph = graph
        self._nodes: Dict[str, WorkflowNode] = {}
        self._node_by_status: Dict[str, str] = {}
        self._outgoing: Dict[str, List[WorkflowEdge]] = defaultdict(list)

        for node in graph.nodes:
            # First occurrence wins; duplicates are reported by validation
            self._nodes.setdefault(node.node_id, node)
            self._node_by_status.setdefault(node.status_id, node.node_id)

        for edge in graph.edges:
            self._outgoing[edge.from_node_id].append(edge)

    @property
    def workflow_id(self) -> str:
        return self.graph.workflow_id

    @property
    def entity_type(self) -> EntityType:
        return self.graph.entity_type

    @property
    def nodes(self) -> List[WorkflowNode]:
        return list(self._nodes.values())

    def node(self, node_id: str) -> Optional[WorkflowNode]:
        return self._nodes.get(node_id)

    def initial_node(self) -> Optional[WorkflowNode]:
        """The single is_initial node, or the node named by initial_node_id"""
        if self.graph.initial_node_id:
            return self._nodes.get(self.graph.initial_node_id)
        flagged = [n for n in self._nodes.values() if n.is_initial]
        return flagged[0] if len(flagged) == 1 else None

    def legal_transitions(self, from_node_id: str) -> List[WorkflowEdge]:
        """
        Edges leaving a node, loop edges included

        An empty list means the caller is at a terminal state; it is not an
        error. Edges are ordered by the target node's display order.
        """
        edges = self._outgoing.get(from_node_id, [])
        return sorted(edges, key=lambda e: self._order_of(e.to_node_id))

    def find_edge(self, from_node_id: str, to_node_id: str) -> Optional[WorkflowEdge]:
        for edge in self._outgoing.get(from_node_id, []):
            if edge.to_node_id == to_node_id:
                return edge
        return None

    def resolve_node_for_status(self, status_id: str) -> Optional[WorkflowNode]:
        """Node holding a status; a status appears in at most one node per graph"""
        node_id = self._node_by_status.get(status_id)
        return self._nodes.get(node_id) if node_id else None

    def reachable_node_ids(self, start_node_id: Optional[str] = None) -> Set[str]:
        """Breadth-first walk over non-loop edges"""
        if start_node_id is None:
            initial = self.initial_node()
            if initial is None:
                return set()
            start_node_id = initial.node_id
        if start_node_id not in self._nodes:
            return set()

        reached = {start_node_id}
        queue = deque([start_node_id])
        while queue:
            current = queue.popleft()
            for edge in self._outgoing.get(current, []):
                if edge.is_loop or edge.to_node_id in reached or edge.to_node_id not in self._nodes:
                    continue
                reached.add(edge.to_node_id)
                queue.append(edge.to_node_id)
        return reached

    def non_loop_successors(self, node_id: str) -> List[str]:
        return [e.to_node_id for e in self._outgoing.get(node_id, []) if not e.is_loop]

    def is_terminal(self, node_id: str) -> bool:
        """Final node without outgoing non-loop edges"""
        node = self._nodes.get(node_id)
        return bool(node and node.is_final and not self.non_loop_successors(node_id))

    def substatus_nodes_of(self, master_node_id: str) -> List[WorkflowNode]:
        children = [
            n for n in self._nodes.values()
            if n.node_type == NodeType.SUBSTATUS and n.parent_node_id == master_node_id
        ]
        return sorted(children, key=lambda n: n.order)

    def validate(self, status_lookup: Optional[Callable[[str], Optional[Status]]] = None) -> List[GraphViolation]:
        """Structural violations of this graph (empty list = valid)"""
        return GraphValidator(self, status_lookup).validate()

    def _order_of(self, node_id: str) -> int:
        node = self._nodes.get(node_id)
        return node.order if node else 0
