"""Graph Validator - Structural well-formedness checks for workflow graphs"""
from collections import Counter
from typing import TYPE_CHECKING, Callable, Dict, Iterator, List, Optional, Set

from ..domain.models import Status, WorkflowNode, GraphViolation
from ..domain.enums import NodeType, ViolationCode

if TYPE_CHECKING:
    from .graph import CompiledWorkflow

StatusLookup = Callable[[str], Optional[Status]]


class GraphValidator:
    """
    Validate one workflow graph

    Checks run in a fixed order and every violation found is reported, so an
    editor sees the whole list after each save. Reachability is only checked
    once the graph has a single well-defined initial node.

    Loop edges never count towards reachability or terminal detection. Cycles
    through non-loop edges are only reported when they sit in an island that
    the initial node cannot reach.
    """

    def __init__(self, workflow: "CompiledWorkflow", status_lookup: Optional[StatusLookup] = None):
        self.workflow = workflow
        self.graph = workflow.graph
        self.status_lookup = status_lookup
        self.violations: List[GraphViolation] = []

    def validate(self) -> List[GraphViolation]:
        self.violations = []

        if not self.graph.nodes:
            self._add(ViolationCode.NO_NODES, "Workflow must have at least one node")
            return self.violations

        self._check_node_identity()
        self._check_statuses()
        initial = self._check_initial_node()
        self._check_hierarchy()
        self._check_edges()
        if initial is not None:
            self._check_reachability(initial)
        self._check_terminal()

        return self.violations

    # =========================================================================
    # Individual checks
    # =========================================================================

    def _check_node_identity(self) -> None:
        node_counts = Counter(n.node_id for n in self.graph.nodes)
        for node_id, count in node_counts.items():
            if count > 1:
                self._add(
                    ViolationCode.DUPLICATE_NODE_ID,
                    f"Node id {node_id} is used {count} times",
                    node_id=node_id
                )

        status_counts = Counter(n.status_id for n in self.graph.nodes)
        for status_id, count in status_counts.items():
            if count > 1:
                self._add(
                    ViolationCode.DUPLICATE_STATUS,
                    f"Status {status_id} appears in {count} nodes; a status may appear in at most one node"
                )

    def _check_statuses(self) -> None:
        if self.status_lookup is None:
            return

        for node in self.workflow.nodes:
            status = self.status_lookup(node.status_id)
            if status is None:
                self._add(
                    ViolationCode.UNKNOWN_STATUS,
                    f"Node {node.node_id} references unknown status {node.status_id}",
                    node_id=node.node_id
                )
                continue

            expected_type = NodeType.SUBSTATUS if status.is_substatus else NodeType.MASTER
            if node.node_type != expected_type:
                self._add(
                    ViolationCode.NODE_TYPE_MISMATCH,
                    f"Node {node.node_id} is {node.node_type.value} but status '{status.name}' is {expected_type.value}",
                    node_id=node.node_id
                )
                continue

            if node.node_type == NodeType.SUBSTATUS and node.parent_node_id:
                parent = self.workflow.node(node.parent_node_id)
                parent_status = self.status_lookup(parent.status_id) if parent else None
                if parent_status is not None and parent_status.name != status.parent_status:
                    self._add(
                        ViolationCode.PARENT_STATUS_MISMATCH,
                        f"Sub-status '{status.name}' belongs to '{status.parent_status}', "
                        f"but its parent node {parent.node_id} holds '{parent_status.name}'",
                        node_id=node.node_id
                    )

    def _check_initial_node(self) -> Optional[WorkflowNode]:
        flagged = [n for n in self.workflow.nodes if n.is_initial]

        if not flagged:
            self._add(ViolationCode.NO_INITIAL_NODE, "Exactly one node must be marked initial; none is")
            return None
        if len(flagged) > 1:
            self._add(
                ViolationCode.MULTIPLE_INITIAL_NODES,
                f"Exactly one node must be marked initial; found {', '.join(n.node_id for n in flagged)}"
            )
            return None

        initial = flagged[0]
        if self.graph.initial_node_id and self.graph.initial_node_id != initial.node_id:
            self._add(
                ViolationCode.INITIAL_NODE_MISMATCH,
                f"initial_node_id is {self.graph.initial_node_id} but node {initial.node_id} is marked initial",
                node_id=self.graph.initial_node_id
            )
        return initial

    def _check_hierarchy(self) -> None:
        for node in self.workflow.nodes:
            if node.node_type == NodeType.MASTER:
                if node.parent_node_id:
                    self._add(
                        ViolationCode.UNEXPECTED_PARENT_NODE,
                        f"Master node {node.node_id} must not have a parent node",
                        node_id=node.node_id
                    )
                continue

            if not node.parent_node_id:
                self._add(
                    ViolationCode.MISSING_PARENT_NODE,
                    f"Substatus node {node.node_id} must reference a master node",
                    node_id=node.node_id
                )
                continue

            parent = self.workflow.node(node.parent_node_id)
            if parent is None or parent.node_type != NodeType.MASTER:
                self._add(
                    ViolationCode.INVALID_PARENT_NODE,
                    f"Parent {node.parent_node_id} of substatus node {node.node_id} is not a master node of this graph",
                    node_id=node.node_id
                )

    def _check_edges(self) -> None:
        seen: Set[str] = set()

        for edge in self.graph.edges:
            if edge.key in seen:
                self._add(ViolationCode.DUPLICATE_EDGE, f"Edge {edge.key} is defined more than once", edge=edge.key)
                continue
            seen.add(edge.key)

            source = self.workflow.node(edge.from_node_id)
            target = self.workflow.node(edge.to_node_id)
            if source is None or target is None:
                missing = edge.from_node_id if source is None else edge.to_node_id
                self._add(
                    ViolationCode.UNKNOWN_EDGE_ENDPOINT,
                    f"Edge {edge.key} references non-existent node {missing}",
                    edge=edge.key
                )
                continue

            if source.node_id == target.node_id and not edge.is_loop:
                self._add(
                    ViolationCode.SELF_EDGE_NOT_LOOP,
                    f"Edge {edge.key} returns to its own node and must be marked as a loop",
                    edge=edge.key
                )

            if target.node_type == NodeType.SUBSTATUS and not self._may_enter_substatus(source, target):
                self._add(
                    ViolationCode.ILLEGAL_SUBSTATUS_EDGE,
                    f"Edge {edge.key} enters substatus node {target.node_id} from outside its master node "
                    f"{target.parent_node_id}",
                    edge=edge.key
                )

    def _check_reachability(self, initial: WorkflowNode) -> None:
        reachable = self.workflow.reachable_node_ids(initial.node_id)
        unreachable = {n.node_id for n in self.workflow.nodes} - reachable

        for node in self.workflow.nodes:
            if node.node_id in unreachable:
                self._add(
                    ViolationCode.UNREACHABLE_NODE,
                    f"Node {node.node_id} is not reachable from initial node {initial.node_id}",
                    node_id=node.node_id
                )
            if (
                node.node_type == NodeType.SUBSTATUS
                and node.parent_node_id in self._node_ids
                and node.parent_node_id not in reachable
            ):
                self._add(
                    ViolationCode.UNREACHABLE_PARENT_NODE,
                    f"Parent node {node.parent_node_id} of substatus node {node.node_id} is not reachable",
                    node_id=node.node_id
                )

        for cycle in self._find_cycles(unreachable):
            self._add(
                ViolationCode.UNREACHABLE_CYCLE,
                f"Unreachable nodes form a cycle: {' -> '.join(cycle + [cycle[0]])}",
                node_id=cycle[0]
            )

    def _check_terminal(self) -> None:
        if not any(self.workflow.is_terminal(n.node_id) for n in self.workflow.nodes):
            self._add(
                ViolationCode.NO_TERMINAL_NODE,
                "Workflow needs at least one final node without outgoing non-loop edges"
            )

    # =========================================================================
    # Helpers
    # =========================================================================

    @property
    def _node_ids(self) -> Set[str]:
        return {n.node_id for n in self.workflow.nodes}

    @staticmethod
    def _may_enter_substatus(source: WorkflowNode, target: WorkflowNode) -> bool:
        """A substatus is entered from its own master or from a sibling substatus"""
        if source.node_type == NodeType.MASTER:
            return source.node_id == target.parent_node_id
        return source.parent_node_id == target.parent_node_id

    def _successors_within(self, node_id: str, candidates: Set[str]) -> Iterator[str]:
        return iter([n for n in self.workflow.non_loop_successors(node_id) if n in candidates])

    def _find_cycles(self, candidates: Set[str]) -> List[List[str]]:
        """Iterative depth-first search over non-loop edges restricted to candidates"""
        white, grey, black = 0, 1, 2
        color: Dict[str, int] = {n: white for n in candidates}
        cycles: List[List[str]] = []

        for root in sorted(candidates):
            if color[root] != white:
                continue
            color[root] = grey
            path = [root]
            stack = [(root, self._successors_within(root, candidates))]

            while stack:
                node_id, successors = stack[-1]
                advanced = False
                for successor in successors:
                    if color[successor] == white:
                        color[successor] = grey
                        path.append(successor)
                        stack.append((successor, self._successors_within(successor, candidates)))
                        advanced = True
                        break
                    if color[successor] == grey:
                        cycles.append(path[path.index(successor):])
                if not advanced:
                    color[node_id] = black
                    path.pop()
                    stack.pop()

        return cycles

    def _add(
        self,
        code: ViolationCode,
        message: str,
        node_id: Optional[str] = None,
        edge: Optional[str] = None
    ) -> None:
        self.violations.append(GraphViolation(code=code, message=message, node_id=node_id, edge=edge))
