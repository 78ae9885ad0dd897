"""Script to validate a workflow draft or published version

Run: python -m scripts.validate_workflow WFD-xxxxxxxxxxxx
"""
import argparse
import io
import os
import sys
sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.domain.errors import WorkflowNotFoundError
from app.engine.graph import CompiledWorkflow
from app.services.runtime import EngineRuntime


def validate_workflow(workflow_id: str) -> int:
    runtime = EngineRuntime()
    service = runtime.workflow_service

    graph = service.repo.get_draft(workflow_id)
    if graph is None:
        try:
            graph = service.get_workflow_version(workflow_id)
        except WorkflowNotFoundError:
            print(f"❌ Workflow {workflow_id} not found")
            return 2

    compiled = CompiledWorkflow(graph)
    kind = "draft" if graph.is_draft else f"published v{graph.version_number}"
    print(f"✅ Found workflow: {graph.name} ({graph.entity_type.value}, {kind})")
    print(f"   Nodes: {len(graph.nodes)}  Edges: {len(graph.edges)}")
    initial = compiled.initial_node()
    print(f"   Initial node: {initial.node_id if initial else '-'}")
    print()

    print("=" * 60)
    print("NODES")
    print("=" * 60)
    for node in sorted(compiled.nodes, key=lambda n: n.order):
        status = runtime.status_registry.lookup(node.status_id)
        flags = [f for f, on in (("initial", node.is_initial), ("final", node.is_final)) if on]
        parent = f" under {node.parent_node_id}" if node.parent_node_id else ""
        print(f"   [{node.node_type.value}] {node.node_id}: {status.name if status else node.status_id}{parent}"
              f"{' (' + ', '.join(flags) + ')' if flags else ''}")
        for edge in compiled.legal_transitions(node.node_id):
            marker = "↺" if edge.is_loop else "→"
            label = f" [{edge.condition}]" if edge.condition else ""
            print(f"      {marker} {edge.to_node_id}{label}")

    violations = service.validate_graph(graph)
    print("\n" + "=" * 60)
    print(f"VIOLATIONS ({len(violations)})")
    print("=" * 60)
    for violation in violations:
        where = violation.node_id or violation.edge or "-"
        print(f"   • {violation.code.value} at {where}: {violation.message}")

    if violations:
        print("\n❌ Workflow cannot be published")
        return 1
    print("\n✅ Workflow is valid")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Validate a workflow graph")
    parser.add_argument("workflow_id", help="Draft or published workflow ID")
    args = parser.parse_args()
    sys.exit(validate_workflow(args.workflow_id))
