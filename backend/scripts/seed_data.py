"""
Seed Data Script - Creates sample statuses and a published lead workflow
Run: python -m scripts.seed_data
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.repositories.mongo_client import create_indexes
from app.repositories.entity_repo import MongoEntityStatusStore
from app.domain.models import ActorRef, StatusDefinition, WorkflowEdge, WorkflowNode
from app.domain.enums import EntityType, NodeType
from app.services.runtime import EngineRuntime


SEED_ACTOR = ActorRef(actor_id="seed", display_name="Seed Script")

STATUSES = [
    StatusDefinition(name="new", display_name="New", color_code="#6B7280", order=1),
    StatusDefinition(name="bidding", display_name="Bidding", color_code="#2563EB", order=2),
    StatusDefinition(
        name="clarification", display_name="Clarification", color_code="#60A5FA",
        is_substatus=True, parent_status="bidding", order=1
    ),
    StatusDefinition(
        name="negotiation", display_name="Negotiation", color_code="#93C5FD",
        is_substatus=True, parent_status="bidding", order=2
    ),
    StatusDefinition(name="backlog", display_name="Backlog", color_code="#F59E0B", order=3),
    StatusDefinition(name="closed", display_name="Closed", color_code="#10B981", order=4),
    StatusDefinition(name="lost", display_name="Lost", color_code="#EF4444", is_positive=False, order=5),
]


def seed_statuses(runtime: EngineRuntime) -> dict:
    """Create statuses that do not exist yet; returns name -> status_id"""
    status_ids = {}
    for definition in STATUSES:
        existing = runtime.status_registry.repo.get_status_by_name(definition.name)
        status = existing or runtime.status_registry.create(definition)
        status_ids[status.name] = status.status_id
        print(f"  {'=' if existing else '+'} {status.name} ({status.status_id})")
    return status_ids


def seed_lead_workflow(runtime: EngineRuntime, status_ids: dict):
    """Create and publish the lead-lifecycle workflow"""
    service = runtime.workflow_service
    if service.repo.get_pointer("lead-lifecycle", EntityType.LEAD):
        print("  lead-lifecycle already published. Skipping.")
        return service.get_published("lead-lifecycle", EntityType.LEAD)

    nodes = [
        WorkflowNode(node_id="n_new", status_id=status_ids["new"], order=1, is_initial=True),
        WorkflowNode(node_id="n_bidding", status_id=status_ids["bidding"], order=2),
        WorkflowNode(
            node_id="n_clarification", status_id=status_ids["clarification"],
            node_type=NodeType.SUBSTATUS, parent_node_id="n_bidding", order=3
        ),
        WorkflowNode(
            node_id="n_negotiation", status_id=status_ids["negotiation"],
            node_type=NodeType.SUBSTATUS, parent_node_id="n_bidding", order=4
        ),
        WorkflowNode(node_id="n_backlog", status_id=status_ids["backlog"], order=5),
        WorkflowNode(node_id="n_closed", status_id=status_ids["closed"], order=6, is_final=True),
        WorkflowNode(node_id="n_lost", status_id=status_ids["lost"], order=7, is_final=True),
    ]
    edges = [
        WorkflowEdge(from_node_id="n_new", to_node_id="n_bidding"),
        WorkflowEdge(from_node_id="n_bidding", to_node_id="n_clarification", condition="needs_clarification"),
        WorkflowEdge(from_node_id="n_clarification", to_node_id="n_negotiation"),
        WorkflowEdge(from_node_id="n_negotiation", to_node_id="n_bidding", is_loop=True),
        WorkflowEdge(from_node_id="n_bidding", to_node_id="n_backlog", condition="bid_accepted"),
        WorkflowEdge(from_node_id="n_negotiation", to_node_id="n_backlog", condition="bid_accepted"),
        WorkflowEdge(from_node_id="n_bidding", to_node_id="n_lost", condition="bid_rejected"),
        WorkflowEdge(from_node_id="n_backlog", to_node_id="n_closed"),
    ]

    draft = service.repo.get_draft_by_name("lead-lifecycle", EntityType.LEAD) or service.create_draft(
        name="lead-lifecycle",
        entity_type=EntityType.LEAD,
        actor=SEED_ACTOR,
        description="Lead from first contact to delivery backlog",
        nodes=nodes,
        edges=edges,
        initial_node_id="n_new"
    )
    published = service.publish_workflow(draft.workflow_id, SEED_ACTOR)
    print(f"  + lead-lifecycle published as {published.workflow_id} (v{published.version_number})")
    return published


def seed_leads(runtime: EngineRuntime, status_ids: dict) -> None:
    """Create sample leads at the initial status"""
    store = runtime.entity_stores.get(EntityType.LEAD)
    if not isinstance(store, MongoEntityStatusStore):
        return
    for entity_id in ("LEAD-0001", "LEAD-0002", "LEAD-0003"):
        if store.exists(entity_id):
            print(f"  = {entity_id}")
            continue
        store.create_entity(entity_id, status_ids["new"])
        print(f"  + {entity_id}")


if __name__ == "__main__":
    print("Creating indexes...")
    create_indexes()
    runtime = EngineRuntime()

    print("Seeding statuses...")
    ids = seed_statuses(runtime)

    print("Seeding workflows...")
    seed_lead_workflow(runtime, ids)

    print("Seeding leads...")
    seed_leads(runtime, ids)
    print("Done!")
