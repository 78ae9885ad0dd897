"""
Pytest Configuration and Fixtures

This file contains shared fixtures and configuration for all tests.
MongoDB is replaced by mongomock; every test gets a fresh database.
"""

import mongomock
import pytest
from typing import Dict

from app.domain.enums import EntityType
from app.domain.models import ActorRef, Status, StatusDefinition, WorkflowGraph
from app.repositories.entity_repo import EntityStoreRegistry, MongoEntityStatusStore
from app.repositories.mongo_client import create_indexes
from app.services.runtime import EngineRuntime

from .helpers import InMemoryEntityStore, edge, master


@pytest.fixture
def database():
    """Provide a fresh in-process MongoDB database with all indexes."""
    client = mongomock.MongoClient()
    db = client["status_workflow_test"]
    create_indexes(db)
    yield db
    client.close()


@pytest.fixture
def runtime(database) -> EngineRuntime:
    return EngineRuntime(database=database, cache_ttl_seconds=0)


@pytest.fixture
def memory_store() -> InMemoryEntityStore:
    return InMemoryEntityStore(EntityType.LEAD)


@pytest.fixture
def memory_runtime(database, memory_store) -> EngineRuntime:
    """Runtime whose lead store is the thread-safe in-memory double."""
    return EngineRuntime(
        database=database,
        cache_ttl_seconds=0,
        entity_stores=EntityStoreRegistry({EntityType.LEAD: memory_store})
    )


@pytest.fixture
def actor() -> ActorRef:
    return ActorRef(actor_id="user-1", display_name="Test User", email="qa.user@acme.io")


@pytest.fixture
def statuses(runtime) -> Dict[str, Status]:
    """Lead statuses: masters plus two sub-statuses of bidding."""
    definitions = [
        StatusDefinition(name="new", display_name="New", color_code="#6B7280", order=1),
        StatusDefinition(name="bidding", display_name="Bidding", color_code="#2563EB", order=2),
        StatusDefinition(
            name="clarification", display_name="Clarification", color_code="#60A5FA",
            is_substatus=True, parent_status="bidding", order=2
        ),
        StatusDefinition(
            name="negotiation", display_name="Negotiation", color_code="#93C5FD",
            is_substatus=True, parent_status="bidding", order=1
        ),
        StatusDefinition(name="backlog", display_name="Backlog", color_code="#F59E0B", order=3),
        StatusDefinition(name="closed", display_name="Closed", color_code="#10B981", order=4),
        StatusDefinition(name="lost", display_name="Lost", color_code="#EF4444", is_positive=False, order=5),
    ]
    return {d.name: runtime.status_registry.create(d) for d in definitions}


@pytest.fixture
def ids(statuses) -> Dict[str, str]:
    """Status name -> status_id"""
    return {name: status.status_id for name, status in statuses.items()}


@pytest.fixture
def lead_lifecycle(runtime, ids, actor) -> WorkflowGraph:
    """Published lead workflow: new (initial) -> bidding -> backlog (final)."""
    draft = runtime.workflow_service.create_draft(
        name="lead-lifecycle",
        entity_type=EntityType.LEAD,
        actor=actor,
        nodes=[
            master("n_new", ids["new"], order=1, initial=True),
            master("n_bidding", ids["bidding"], order=2),
            master("n_backlog", ids["backlog"], order=3, final=True),
        ],
        edges=[edge("n_new", "n_bidding"), edge("n_bidding", "n_backlog")],
        initial_node_id="n_new"
    )
    return runtime.workflow_service.publish_workflow(draft.workflow_id, actor)


@pytest.fixture
def lead_store(runtime) -> MongoEntityStatusStore:
    return runtime.entity_stores.get(EntityType.LEAD)
