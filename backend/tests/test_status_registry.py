"""Tests for the status registry"""
import pytest

from app.domain.errors import StatusNotFoundError, ValidationError
from app.domain.models import StatusDefinition
from app.services.status_service import StatusRegistry


def test_create_normalizes_name_and_assigns_id(runtime):
    status = runtime.status_registry.create(
        StatusDefinition(name="  Qualified ", display_name="Qualified", color_code="#000")
    )
    assert status.name == "qualified"
    assert status.status_id.startswith("STS-")
    assert runtime.status_registry.find_by_id(status.status_id).name == "qualified"


def test_duplicate_name_is_rejected(runtime, statuses):
    with pytest.raises(ValidationError):
        runtime.status_registry.create(StatusDefinition(name="NEW", display_name="New again", color_code="#000"))


def test_substatus_requires_existing_master(runtime, statuses):
    with pytest.raises(ValidationError):
        runtime.status_registry.create(StatusDefinition(
            name="on-hold", display_name="On hold", color_code="#000",
            is_substatus=True, parent_status="missing"
        ))

    # A sub-status cannot be the parent of another sub-status
    with pytest.raises(ValidationError):
        runtime.status_registry.create(StatusDefinition(
            name="deep", display_name="Deep", color_code="#000",
            is_substatus=True, parent_status="clarification"
        ))


def test_substatus_without_parent_is_rejected(runtime):
    with pytest.raises(ValidationError):
        runtime.status_registry.create(StatusDefinition(
            name="orphan", display_name="Orphan", color_code="#000", is_substatus=True
        ))


def test_master_with_parent_is_rejected(runtime, statuses):
    with pytest.raises(ValidationError):
        runtime.status_registry.create(StatusDefinition(
            name="odd", display_name="Odd", color_code="#000", parent_status="bidding"
        ))


def test_find_missing_raises_not_found(runtime):
    with pytest.raises(StatusNotFoundError):
        runtime.status_registry.find_by_name("nope")
    with pytest.raises(StatusNotFoundError):
        runtime.status_registry.find_by_id("STS-missing")
    assert runtime.status_registry.lookup("STS-missing") is None


def test_substatuses_are_ordered_by_order_then_name(runtime, statuses):
    names = [s.name for s in runtime.status_registry.substatuses_of("bidding")]
    assert names == ["negotiation", "clarification"]

    # Restartable: a second call yields the same list
    assert [s.name for s in runtime.status_registry.substatuses_of("bidding")] == names
    assert runtime.status_registry.substatuses_of("new") == []


def test_predicates(statuses):
    assert StatusRegistry.is_master(statuses["bidding"])
    assert not StatusRegistry.is_sub(statuses["bidding"])
    assert StatusRegistry.is_sub(statuses["clarification"])
    assert not StatusRegistry.is_master(statuses["clarification"])


def test_master_with_active_substatuses_cannot_be_deactivated(runtime, statuses):
    with pytest.raises(ValidationError):
        runtime.status_registry.deactivate("bidding")

    runtime.status_registry.deactivate("clarification")
    runtime.status_registry.deactivate("negotiation")
    bidding = runtime.status_registry.deactivate("bidding")

    assert bidding.is_active is False
    active = {s.name for s in runtime.status_registry.list_statuses(active_only=True)}
    assert "bidding" not in active
    assert "new" in active
