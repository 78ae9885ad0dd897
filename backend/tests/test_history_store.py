"""Tests for the status history store"""
from datetime import timedelta

import pytest

from app.domain.enums import EntityType, HistoryRecordKind
from app.domain.errors import ConcurrentModificationError, StorageError
from app.domain.models import StatusHistoryRecord
from app.repositories.history_repo import HistoryRepository
from app.utils.time import ensure_utc, utc_now


def make_record(actor, status_id, changed_at=None, entity_id="L1"):
    return StatusHistoryRecord(
        record_id=f"HST-{status_id}-{entity_id}",
        entity_id=entity_id,
        entity_type=EntityType.LEAD,
        status_id=status_id,
        changed_at=changed_at or utc_now(),
        changed_by=actor
    )


def test_entity_without_history(runtime):
    assert runtime.history.history_of("L1", EntityType.LEAD) == []
    assert runtime.history.current_position_from("L1", EntityType.LEAD) is None


def test_append_assigns_sequence_per_entity(runtime, actor):
    history = runtime.history
    history.append(make_record(actor, "S-1"))
    history.append(make_record(actor, "S-2"))
    history.append(make_record(actor, "S-1", entity_id="L2"))

    assert [r.sequence for r in history.history_of("L1", EntityType.LEAD)] == [1, 2]
    assert [r.sequence for r in history.history_of("L2", EntityType.LEAD)] == [1]
    assert history.current_position_from("L1", EntityType.LEAD) == "S-2"


def test_changed_at_never_goes_backwards(runtime, actor):
    history = runtime.history
    later = utc_now() + timedelta(minutes=5)
    history.append(make_record(actor, "S-1", changed_at=later))

    # Clock skew: second writer's clock is behind
    second = history.append(make_record(actor, "S-2", changed_at=later - timedelta(minutes=10)))

    records = history.history_of("L1", EntityType.LEAD)
    stamps = [ensure_utc(r.changed_at) for r in records]
    assert stamps == sorted(stamps)
    assert ensure_utc(second.changed_at) >= ensure_utc(records[0].changed_at)
    assert [r.status_id for r in records] == ["S-1", "S-2"]


def test_sequence_collision_is_retried(runtime, actor, monkeypatch):
    repo = runtime.history.repo
    original_create = repo.create_record
    attempts = []

    def colliding_create(record):
        attempts.append(record.sequence)
        if len(attempts) == 1:
            # Another writer takes sequence 1 in between
            original_create(make_record(actor, "S-other").model_copy(update={"sequence": 1}))
            raise ConcurrentModificationError("sequence taken")
        return original_create(record)

    monkeypatch.setattr(repo, "create_record", colliding_create)
    stored = runtime.history.append(make_record(actor, "S-mine"))

    assert stored.sequence == 2
    assert [r.status_id for r in runtime.history.history_of("L1", EntityType.LEAD)] == ["S-other", "S-mine"]


def test_append_gives_up_after_repeated_collisions(runtime, actor, monkeypatch):
    def always_collides(record):
        raise ConcurrentModificationError("sequence taken")

    monkeypatch.setattr(runtime.history.repo, "create_record", always_collides)
    with pytest.raises(StorageError):
        runtime.history.append(make_record(actor, "S-1"))


def test_catch_up_record_is_signed_by_system(runtime):
    record = runtime.history.record_catch_up(
        EntityType.LEAD, "L1", status_id="S-2", previous_status_id="S-1", reason="history_behind"
    )
    assert record.kind == HistoryRecordKind.RECONCILIATION
    assert record.changed_by.actor_id == "system"
    assert record.metadata == {"reason": "history_behind"}


def test_records_are_append_only_by_sequence_index(database, actor):
    repo = HistoryRepository(database)
    record = make_record(actor, "S-1").model_copy(update={"sequence": 1})
    repo.create_record(record)

    duplicate = make_record(actor, "S-2").model_copy(update={"sequence": 1})
    with pytest.raises(ConcurrentModificationError):
        repo.create_record(duplicate)
    assert repo.count_records_for_entity(EntityType.LEAD, "L1") == 1
