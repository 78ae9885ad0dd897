"""Tests for status history reconciliation"""
from datetime import timedelta

import pytest

from app.config.settings import Settings
from app.domain.enums import EntityType, HistoryRecordKind
from app.domain.errors import StorageError
from app.scheduler.reconciliation_scheduler import ReconciliationScheduler
from app.utils.time import utc_now


def test_entity_at_initial_status_without_history_is_in_sync(runtime, lead_lifecycle, lead_store, ids):
    lead_store.create_entity("L1", ids["new"])

    result = runtime.reconciler.reconcile(EntityType.LEAD, "L1")

    assert result.in_sync is True
    assert runtime.history.history_of("L1", EntityType.LEAD) == []


def test_entity_in_sync_with_history(runtime, lead_lifecycle, lead_store, ids, actor):
    lead_store.create_entity("L2", ids["new"])
    runtime.engine.transition(EntityType.LEAD, "L2", ids["new"], ids["bidding"], actor)

    result = runtime.reconciler.reconcile(EntityType.LEAD, "L2")

    assert result.in_sync is True
    assert result.history_status_id == ids["bidding"]
    assert len(runtime.history.history_of("L2", EntityType.LEAD)) == 1


def test_failed_append_is_repaired_with_catch_up_record(runtime, lead_lifecycle, lead_store, ids, actor, monkeypatch):
    lead_store.create_entity("L3", ids["new"])
    runtime.engine.transition(EntityType.LEAD, "L3", ids["new"], ids["bidding"], actor)

    original_create = runtime.history.repo.create_record

    def broken_create(record):
        raise StorageError("write timed out")

    monkeypatch.setattr(runtime.history.repo, "create_record", broken_create)
    with pytest.raises(StorageError):
        runtime.engine.transition(EntityType.LEAD, "L3", ids["bidding"], ids["backlog"], actor)
    monkeypatch.setattr(runtime.history.repo, "create_record", original_create)

    # Entity is ahead of history
    assert runtime.history.current_position_from("L3", EntityType.LEAD) == ids["bidding"]

    result = runtime.reconciler.reconcile(EntityType.LEAD, "L3")

    assert result.in_sync is False
    assert result.cached_status_id == ids["backlog"]
    assert result.history_status_id == ids["bidding"]

    history = runtime.history.history_of("L3", EntityType.LEAD)
    assert [r.status_id for r in history] == [ids["bidding"], ids["backlog"]]
    assert history[-1].kind == HistoryRecordKind.RECONCILIATION
    assert history[-1].from_status_id == ids["bidding"]
    assert history[-1].changed_by.actor_id == "system"
    assert lead_store.read_status("L3") == ids["backlog"]

    # Repair is idempotent
    assert runtime.reconciler.reconcile(EntityType.LEAD, "L3").in_sync is True
    assert len(runtime.history.history_of("L3", EntityType.LEAD)) == 2


def test_entity_past_initial_without_history_gets_catch_up(runtime, lead_lifecycle, lead_store, ids):
    lead_store.create_entity("L4", ids["bidding"])

    result = runtime.reconciler.reconcile(EntityType.LEAD, "L4")

    assert result.in_sync is False
    assert result.repaired_record.metadata == {"reason": "no_history"}
    assert runtime.history.current_position_from("L4", EntityType.LEAD) == ids["bidding"]


def test_sweep_reconciles_entities_changed_inside_window(memory_runtime, memory_store, lead_lifecycle, ids, actor):
    now = utc_now()
    memory_store.create_entity("in-sync", ids["new"], changed_at=now - timedelta(minutes=10))
    memory_store.force_status("drifted", ids["bidding"], changed_at=now - timedelta(minutes=5))
    memory_store.force_status("too-old", ids["bidding"], changed_at=now - timedelta(hours=3))
    memory_store.force_status("in-flight", ids["bidding"], changed_at=now - timedelta(seconds=5))

    results = memory_runtime.reconciler.sweep(
        since=now - timedelta(minutes=60),
        until=now - timedelta(seconds=30)
    )

    by_id = {r.entity_id: r for r in results}
    assert set(by_id) == {"in-sync", "drifted"}
    assert by_id["in-sync"].in_sync is True
    assert by_id["drifted"].in_sync is False

    history = memory_runtime.history
    assert history.current_position_from("drifted", EntityType.LEAD) == ids["bidding"]
    assert history.current_position_from("too-old", EntityType.LEAD) is None
    assert history.current_position_from("in-flight", EntityType.LEAD) is None


def test_scheduler_sweeps_lookback_window_minus_grace(memory_runtime, memory_store, lead_lifecycle, ids):
    settings = Settings(
        reconciliation_lookback_minutes=30,
        reconciliation_grace_seconds=60,
        reconciliation_batch_size=10
    )
    scheduler = ReconciliationScheduler(memory_runtime.reconciler, settings=settings)
    now = utc_now()

    since, until = scheduler.sweep_window(now)
    assert since == now - timedelta(minutes=30)
    assert until == now - timedelta(seconds=60)

    memory_store.force_status("L5", ids["bidding"], changed_at=now - timedelta(minutes=2))
    memory_store.force_status("L6", ids["bidding"], changed_at=now - timedelta(seconds=10))

    results = scheduler.run_once(now)

    assert [r.entity_id for r in results] == ["L5"]
    assert scheduler.is_running is False
