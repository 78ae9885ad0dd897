"""Reconciler - Repairs status history that fell behind the entity status cache"""
from datetime import datetime
from typing import List, Optional

from ..domain.models import ReconciliationResult
from ..domain.enums import EntityType
from ..domain.errors import DomainError
from .transition_engine import TransitionEngine
from ..utils.logger import get_logger

logger = get_logger(__name__)


class Reconciler:
    """
    Bring history level with the entity status field

    The only divergence the transition engine can leave behind is an entity
    whose status swap committed while the history append failed. History is
    then one step behind, so the repair appends a catch-up record carrying
    the cached status. The entity is never rolled back.
    """

    def __init__(self, engine: TransitionEngine):
        self.engine = engine
        self.history = engine.history
        self.entity_stores = engine.entity_stores

    def reconcile(self, entity_type: EntityType, entity_id: str) -> ReconciliationResult:
        store = self.entity_stores.get(entity_type)
        cached_status_id = store.read_status(entity_id)
        history_status_id = self.history.current_position_from(entity_id, entity_type)

        if history_status_id is None:
            # No history yet: only the initial status needs no record
            workflow = self.engine.get_published_workflow(entity_type)
            initial = workflow.initial_node()
            if initial is not None and initial.status_id == cached_status_id:
                return ReconciliationResult(
                    entity_id=entity_id,
                    entity_type=entity_type,
                    cached_status_id=cached_status_id,
                    in_sync=True
                )
            reason = "no_history"
        elif history_status_id == cached_status_id:
            return ReconciliationResult(
                entity_id=entity_id,
                entity_type=entity_type,
                cached_status_id=cached_status_id,
                history_status_id=history_status_id,
                in_sync=True
            )
        else:
            reason = "history_behind"

        record = self.history.record_catch_up(
            entity_type=entity_type,
            entity_id=entity_id,
            status_id=cached_status_id,
            previous_status_id=history_status_id,
            reason=reason
        )
        logger.warning(
            f"Reconciled {entity_type.value} {entity_id}: history {history_status_id} -> {cached_status_id}",
            extra={
                "entity_id": entity_id,
                "entity_type": entity_type.value,
                "status_id": cached_status_id,
                "record_id": record.record_id,
            }
        )
        return ReconciliationResult(
            entity_id=entity_id,
            entity_type=entity_type,
            cached_status_id=cached_status_id,
            history_status_id=history_status_id,
            in_sync=False,
            repaired_record=record
        )

    def sweep(
        self,
        since: datetime,
        until: datetime,
        limit: int = 500,
        entity_types: Optional[List[EntityType]] = None
    ) -> List[ReconciliationResult]:
        """
        Reconcile every entity whose status changed inside [since, until]

        A failure on one entity is logged and the sweep moves on; the next
        sweep picks the entity up again while it is inside the window.
        """
        results: List[ReconciliationResult] = []

        for store in self.entity_stores:
            if entity_types and store.entity_type not in entity_types:
                continue

            for entity_id, _status_id in store.list_changed_between(since, until, limit):
                try:
                    results.append(self.reconcile(store.entity_type, entity_id))
                except DomainError as e:
                    logger.error(
                        f"Reconciliation failed for {store.entity_type.value} {entity_id}: {e.message}",
                        extra={
                            "entity_id": entity_id,
                            "entity_type": store.entity_type.value,
                            "error_code": e.error_code,
                        }
                    )

        repaired = sum(1 for r in results if not r.in_sync)
        logger.info(f"Reconciliation sweep checked {len(results)} entities, repaired {repaired}")
        return results
