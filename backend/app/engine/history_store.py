"""History Store - Append-only status history, authoritative position of every entity"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..domain.models import ActorRef, StatusHistoryRecord, SYSTEM_ACTOR
from ..domain.enums import EntityType, HistoryRecordKind
from ..domain.errors import ConcurrentModificationError, StorageError
from ..repositories.history_repo import HistoryRepository
from ..utils.idgen import generate_history_record_id
from ..utils.time import utc_now, ensure_utc
from ..utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


class HistoryStore:
    """
    Write and read status history records

    Records are never updated or deleted. Each entity's records carry a
    per-entity sequence (unique in storage) and a changed_at that never goes
    backwards, so "oldest first" is well defined even under clock skew.
    """

    MAX_APPEND_ATTEMPTS = 3

    def __init__(self, repo: Optional[HistoryRepository] = None):
        self.repo = repo or HistoryRepository()

    def append(self, record: StatusHistoryRecord) -> StatusHistoryRecord:
        """
        Append a record, assigning its sequence

        Raises:
            StorageError: storage failure, or the sequence kept colliding
        """
        for attempt in range(1, self.MAX_APPEND_ATTEMPTS + 1):
            last = self.repo.get_last_record(record.entity_type, record.entity_id)
            changed_at = ensure_utc(record.changed_at)
            if last is not None and ensure_utc(last.changed_at) > changed_at:
                changed_at = ensure_utc(last.changed_at)

            stamped = record.model_copy(update={
                "sequence": (last.sequence + 1) if last else 1,
                "changed_at": changed_at,
            })
            try:
                return self.repo.create_record(stamped)
            except ConcurrentModificationError:
                logger.warning(
                    f"History sequence collision on attempt {attempt}",
                    extra={"entity_id": record.entity_id, "entity_type": record.entity_type.value}
                )

        raise StorageError(
            f"Could not append history for {record.entity_type.value} {record.entity_id}",
            details={"entity_id": record.entity_id, "attempts": self.MAX_APPEND_ATTEMPTS}
        )

    def record_transition(
        self,
        entity_type: EntityType,
        entity_id: str,
        from_status_id: str,
        to_status_id: str,
        actor: ActorRef,
        workflow_id: str,
        status_name: Optional[str] = None,
        comment: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> StatusHistoryRecord:
        """Append the record of a successful transition"""
        return self.append(StatusHistoryRecord(
            record_id=generate_history_record_id(),
            entity_id=entity_id,
            entity_type=entity_type,
            status_id=to_status_id,
            status_name=status_name,
            from_status_id=from_status_id,
            workflow_id=workflow_id,
            kind=HistoryRecordKind.TRANSITION,
            changed_at=utc_now(),
            changed_by=actor,
            comment=comment,
            metadata=metadata or {},
            correlation_id=get_correlation_id()
        ))

    def record_catch_up(
        self,
        entity_type: EntityType,
        entity_id: str,
        status_id: str,
        previous_status_id: Optional[str],
        reason: str,
        actor: ActorRef = SYSTEM_ACTOR
    ) -> StatusHistoryRecord:
        """Append a synthetic record bringing history level with the entity's status"""
        return self.append(StatusHistoryRecord(
            record_id=generate_history_record_id(),
            entity_id=entity_id,
            entity_type=entity_type,
            status_id=status_id,
            from_status_id=previous_status_id,
            kind=HistoryRecordKind.RECONCILIATION,
            changed_at=utc_now(),
            changed_by=actor,
            comment="Status history reconciled with entity status",
            metadata={"reason": reason},
            correlation_id=get_correlation_id()
        ))

    def history_of(
        self,
        entity_id: str,
        entity_type: EntityType,
        since: Optional[datetime] = None
    ) -> List[StatusHistoryRecord]:
        """Records for one entity, oldest first"""
        return self.repo.get_records_for_entity(entity_type, entity_id, since=since)

    def last_record(self, entity_id: str, entity_type: EntityType) -> Optional[StatusHistoryRecord]:
        return self.repo.get_last_record(entity_type, entity_id)

    def current_position_from(self, entity_id: str, entity_type: EntityType) -> Optional[str]:
        """Status ID of the latest record, or None when the entity has no history"""
        last = self.last_record(entity_id, entity_type)
        return last.status_id if last else None
