"""History Repository - Data access for status history (append-only)"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
from pymongo import ASCENDING, DESCENDING

from .mongo_client import get_database, storage_errors
from ..domain.models import StatusHistoryRecord
from ..domain.enums import EntityType
from ..domain.errors import ConcurrentModificationError
from ..utils.time import ensure_utc
from ..utils.logger import get_logger

logger = get_logger(__name__)


class HistoryRepository:
    """Repository for status history records (append-only, never updated or deleted)"""

    def __init__(self, database: Optional[Database] = None):
        db = database if database is not None else get_database()
        self._history: Collection = db["status_history"]

    @storage_errors
    def create_record(self, record: StatusHistoryRecord) -> StatusHistoryRecord:
        """
        Insert a history record

        Raises:
            ConcurrentModificationError: another record already took this sequence
        """
        doc = record.model_dump(mode="json")
        doc["_id"] = record.record_id
        # Native datetime so range queries and sorting work server-side
        doc["changed_at"] = record.changed_at

        try:
            self._history.insert_one(doc)
        except DuplicateKeyError:
            raise ConcurrentModificationError(
                f"History sequence {record.sequence} already taken for {record.entity_type.value} {record.entity_id}",
                details={"entity_id": record.entity_id, "sequence": record.sequence}
            )
        logger.info(
            f"Appended status history record: {record.kind.value} -> {record.status_id}",
            extra={
                "entity_id": record.entity_id,
                "entity_type": record.entity_type.value,
                "status_id": record.status_id,
                "record_id": record.record_id,
                "actor_id": record.changed_by.actor_id
            }
        )
        return record

    @storage_errors
    def get_last_record(self, entity_type: EntityType, entity_id: str) -> Optional[StatusHistoryRecord]:
        """Latest record for an entity"""
        doc = self._history.find_one(
            {"entity_type": entity_type.value, "entity_id": entity_id},
            sort=[("sequence", DESCENDING)]
        )
        return self._to_model(doc)

    @storage_errors
    def get_records_for_entity(
        self,
        entity_type: EntityType,
        entity_id: str,
        since: Optional[datetime] = None,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[StatusHistoryRecord]:
        """Records for an entity, oldest first"""
        query: Dict[str, Any] = {"entity_type": entity_type.value, "entity_id": entity_id}
        if since is not None:
            query["changed_at"] = {"$gte": since}

        cursor = self._history.find(query).sort("sequence", ASCENDING).skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [self._to_model(doc) for doc in cursor]

    @storage_errors
    def count_records_for_entity(self, entity_type: EntityType, entity_id: str) -> int:
        """Count history records for an entity"""
        return self._history.count_documents({"entity_type": entity_type.value, "entity_id": entity_id})

    @staticmethod
    def _to_model(doc: Optional[Dict[str, Any]]) -> Optional[StatusHistoryRecord]:
        if doc is None:
            return None
        doc.pop("_id", None)
        if isinstance(doc.get("changed_at"), datetime):
            doc["changed_at"] = ensure_utc(doc["changed_at"])
        return StatusHistoryRecord.model_validate(doc)
