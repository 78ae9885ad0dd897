"""Status Repository - Data access for statuses"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
from pymongo import ASCENDING, ReturnDocument

from .mongo_client import get_database, storage_errors
from ..domain.models import Status
from ..domain.errors import ValidationError, StatusNotFoundError
from ..utils.time import utc_now, format_iso
from ..utils.logger import get_logger

logger = get_logger(__name__)


class StatusRepository:
    """Repository for status operations"""

    def __init__(self, database: Optional[Database] = None):
        db = database if database is not None else get_database()
        self._statuses: Collection = db["statuses"]

    @storage_errors
    def create_status(self, status: Status) -> Status:
        """Create a new status"""
        doc = status.model_dump(mode="json")
        doc["_id"] = status.status_id

        try:
            self._statuses.insert_one(doc)
        except DuplicateKeyError:
            raise ValidationError(
                f"Status '{status.name}' already exists",
                details={"name": status.name}
            )
        logger.info(f"Created status: {status.name}", extra={"status_id": status.status_id})
        return status

    @storage_errors
    def get_status(self, status_id: str) -> Optional[Status]:
        """Get status by ID"""
        doc = self._statuses.find_one({"status_id": status_id})
        return self._to_model(doc)

    @storage_errors
    def get_status_by_name(self, name: str) -> Optional[Status]:
        """Get status by its unique lowercase name"""
        doc = self._statuses.find_one({"name": name.strip().lower()})
        return self._to_model(doc)

    @storage_errors
    def list_statuses(self, active_only: bool = False) -> List[Status]:
        """List statuses ordered by name"""
        query: Dict[str, Any] = {}
        if active_only:
            query["is_active"] = True
        cursor = self._statuses.find(query).sort("name", ASCENDING)
        return [self._to_model(doc) for doc in cursor]

    @storage_errors
    def list_substatuses(self, parent_name: str, active_only: bool = False) -> List[Status]:
        """List sub-statuses of a master, ordered by order then name"""
        query: Dict[str, Any] = {"parent_status": parent_name, "is_substatus": True}
        if active_only:
            query["is_active"] = True
        cursor = self._statuses.find(query).sort([("order", ASCENDING), ("name", ASCENDING)])
        return [self._to_model(doc) for doc in cursor]

    @storage_errors
    def update_status(self, status_id: str, updates: Dict[str, Any]) -> Status:
        """Update mutable status fields"""
        updates["updated_at"] = format_iso(utc_now())
        result = self._statuses.find_one_and_update(
            {"status_id": status_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER
        )
        if result is None:
            raise StatusNotFoundError(f"Status {status_id} not found")

        logger.info(f"Updated status: {status_id}", extra={"status_id": status_id})
        return self._to_model(result)

    @staticmethod
    def _to_model(doc: Optional[Dict[str, Any]]) -> Optional[Status]:
        if doc is None:
            return None
        doc.pop("_id", None)
        return Status.model_validate(doc)
