"""Entity Repositories - Status fields of the business entity collaborator stores

Leads, bids, proposals, quotes, invoices and finance records live in their own
collections owned by other services. The workflow engine only ever touches the
denormalized status field of those documents, and only through the
compare-and-swap below.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
from pymongo import ASCENDING

from .mongo_client import ENTITY_COLLECTIONS, get_database, storage_errors
from ..domain.enums import EntityType
from ..domain.errors import EntityNotFoundError, NotFoundError, ValidationError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class EntityStatusStore(ABC):
    """Status access contract for one business entity type"""

    entity_type: EntityType

    @abstractmethod
    def read_status(self, entity_id: str) -> str:
        """Current cached status ID of the entity"""

    @abstractmethod
    def compare_and_swap_status(self, entity_id: str, expected_status_id: str, new_status_id: str) -> bool:
        """Set the status only if it still equals expected_status_id"""

    @abstractmethod
    def list_changed_between(
        self,
        since: datetime,
        until: datetime,
        limit: int
    ) -> List[Tuple[str, str]]:
        """(entity_id, status_id) pairs whose status changed inside the window"""


class MongoEntityStatusStore(EntityStatusStore):
    """Entity status access backed by the entity's own MongoDB collection"""

    def __init__(self, entity_type: EntityType, database: Optional[Database] = None):
        db = database if database is not None else get_database()
        self.entity_type = entity_type
        self._entities: Collection = db[ENTITY_COLLECTIONS[entity_type]]

    @storage_errors
    def create_entity(self, entity_id: str, status_id: str) -> None:
        """Register an entity at its starting status (used by seeding and tests)"""
        now = utc_now()
        try:
            self._entities.insert_one({
                "_id": entity_id,
                "entity_id": entity_id,
                "status_id": status_id,
                "status_changed_at": now,
                "status_version": 0,
                "created_at": now,
            })
        except DuplicateKeyError:
            raise ValidationError(
                f"{self.entity_type.value} {entity_id} already exists",
                details={"entity_id": entity_id}
            )

    @storage_errors
    def exists(self, entity_id: str) -> bool:
        return self._entities.find_one({"entity_id": entity_id}, {"_id": 1}) is not None

    @storage_errors
    def read_status(self, entity_id: str) -> str:
        doc = self._entities.find_one({"entity_id": entity_id}, {"status_id": 1})
        if doc is None:
            raise EntityNotFoundError(
                f"{self.entity_type.value} {entity_id} not found",
                details={"entity_id": entity_id, "entity_type": self.entity_type.value}
            )
        return doc["status_id"]

    @storage_errors
    def compare_and_swap_status(self, entity_id: str, expected_status_id: str, new_status_id: str) -> bool:
        result = self._entities.find_one_and_update(
            {"entity_id": entity_id, "status_id": expected_status_id},
            {
                "$set": {"status_id": new_status_id, "status_changed_at": utc_now()},
                "$inc": {"status_version": 1},
            },
            projection={"status_id": 1}
        )
        if result is not None:
            return True

        # Lost the race, or the entity is not there at all
        if not self.exists(entity_id):
            raise EntityNotFoundError(
                f"{self.entity_type.value} {entity_id} not found",
                details={"entity_id": entity_id, "entity_type": self.entity_type.value}
            )
        return False

    @storage_errors
    def list_changed_between(
        self,
        since: datetime,
        until: datetime,
        limit: int
    ) -> List[Tuple[str, str]]:
        cursor = self._entities.find(
            {"status_changed_at": {"$gte": since, "$lte": until}},
            {"entity_id": 1, "status_id": 1}
        ).sort("status_changed_at", ASCENDING).limit(limit)
        return [(doc["entity_id"], doc["status_id"]) for doc in cursor]


class EntityStoreRegistry:
    """Explicit dispatch from entity type to its collaborator store"""

    def __init__(self, stores: Optional[Dict[EntityType, EntityStatusStore]] = None):
        self._stores: Dict[EntityType, EntityStatusStore] = dict(stores or {})

    @classmethod
    def from_database(cls, database: Optional[Database] = None) -> "EntityStoreRegistry":
        """Mongo-backed stores for every entity type"""
        return cls({
            entity_type: MongoEntityStatusStore(entity_type, database)
            for entity_type in EntityType
        })

    def register(self, store: EntityStatusStore) -> None:
        """Replace the store for store.entity_type"""
        self._stores[store.entity_type] = store

    def get(self, entity_type: EntityType) -> EntityStatusStore:
        store = self._stores.get(entity_type)
        if store is None:
            raise NotFoundError(
                f"No entity store registered for {entity_type.value}",
                details={"entity_type": entity_type.value}
            )
        return store

    def __iter__(self) -> Iterator[EntityStatusStore]:
        return iter(list(self._stores.values()))
