"""Repository modules - Data access layer"""
from .mongo_client import get_database, create_indexes
from .status_repo import StatusRepository
from .workflow_repo import WorkflowRepository
from .history_repo import HistoryRepository
from .entity_repo import EntityStatusStore, MongoEntityStatusStore, EntityStoreRegistry

__all__ = [
    "get_database",
    "create_indexes",
    "StatusRepository",
    "WorkflowRepository",
    "HistoryRepository",
    "EntityStatusStore",
    "MongoEntityStatusStore",
    "EntityStoreRegistry",
]
