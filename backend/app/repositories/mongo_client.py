"""MongoDB Client - Connection and Collection Management"""
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import (
    ConnectionFailure, ExecutionTimeout, NetworkTimeout, PyMongoError, WTimeoutError
)

from ..config.settings import settings
from ..domain.enums import EntityType
from ..domain.errors import StorageError
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None

# Collaborator collections holding each entity type's denormalized status
ENTITY_COLLECTIONS: Dict[EntityType, str] = {
    EntityType.LEAD: "leads",
    EntityType.BID: "bids",
    EntityType.INVOICE: "invoices",
    EntityType.FINANCE: "finance_records",
    EntityType.QUOTE: "quotes",
    EntityType.PROPOSAL: "proposals",
}

F = TypeVar("F", bound=Callable[..., Any])


def storage_errors(func: F) -> F:
    """Translate pymongo failures into StorageError at the repository boundary"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except PyMongoError as e:
            timed_out = isinstance(e, (ExecutionTimeout, NetworkTimeout, WTimeoutError))
            logger.error(
                f"Storage operation {func.__qualname__} failed: {e}",
                extra={"error_code": StorageError.error_code}
            )
            raise StorageError(
                f"Storage operation failed: {func.__name__}",
                details={"operation": func.__qualname__, "timeout": timed_out}
            ) from e
    return wrapper  # type: ignore[return-value]


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=30000,
        )
        # Test connection
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes(database: Optional[Database] = None) -> None:
    """Create all required indexes"""
    db = database if database is not None else get_database()
    logger.info("Creating MongoDB indexes...")

    # Statuses collection
    statuses = db["statuses"]
    statuses.create_index("status_id", unique=True)
    statuses.create_index("name", unique=True)
    statuses.create_index([("parent_status", ASCENDING), ("order", ASCENDING)])

    # Draft workflows: one draft per (name, entity_type)
    drafts = db["workflow_drafts"]
    drafts.create_index("workflow_id", unique=True)
    drafts.create_index([("name", ASCENDING), ("entity_type", ASCENDING)], unique=True)

    # Published workflow versions (immutable)
    graphs = db["workflow_graphs"]
    graphs.create_index("workflow_id", unique=True)
    graphs.create_index(
        [("name", ASCENDING), ("entity_type", ASCENDING), ("version_number", DESCENDING)],
        unique=True
    )

    # Published pointers: one per (name, entity_type), keyed by _id
    pointers = db["published_workflows"]
    pointers.create_index(
        [("entity_type", ASCENDING), ("published_at", DESCENDING), ("workflow_id", DESCENDING)]
    )

    # Status history (append-only)
    history = db["status_history"]
    history.create_index("record_id", unique=True)
    history.create_index(
        [("entity_type", ASCENDING), ("entity_id", ASCENDING), ("sequence", ASCENDING)],
        unique=True
    )
    history.create_index("correlation_id")

    # Entity collaborator collections
    for collection_name in ENTITY_COLLECTIONS.values():
        entities = db[collection_name]
        entities.create_index("entity_id", unique=True)
        entities.create_index("status_changed_at")

    logger.info("MongoDB indexes created successfully")


def health_check(database: Optional[Database] = None) -> Dict[str, Any]:
    """Ping the database the runtime writes to"""
    db = database if database is not None else get_database()
    try:
        db.command("ping")
        return {"status": "healthy", "database": db.name, "connection": "ok"}
    except PyMongoError as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {"status": "unhealthy", "database": db.name, "error": str(e)}
