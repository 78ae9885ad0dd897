"""Engine Runtime - Wires repositories, services and the transition engine together"""
from typing import Optional
from pymongo.database import Database

from ..config.settings import settings
from ..domain.enums import EntityType
from ..domain.errors import WorkflowNotFoundError
from ..repositories.mongo_client import get_database
from ..repositories.status_repo import StatusRepository
from ..repositories.workflow_repo import WorkflowRepository
from ..repositories.history_repo import HistoryRepository
from ..repositories.entity_repo import EntityStoreRegistry
from ..engine.published_cache import PublishedWorkflowCache
from ..engine.history_store import HistoryStore
from ..engine.transition_engine import TransitionEngine
from ..engine.reconciler import Reconciler
from .status_service import StatusRegistry
from .workflow_service import WorkflowService
from ..utils.logger import get_logger

logger = get_logger(__name__)


class EngineRuntime:
    """
    One process-wide set of workflow components

    Owns the published workflow cache, so publishing through workflow_service
    invalidates exactly the cache the engine reads from.
    """

    def __init__(
        self,
        database: Optional[Database] = None,
        cache_ttl_seconds: Optional[float] = None,
        entity_stores: Optional[EntityStoreRegistry] = None
    ):
        db = database if database is not None else get_database()
        ttl = settings.published_cache_ttl_seconds if cache_ttl_seconds is None else cache_ttl_seconds

        self.database = db
        self.cache = PublishedWorkflowCache(ttl_seconds=ttl)
        self.status_registry = StatusRegistry(StatusRepository(db))
        self.workflow_service = WorkflowService(
            repo=WorkflowRepository(db),
            status_registry=self.status_registry,
            cache=self.cache
        )
        self.history = HistoryStore(HistoryRepository(db))
        self.entity_stores = entity_stores or EntityStoreRegistry.from_database(db)
        self.engine = TransitionEngine(
            workflow_repo=self.workflow_service.repo,
            entity_stores=self.entity_stores,
            history=self.history,
            cache=self.cache,
            status_lookup=self.status_registry.lookup
        )
        self.reconciler = Reconciler(self.engine)

    def warm_cache(self) -> int:
        """Load the published workflow of every entity type; returns how many were found"""
        loaded = 0
        for entity_type in EntityType:
            try:
                self.engine.get_published_workflow(entity_type)
                loaded += 1
            except WorkflowNotFoundError:
                logger.debug(f"No published workflow for {entity_type.value}")
        logger.info(f"Published workflow cache warmed: {loaded} entity type(s)")
        return loaded
