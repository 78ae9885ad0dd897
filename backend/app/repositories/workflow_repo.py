"""Workflow Repository - Data access for draft and published workflow graphs"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
from pymongo import DESCENDING, ReturnDocument
from pydantic import ValidationError as PydanticValidationError

from .mongo_client import get_database, storage_errors
from ..domain.models import WorkflowGraph, PublishedPointer
from ..domain.enums import EntityType
from ..domain.errors import (
    WorkflowNotFoundError, WorkflowValidationError, ConcurrentModificationError
)
from ..utils.time import utc_now, format_iso
from ..utils.logger import get_logger

logger = get_logger(__name__)


def pointer_key(name: str, entity_type: EntityType) -> str:
    """_id of the published pointer for (name, entity_type)"""
    return f"{entity_type.value}:{name}"


class WorkflowRepository:
    """Repository for workflow drafts, published versions and published pointers"""

    def __init__(self, database: Optional[Database] = None):
        db = database if database is not None else get_database()
        self._drafts: Collection = db["workflow_drafts"]
        self._graphs: Collection = db["workflow_graphs"]
        self._pointers: Collection = db["published_workflows"]

    # =========================================================================
    # Drafts
    # =========================================================================

    @storage_errors
    def create_draft(self, draft: WorkflowGraph) -> WorkflowGraph:
        """Create a new draft; only one draft may exist per (name, entity_type)"""
        doc = draft.model_dump(mode="json")
        doc["_id"] = draft.workflow_id

        try:
            self._drafts.insert_one(doc)
        except DuplicateKeyError:
            raise WorkflowValidationError(
                f"A draft named '{draft.name}' already exists for {draft.entity_type.value}",
                details={"name": draft.name, "entity_type": draft.entity_type.value}
            )
        logger.info(
            f"Created workflow draft: {draft.workflow_id}",
            extra={"workflow_id": draft.workflow_id, "entity_type": draft.entity_type.value}
        )
        return draft

    @storage_errors
    def get_draft(self, workflow_id: str) -> Optional[WorkflowGraph]:
        """Get draft by ID"""
        return self._to_model(self._drafts.find_one({"workflow_id": workflow_id}))

    def get_draft_or_raise(self, workflow_id: str) -> WorkflowGraph:
        """Get draft by ID or raise error"""
        draft = self.get_draft(workflow_id)
        if not draft:
            raise WorkflowNotFoundError(f"Workflow draft {workflow_id} not found")
        return draft

    @storage_errors
    def get_draft_by_name(self, name: str, entity_type: EntityType) -> Optional[WorkflowGraph]:
        """Get the draft for (name, entity_type)"""
        doc = self._drafts.find_one({"name": name, "entity_type": entity_type.value})
        return self._to_model(doc)

    @storage_errors
    def list_drafts(self, entity_type: Optional[EntityType] = None) -> List[WorkflowGraph]:
        """List drafts, most recently edited first"""
        query: Dict[str, Any] = {}
        if entity_type:
            query["entity_type"] = entity_type.value
        cursor = self._drafts.find(query).sort("updated_at", DESCENDING)
        return [self._to_model(doc) for doc in cursor]

    @storage_errors
    def update_draft(
        self,
        workflow_id: str,
        updates: Dict[str, Any],
        expected_version: Optional[int] = None
    ) -> WorkflowGraph:
        """
        Update draft with optimistic concurrency

        Args:
            workflow_id: Draft workflow ID
            updates: Fields to update (JSON-ready values)
            expected_version: Expected version for optimistic lock
        """
        updates["updated_at"] = format_iso(utc_now())

        filter_query: Dict[str, Any] = {"workflow_id": workflow_id}
        if expected_version is not None:
            filter_query["version"] = expected_version
            updates["version"] = expected_version + 1

        result = self._drafts.find_one_and_update(
            filter_query,
            {"$set": updates},
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            if expected_version is not None:
                # Check if draft exists at all
                exists = self._drafts.find_one({"workflow_id": workflow_id})
                if exists:
                    raise ConcurrentModificationError(
                        f"Workflow draft {workflow_id} was modified. Please refresh and try again.",
                        details={"expected_version": expected_version, "current_version": exists.get("version")}
                    )
            raise WorkflowNotFoundError(f"Workflow draft {workflow_id} not found")

        logger.info(f"Updated workflow draft: {workflow_id}", extra={"workflow_id": workflow_id})
        return self._to_model(result)

    # =========================================================================
    # Published versions
    # =========================================================================

    @storage_errors
    def create_published(self, graph: WorkflowGraph) -> WorkflowGraph:
        """Insert an immutable published version"""
        doc = graph.model_dump(mode="json")
        doc["_id"] = graph.workflow_id

        try:
            self._graphs.insert_one(doc)
        except DuplicateKeyError:
            raise ConcurrentModificationError(
                f"Version {graph.version_number} of '{graph.name}' was published concurrently. Please retry.",
                details={"name": graph.name, "version_number": graph.version_number}
            )
        logger.info(
            f"Created published workflow version: {graph.workflow_id}",
            extra={"workflow_id": graph.workflow_id, "entity_type": graph.entity_type.value}
        )
        return graph

    @storage_errors
    def get_published_graph(self, workflow_id: str) -> Optional[WorkflowGraph]:
        """Get any published version by ID, including superseded ones"""
        return self._to_model(self._graphs.find_one({"workflow_id": workflow_id}))

    @storage_errors
    def list_published_versions(self, name: str, entity_type: EntityType) -> List[WorkflowGraph]:
        """All published versions of one logical workflow, newest first"""
        cursor = self._graphs.find(
            {"name": name, "entity_type": entity_type.value}
        ).sort("version_number", DESCENDING)
        return [self._to_model(doc) for doc in cursor]

    @storage_errors
    def get_next_version_number(self, name: str, entity_type: EntityType) -> int:
        """Get next publish sequence number for (name, entity_type)"""
        latest = self._graphs.find_one(
            {"name": name, "entity_type": entity_type.value},
            sort=[("version_number", DESCENDING)]
        )
        return (latest["version_number"] + 1) if latest else 1

    @storage_errors
    def mark_superseded(self, workflow_id: str, superseded_at: datetime) -> None:
        """Flag a published version as no longer active (graph content is untouched)"""
        self._graphs.update_one(
            {"workflow_id": workflow_id},
            {"$set": {"superseded_at": format_iso(superseded_at)}}
        )

    # =========================================================================
    # Published pointers
    # =========================================================================

    @storage_errors
    def swap_published_pointer(
        self,
        name: str,
        entity_type: EntityType,
        workflow_id: str,
        published_at: datetime
    ) -> Optional[str]:
        """
        Atomically point (name, entity_type) at a new published version

        Returns:
            The previously published workflow ID, if any
        """
        previous = self._pointers.find_one_and_update(
            {"_id": pointer_key(name, entity_type)},
            {"$set": {
                "name": name,
                "entity_type": entity_type.value,
                "workflow_id": workflow_id,
                "published_at": published_at,
            }},
            upsert=True,
            return_document=ReturnDocument.BEFORE
        )
        return previous["workflow_id"] if previous else None

    @storage_errors
    def get_pointer(self, name: str, entity_type: EntityType) -> Optional[PublishedPointer]:
        """Published pointer for (name, entity_type)"""
        return self._to_pointer(self._pointers.find_one({"_id": pointer_key(name, entity_type)}))

    @storage_errors
    def get_latest_pointer_for_type(self, entity_type: EntityType) -> Optional[PublishedPointer]:
        """
        Most recently published pointer for an entity type

        Pointers published at the same instant are ordered by workflow_id.
        """
        doc = self._pointers.find_one(
            {"entity_type": entity_type.value},
            sort=[("published_at", DESCENDING), ("workflow_id", DESCENDING)]
        )
        return self._to_pointer(doc)

    @staticmethod
    def _to_pointer(doc: Optional[Dict[str, Any]]) -> Optional[PublishedPointer]:
        if doc is None:
            return None
        doc.pop("_id", None)
        return PublishedPointer.model_validate(doc)

    @staticmethod
    def _to_model(doc: Optional[Dict[str, Any]]) -> Optional[WorkflowGraph]:
        if doc is None:
            return None
        doc.pop("_id", None)
        try:
            return WorkflowGraph.model_validate(doc)
        except PydanticValidationError as e:
            workflow_id = doc.get("workflow_id", "unknown")
            logger.error(
                f"Corrupted workflow data for {workflow_id}: {str(e)[:500]}",
                extra={"workflow_id": workflow_id}
            )
            raise WorkflowValidationError(
                f"Stored workflow {workflow_id} is corrupted",
                details={"workflow_id": workflow_id, "error_count": len(e.errors())}
            )
