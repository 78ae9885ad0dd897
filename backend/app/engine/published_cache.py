"""Published Workflow Cache - Process-scoped lookup of active published graphs"""
import threading
import time
from typing import Callable, Dict, Hashable, Optional, Tuple

from ..domain.enums import EntityType
from .graph import CompiledWorkflow
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PublishedWorkflowCache:
    """
    Active published workflow per entity type and per (name, entity_type)

    Entries are immutable CompiledWorkflow objects; updates replace the dict
    entry by reference, so readers never wait on a publish. Publishing in this
    process invalidates the affected keys immediately; a TTL bounds how long
    another process can serve a superseded graph.

    Every invalidation bumps a generation counter. A reader takes
    generation() before loading from storage and passes it to put_*; the put
    is dropped when a publish invalidated the cache in between, so a graph
    loaded before the pointer swap never lands in the cache after it.

    Owned by EngineRuntime: populated at startup, invalidated on publish.
    """

    def __init__(self, ttl_seconds: float = 0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[CompiledWorkflow, float]] = {}
        self._generation = 0
        self._lock = threading.Lock()

    def generation(self) -> int:
        return self._generation

    def get_for_type(self, entity_type: EntityType) -> Optional[CompiledWorkflow]:
        return self._get(("type", entity_type))

    def get_for_name(self, name: str, entity_type: EntityType) -> Optional[CompiledWorkflow]:
        return self._get(("name", name, entity_type))

    def put_for_type(
        self, entity_type: EntityType, workflow: CompiledWorkflow, generation: Optional[int] = None
    ) -> bool:
        return self._put(("type", entity_type), workflow, generation)

    def put_for_name(
        self, name: str, entity_type: EntityType, workflow: CompiledWorkflow, generation: Optional[int] = None
    ) -> bool:
        return self._put(("name", name, entity_type), workflow, generation)

    def invalidate(self, name: str, entity_type: EntityType) -> None:
        """Drop every cached lookup a publish of (name, entity_type) can change"""
        with self._lock:
            self._generation += 1
            self._entries.pop(("name", name, entity_type), None)
            self._entries.pop(("type", entity_type), None)
        logger.info(
            f"Invalidated published workflow cache for {entity_type.value}:{name}",
            extra={"entity_type": entity_type.value}
        )

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._entries = {}

    def _put(self, key: Hashable, workflow: CompiledWorkflow, generation: Optional[int]) -> bool:
        """Store an entry; False when generation is stale (None stores unconditionally)"""
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.debug(f"Discarded published workflow loaded before invalidation: {key}")
                return False
            self._entries[key] = (workflow, self._clock())
            return True

    def _get(self, key: Hashable) -> Optional[CompiledWorkflow]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        workflow, cached_at = entry
        if self.ttl_seconds and self._clock() - cached_at > self.ttl_seconds:
            self._entries.pop(key, None)
            return None
        return workflow
