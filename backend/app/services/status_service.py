"""Status Service - Registry of master statuses and their sub-statuses"""
from typing import List, Optional

from ..domain.models import Status, StatusDefinition
from ..domain.errors import StatusNotFoundError, ValidationError
from ..repositories.status_repo import StatusRepository
from ..utils.idgen import generate_status_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class StatusRegistry:
    """
    Service for status definitions

    The hierarchy is exactly two levels deep: a sub-status names an existing
    master status through parent_status, and a master never has a parent.
    """

    def __init__(self, repo: Optional[StatusRepository] = None):
        self.repo = repo or StatusRepository()

    def create(self, definition: StatusDefinition) -> Status:
        """
        Register a new status

        Raises:
            ValidationError: Name taken, or the parent reference is invalid
        """
        if self.repo.get_status_by_name(definition.name):
            raise ValidationError(
                f"Status '{definition.name}' already exists",
                details={"name": definition.name}
            )

        if definition.is_substatus:
            if not definition.parent_status:
                raise ValidationError(
                    f"Sub-status '{definition.name}' must name a parent status",
                    details={"name": definition.name}
                )
            parent = self.repo.get_status_by_name(definition.parent_status)
            if parent is None or parent.is_substatus:
                raise ValidationError(
                    f"Parent status '{definition.parent_status}' is not an existing master status",
                    details={"name": definition.name, "parent_status": definition.parent_status}
                )
        elif definition.parent_status:
            raise ValidationError(
                f"Master status '{definition.name}' cannot have a parent status",
                details={"name": definition.name, "parent_status": definition.parent_status}
            )

        now = utc_now()
        status = Status(
            status_id=generate_status_id(),
            created_at=now,
            updated_at=now,
            **definition.model_dump()
        )
        return self.repo.create_status(status)

    def find_by_name(self, name: str) -> Status:
        status = self.repo.get_status_by_name(name)
        if status is None:
            raise StatusNotFoundError(f"Status '{name}' not found", details={"name": name})
        return status

    def find_by_id(self, status_id: str) -> Status:
        status = self.repo.get_status(status_id)
        if status is None:
            raise StatusNotFoundError(f"Status {status_id} not found", details={"status_id": status_id})
        return status

    def lookup(self, status_id: str) -> Optional[Status]:
        """Status by ID or None; used as the status lookup of graph validation"""
        return self.repo.get_status(status_id)

    def substatuses_of(self, master_name: str, active_only: bool = False) -> List[Status]:
        """Sub-statuses of a master, ordered by order then name"""
        master = self.find_by_name(master_name)
        if master.is_substatus:
            raise ValidationError(
                f"Status '{master.name}' is a sub-status and has no sub-statuses",
                details={"name": master.name}
            )
        return self.repo.list_substatuses(master.name, active_only=active_only)

    def list_statuses(self, active_only: bool = False) -> List[Status]:
        return self.repo.list_statuses(active_only=active_only)

    def deactivate(self, name: str) -> Status:
        """
        Mark a status inactive

        Raises:
            ValidationError: Master status still has active sub-statuses
        """
        status = self.find_by_name(name)
        if not status.is_substatus:
            active_children = self.repo.list_substatuses(status.name, active_only=True)
            if active_children:
                raise ValidationError(
                    f"Status '{status.name}' still has active sub-statuses",
                    details={"name": status.name, "substatuses": [s.name for s in active_children]}
                )
        logger.info(f"Deactivating status: {status.name}", extra={"status_id": status.status_id})
        return self.repo.update_status(status.status_id, {"is_active": False})

    @staticmethod
    def is_master(status: Status) -> bool:
        return not status.is_substatus

    @staticmethod
    def is_sub(status: Status) -> bool:
        return status.is_substatus
