"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication
class AuthenticationError(DomainError):
    """Actor identity missing from the request"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed (bad status definition, malformed graph)"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class WorkflowValidationError(ValidationError):
    """Workflow graph validation failed"""
    error_code = "WORKFLOW_VALIDATION_ERROR"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class StatusNotFoundError(NotFoundError):
    """Status not found"""
    error_code = "STATUS_NOT_FOUND"


class EntityNotFoundError(NotFoundError):
    """Business entity not found in its collaborator store"""
    error_code = "ENTITY_NOT_FOUND"


class WorkflowNotFoundError(NotFoundError):
    """No workflow graph (or no published graph for an entity type)"""
    error_code = "WORKFLOW_NOT_FOUND"


# Transition Errors
class InvalidTransitionError(DomainError):
    """No edge in the published graph permits the requested change"""
    error_code = "INVALID_TRANSITION"
    http_status = 400


class ConcurrentModificationError(DomainError):
    """Compare-and-swap lost: the stored value no longer matches the expected one"""
    error_code = "CONCURRENT_MODIFICATION"
    http_status = 409


# Storage Errors
class StorageError(DomainError):
    """Persistence or transport failure"""
    error_code = "STORAGE_ERROR"
    http_status = 503
