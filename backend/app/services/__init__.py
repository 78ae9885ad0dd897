"""Service modules - Business logic layer"""
from .status_service import StatusRegistry
from .workflow_service import WorkflowService
from .runtime import EngineRuntime

__all__ = [
    "StatusRegistry",
    "WorkflowService",
    "EngineRuntime",
]
