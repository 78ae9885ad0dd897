"""ID Generation Utilities"""
import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix

    Args:
        prefix: Optional prefix for the ID (e.g., 'STS', 'WF', 'HST')

    Returns:
        Unique ID string

    Examples:
        >>> generate_id('STS')
        'STS-a1b2c3d4e5f6'
        >>> generate_id()
        'a1b2c3d4e5f6'
    """
    # Generate short unique ID from UUID4
    unique_part = uuid.uuid4().hex[:12]

    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_status_id() -> str:
    """Generate status ID"""
    return generate_id("STS")


def generate_draft_workflow_id() -> str:
    """Generate draft workflow ID"""
    return generate_id("WFD")


def generate_published_workflow_id() -> str:
    """Generate published workflow ID"""
    return generate_id("WF")


def generate_history_record_id() -> str:
    """Generate status history record ID"""
    return generate_id("HST")


def generate_correlation_id() -> str:
    """
    Generate a correlation ID for request tracing

    Returns:
        Correlation ID string with timestamp prefix
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
