"""Domain Enums - All status and type enumerations"""
from enum import Enum


class EntityType(str, Enum):
    """Business entities whose lifecycle is tracked"""
    LEAD = "lead"
    BID = "bid"
    INVOICE = "invoice"
    FINANCE = "finance"
    QUOTE = "quote"
    PROPOSAL = "proposal"


class NodeType(str, Enum):
    """Position of a workflow node in the status hierarchy"""
    MASTER = "master"
    SUBSTATUS = "substatus"


class HistoryRecordKind(str, Enum):
    """How a status history record came to exist"""
    TRANSITION = "TRANSITION"
    RECONCILIATION = "RECONCILIATION"  # Synthetic catch-up record


class ViolationCode(str, Enum):
    """Structural problems reported by graph validation"""
    NO_NODES = "NO_NODES"
    DUPLICATE_NODE_ID = "DUPLICATE_NODE_ID"
    DUPLICATE_STATUS = "DUPLICATE_STATUS"
    UNKNOWN_STATUS = "UNKNOWN_STATUS"
    NODE_TYPE_MISMATCH = "NODE_TYPE_MISMATCH"
    PARENT_STATUS_MISMATCH = "PARENT_STATUS_MISMATCH"
    NO_INITIAL_NODE = "NO_INITIAL_NODE"
    MULTIPLE_INITIAL_NODES = "MULTIPLE_INITIAL_NODES"
    INITIAL_NODE_MISMATCH = "INITIAL_NODE_MISMATCH"
    MISSING_PARENT_NODE = "MISSING_PARENT_NODE"
    INVALID_PARENT_NODE = "INVALID_PARENT_NODE"
    UNEXPECTED_PARENT_NODE = "UNEXPECTED_PARENT_NODE"
    UNKNOWN_EDGE_ENDPOINT = "UNKNOWN_EDGE_ENDPOINT"
    DUPLICATE_EDGE = "DUPLICATE_EDGE"
    SELF_EDGE_NOT_LOOP = "SELF_EDGE_NOT_LOOP"
    ILLEGAL_SUBSTATUS_EDGE = "ILLEGAL_SUBSTATUS_EDGE"
    UNREACHABLE_NODE = "UNREACHABLE_NODE"
    UNREACHABLE_PARENT_NODE = "UNREACHABLE_PARENT_NODE"
    UNREACHABLE_CYCLE = "UNREACHABLE_CYCLE"
    NO_TERMINAL_NODE = "NO_TERMINAL_NODE"
