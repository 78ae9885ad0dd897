"""Workflow Engine - Graphs, transitions, history and reconciliation"""
from .graph import CompiledWorkflow
from .graph_validator import GraphValidator
from .published_cache import PublishedWorkflowCache
from .history_store import HistoryStore
from .transition_engine import TransitionEngine
from .reconciler import Reconciler

__all__ = [
    "CompiledWorkflow",
    "GraphValidator",
    "PublishedWorkflowCache",
    "HistoryStore",
    "TransitionEngine",
    "Reconciler",
]
