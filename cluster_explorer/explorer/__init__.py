"""Interactive cluster exploration: state, protocols and orchestration."""

from .reconfigure import ReconfigurationProtocol, SnapshotStore
from .recommendations import RecommendationOrchestrator, derive_seed_ids
from .runtime import EventLoopThread
from .session import ExplorerSession, SessionView
from .state import IDLE, HoverState, InteractionStateMachine, SelectionState, ViewMode

__all__ = [
    "EventLoopThread",
    "ExplorerSession",
    "HoverState",
    "IDLE",
    "InteractionStateMachine",
    "ReconfigurationProtocol",
    "RecommendationOrchestrator",
    "SelectionState",
    "SessionView",
    "SnapshotStore",
    "ViewMode",
    "derive_seed_ids",
]
