"""
Orchestrator module for driving a live interview session.
"""

from interview_session_engine.orchestrator.session_orchestrator import (
    UNSAVED_CHANGES_WARNING,
    SessionOrchestrator,
)
from interview_session_engine.orchestrator.session_state import SessionRuntimeState

__all__ = [
    "SessionOrchestrator",
    "SessionRuntimeState",
    "UNSAVED_CHANGES_WARNING",
]
