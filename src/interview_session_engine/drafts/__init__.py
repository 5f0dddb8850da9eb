"""Draft persistence for unsent answers."""

from interview_session_engine.drafts.autosave import DraftAutosaver
from interview_session_engine.drafts.store import DraftStore, InMemoryDraftStore, JsonFileDraftStore

__all__ = [
    "DraftAutosaver",
    "DraftStore",
    "InMemoryDraftStore",
    "JsonFileDraftStore",
]
