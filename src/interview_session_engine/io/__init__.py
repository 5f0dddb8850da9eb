"""
IO module for session interfaces.

Provides the terminal interface for answering a live interview session.
"""

from interview_session_engine.io.text_interface import SessionInterface, TextInterface

__all__ = ["SessionInterface", "TextInterface"]
