"""Debate session state and persistence."""

from .manager import SessionManager
from .store import SessionStore

__all__ = ["SessionManager", "SessionStore"]
