"""Debate round orchestration."""

from .engine import DebateEngine
from .exit_criteria import ExitCriteria, check_exit_criteria

__all__ = ["DebateEngine", "ExitCriteria", "check_exit_criteria"]
