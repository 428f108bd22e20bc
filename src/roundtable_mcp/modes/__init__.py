"""Dialogue mode strategies."""

from .adversarial import AdversarialMode
from .base import ModeStrategy
from .collaborative import CollaborativeMode
from .delphi import DelphiMode
from .devils_advocate import DevilsAdvocateMode
from .expert_panel import ExpertPanelMode
from .red_team_blue_team import RedTeamBlueTeamMode
from .registry import ModeRegistry
from .role_based import RoleBasedModeStrategy, RoleConfig
from .socratic import SocraticMode
from .tool_policy import ExecutionPattern

__all__ = [
    "AdversarialMode",
    "CollaborativeMode",
    "DelphiMode",
    "DevilsAdvocateMode",
    "ExecutionPattern",
    "ExpertPanelMode",
    "ModeRegistry",
    "ModeStrategy",
    "RedTeamBlueTeamMode",
    "RoleBasedModeStrategy",
    "RoleConfig",
    "SocraticMode",
]
