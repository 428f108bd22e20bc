"""Mode lookup by name."""

import logging

from ..core.exceptions import ConfigurationError
from .adversarial import AdversarialMode
from .base import ModeStrategy
from .collaborative import CollaborativeMode
from .delphi import DelphiMode
from .devils_advocate import DevilsAdvocateMode
from .expert_panel import ExpertPanelMode
from .red_team_blue_team import RedTeamBlueTeamMode
from .socratic import SocraticMode

logger = logging.getLogger(__name__)


def default_modes() -> list[ModeStrategy]:
    return [
        CollaborativeMode(),
        AdversarialMode(),
        SocraticMode(),
        ExpertPanelMode(),
        DelphiMode(),
        DevilsAdvocateMode(),
        RedTeamBlueTeamMode(),
    ]


class ModeRegistry:
    """Name -> strategy table, pre-populated with the built-in modes.

    Constructed once at startup and handed to the engine. ``reset`` restores
    the built-in set.
    """

    def __init__(self, register_defaults: bool = True) -> None:
        self._modes: dict[str, ModeStrategy] = {}
        if register_defaults:
            self._register_defaults()

    def _register_defaults(self) -> None:
        for mode in default_modes():
            self.register(mode)

    def register(self, mode: ModeStrategy) -> None:
        if mode.name in self._modes:
            logger.debug(f"Replacing mode: {mode.name}")
        self._modes[mode.name] = mode

    def get(self, name: str) -> ModeStrategy:
        """Look up a mode.

        Raises:
            ConfigurationError: No mode registered under ``name``
        """
        mode = self._modes.get(name)
        if mode is None:
            available = ", ".join(self._modes) or "none"
            raise ConfigurationError(f'Unknown debate mode "{name}". Available modes: {available}')
        return mode

    def has(self, name: str) -> bool:
        return name in self._modes

    def available_modes(self) -> list[str]:
        return list(self._modes)

    def remove(self, name: str) -> bool:
        return self._modes.pop(name, None) is not None

    def clear(self) -> None:
        self._modes.clear()

    def reset(self) -> None:
        self.clear()
        self._register_defaults()
