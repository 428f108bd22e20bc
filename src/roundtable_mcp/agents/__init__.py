"""Debate agents and the provider registry."""

from .base import BaseAgent, HealthStatus
from .errors import normalize_error
from .registry import ProviderRegistry

__all__ = ["BaseAgent", "HealthStatus", "ProviderRegistry", "normalize_error"]
