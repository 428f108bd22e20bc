"""Configuration management for the Roundtable MCP Server."""

from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings


class RoundtableConfig(BaseSettings):
    """Configuration for the Roundtable MCP Server.

    All settings can be overridden via environment variables with ROUNDTABLE_MCP_ prefix.
    Example: ROUNDTABLE_MCP_DEFAULT_ROUNDS=5
    """

    # =========================================================================
    # Server Settings
    # =========================================================================
    server_name: str = "roundtable-mcp"
    server_host: str = "127.0.0.1"
    server_port: int = 8766
    transport: Literal["stdio", "sse", "streamable-http"] = "stdio"

    # =========================================================================
    # Model Settings
    # =========================================================================
    # Model used by debate participants
    default_model: str = "gemini-3-pro-preview"
    # Lighter model used for consensus analysis
    light_model: str = "gemini-3-flash-preview"
    temperature: float = 0.7
    max_output_tokens: int = 4096
    analysis_max_output_tokens: int = 8192
    request_timeout: int = 180  # seconds per backend call
    # Look up a GCP project for Vertex AI when only CLI OAuth credentials exist
    auto_discover_project: bool = False
    # Offer agents a search_web tool backed by Google Search grounding
    web_search_grounding: bool = True

    # =========================================================================
    # Debate Settings
    # =========================================================================
    default_mode: str = "collaborative"
    default_rounds: int = 3
    max_rounds: int = 10
    max_agents: int = 8
    # Names of agents created at startup (one per name, Gemini-backed)
    default_agents: str = "gemini-pro,gemini-flash"
    # Upper bound on function-calling turns inside a single agent response
    max_tool_iterations: int = 6
    # Provider used first for consensus analysis ("" = any healthy agent)
    consensus_provider: str = "gemini"

    # =========================================================================
    # Exit Criteria
    # =========================================================================
    # Stop a multi-round run early once agents agree, settle or grow confident
    exit_criteria_enabled: bool = True
    exit_consensus_threshold: float = 0.9
    # Consecutive unchanged rounds that count as convergence
    exit_convergence_rounds: int = 2
    exit_confidence_threshold: float = 0.85

    # =========================================================================
    # Retry Settings
    # =========================================================================
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    retry_backoff_factor: float = 2.0

    # =========================================================================
    # Storage Paths
    # =========================================================================
    data_dir: Path = Path.home() / ".roundtable-mcp"
    max_sessions: int = 500  # prune oldest finished sessions when exceeded

    # =========================================================================
    # Security
    # =========================================================================
    # Optional bearer token. When set, HTTP transports require
    # "Authorization: Bearer <token>".
    auth_token: str = ""

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = "INFO"
    # Enable structured JSON audit logging for tool invocations
    audit_log: bool = False

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("server_port")
    @classmethod
    def _port_range(cls, v: int) -> int:
        if not (1 <= v <= 65535):
            raise ValueError(f"server_port must be 1-65535, got {v}")
        return v

    @field_validator("request_timeout")
    @classmethod
    def _positive_timeout(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Timeout must be >= 1 second, got {v}")
        return v

    @field_validator("temperature")
    @classmethod
    def _temperature_range(cls, v: float) -> float:
        if not (0.0 <= v <= 2.0):
            raise ValueError(f"temperature must be 0.0-2.0, got {v}")
        return v

    @field_validator("default_rounds", "max_rounds")
    @classmethod
    def _rounds_range(cls, v: int) -> int:
        if not (1 <= v <= 50):
            raise ValueError(f"Round count must be 1-50, got {v}")
        return v

    @field_validator("max_agents")
    @classmethod
    def _agents_range(cls, v: int) -> int:
        if not (1 <= v <= 20):
            raise ValueError(f"max_agents must be 1-20, got {v}")
        return v

    @field_validator("max_retries", "max_tool_iterations")
    @classmethod
    def _small_non_negative(cls, v: int) -> int:
        if not (0 <= v <= 10):
            raise ValueError(f"Value must be 0-10, got {v}")
        return v

    @field_validator("retry_base_delay", "retry_max_delay")
    @classmethod
    def _non_negative_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Delay must be >= 0, got {v}")
        return v

    @field_validator("retry_backoff_factor")
    @classmethod
    def _backoff_factor(cls, v: float) -> float:
        if v < 1.0:
            raise ValueError(f"retry_backoff_factor must be >= 1.0, got {v}")
        return v

    @field_validator("exit_consensus_threshold", "exit_confidence_threshold")
    @classmethod
    def _unit_threshold(cls, v: float) -> float:
        if not (0.0 <= v <= 1.0):
            raise ValueError(f"Threshold must be 0.0-1.0, got {v}")
        return v

    @field_validator("exit_convergence_rounds")
    @classmethod
    def _convergence_rounds(cls, v: int) -> int:
        if not (1 <= v <= 10):
            raise ValueError(f"exit_convergence_rounds must be 1-10, got {v}")
        return v

    @field_validator("max_sessions")
    @classmethod
    def _session_quota(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_sessions must be >= 1, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"log_level must be one of {valid}, got {v}")
        return v.upper()

    model_config = {
        "env_prefix": "ROUNDTABLE_MCP_",
        "env_file": ".env",
        "extra": "ignore",
    }


# Global configuration instance
config = RoundtableConfig()
