"""Agent toolkit and MCP-facing roundtable tools."""

from .toolkit import AgentTool, AgentToolkit, RoundToolkit, ToolCall

__all__ = ["AgentTool", "AgentToolkit", "RoundToolkit", "ToolCall"]
