"""Roundtable MCP Server - Main entry point.

This module defines the MCP server and registers the roundtable tools.
"""

import logging

from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from . import __version__
from .config import config
from .middleware import audit_tool_call
from .tools import roundtable_tools

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

mcp = FastMCP(
    config.server_name,
    host=config.server_host,
    port=config.server_port,
)


# =============================================================================
# Health Check: HTTP endpoint for load-balancer probes and MCP tool
# =============================================================================
@mcp.custom_route(path="/health", methods=["GET"])
async def health_check(request: Request) -> Response:
    """HTTP health-check endpoint."""
    return JSONResponse({"status": "healthy", "version": __version__})


@mcp.tool()
def ping() -> str:
    """Health check - returns 'pong' if server is running."""
    return "pong"


# =============================================================================
# Session Tools
# =============================================================================
@mcp.tool()
async def start_roundtable(
    topic: str,
    mode: str | None = None,
    agents: list[str] | None = None,
    rounds: int | None = None,
) -> dict:
    """
    Start a multi-agent roundtable discussion and run its first round.

    Args:
        topic: Question or proposition to discuss
        mode: collaborative (default), adversarial, socratic, expert-panel, delphi,
            devils-advocate, or red-team-blue-team
        agents: Agent IDs to include (default: all registered agents)
        rounds: Total number of rounds (default 3, up to the configured maximum)

    Returns:
        Session info with the first round's responses and consensus
    """
    audit_tool_call("start_roundtable", mode=mode, rounds=rounds)
    return await roundtable_tools.start_roundtable(topic=topic, mode=mode, agents=agents, rounds=rounds)


@mcp.tool()
async def continue_roundtable(
    session_id: str,
    focus_question: str | None = None,
    context_results: list[dict] | None = None,
    rounds: int = 1,
) -> dict:
    """
    Run the next round(s) of an active roundtable.

    Args:
        session_id: Session to continue
        focus_question: Optional question to steer this round
        context_results: Answers to context requests from the previous round,
            each {"request_id", "success", "result" or "error"}
        rounds: Rounds to run in this call (default 1). The run stops early
            once agents reach consensus, settle on their positions, are all
            highly confident, or need context

    Returns:
        The latest round's responses and consensus, plus exit_reason when
        the debate ended early
    """
    audit_tool_call("continue_roundtable", session_id=session_id, rounds=rounds)
    return await roundtable_tools.continue_roundtable(
        session_id=session_id,
        focus_question=focus_question,
        context_results=context_results,
        rounds=rounds,
    )


@mcp.tool()
async def control_session(session_id: str, action: str) -> dict:
    """
    Pause, resume, or stop a roundtable session.

    Args:
        session_id: Session to control
        action: pause, resume, or stop

    Returns:
        Previous and new session status
    """
    audit_tool_call("control_session", session_id=session_id, action=action)
    return await roundtable_tools.control_session(session_id=session_id, action=action)


@mcp.tool()
async def list_sessions(status: str | None = None, mode: str | None = None, limit: int = 20) -> dict:
    """
    List roundtable sessions, newest first.

    Args:
        status: Filter by status - active, paused, completed, error
        mode: Filter by debate mode
        limit: Maximum number of sessions

    Returns:
        Session summaries
    """
    audit_tool_call("list_sessions", status=status, mode=mode)
    return await roundtable_tools.list_sessions(status=status, mode=mode, limit=limit)


# =============================================================================
# Query Tools
# =============================================================================
@mcp.tool()
async def get_consensus(session_id: str, round_number: int | None = None) -> dict:
    """
    Analyze consensus for a round.

    Args:
        session_id: Session to analyze
        round_number: Round to analyze (default: latest)

    Returns:
        Agreement level, common ground, disagreements, and clusters
    """
    audit_tool_call("get_consensus", session_id=session_id)
    return await roundtable_tools.get_consensus(session_id=session_id, round_number=round_number)


@mcp.tool()
async def get_citations(
    session_id: str,
    round_number: int | None = None,
    agent_id: str | None = None,
) -> dict:
    """
    List the unique sources agents cited.

    Args:
        session_id: Session to inspect
        round_number: Optional round filter
        agent_id: Optional agent filter

    Returns:
        Citations with the citing agent and round
    """
    audit_tool_call("get_citations", session_id=session_id)
    return await roundtable_tools.get_citations(
        session_id=session_id, round_number=round_number, agent_id=agent_id
    )


@mcp.tool()
async def get_round_details(session_id: str, round_number: int) -> dict:
    """
    Get every response from one round plus its consensus.

    Args:
        session_id: Session to inspect
        round_number: Round to show

    Returns:
        Responses and consensus analysis
    """
    audit_tool_call("get_round_details", session_id=session_id)
    return await roundtable_tools.get_round_details(session_id=session_id, round_number=round_number)


@mcp.tool()
async def get_agent_history(session_id: str, agent_id: str) -> dict:
    """
    Get one agent's responses across all rounds.

    Args:
        session_id: Session to inspect
        agent_id: Agent to follow

    Returns:
        Responses and confidence evolution
    """
    audit_tool_call("get_agent_history", session_id=session_id, agent_id=agent_id)
    return await roundtable_tools.get_agent_history(session_id=session_id, agent_id=agent_id)


# =============================================================================
# Agent Tools
# =============================================================================
@mcp.tool()
async def list_agents(refresh: bool = False) -> dict:
    """
    List registered agents and available debate modes.

    Args:
        refresh: Run health checks before reporting

    Returns:
        Agents with health status and mode names
    """
    audit_tool_call("list_agents", refresh=refresh)
    return await roundtable_tools.list_agents(refresh=refresh)


@mcp.tool()
async def analysis_diagnostics() -> dict:
    """
    Explain whether consensus analysis can use a model right now.

    Returns:
        Provider and agent availability with a reason when degraded
    """
    audit_tool_call("analysis_diagnostics")
    return await roundtable_tools.analysis_diagnostics()


# =============================================================================
# Entry Point
# =============================================================================
def _run_with_auth() -> None:
    """Serve the SSE app behind bearer-token auth via uvicorn."""
    import uvicorn
    from starlette.applications import Starlette
    from starlette.middleware import Middleware
    from starlette.routing import Mount

    from .middleware import BearerAuthMiddleware

    app = Starlette(
        routes=[Mount("/", app=mcp.sse_app())],
        middleware=[Middleware(BearerAuthMiddleware, token=config.auth_token)],
    )

    logger.info("Bearer-token authentication enabled")
    uvicorn.run(app, host=config.server_host, port=config.server_port)


def main() -> None:
    """Run the Roundtable MCP server."""
    logger.info(f"Starting {config.server_name} v{__version__}")
    logger.info(f"Transport: {config.transport}")
    logger.info(f"Data directory: {config.data_dir}")

    rt = roundtable_tools.get_roundtable()
    logger.info(
        f"Agents: {', '.join(rt.registry.all_agent_ids()) or 'none'}; "
        f"modes: {', '.join(rt.modes.available_modes())}"
    )

    if config.auth_token and config.transport != "stdio":
        _run_with_auth()
    else:
        mcp.run(transport=config.transport)


if __name__ == "__main__":
    main()
