"""Agent toolkit: tools callable by agents while they compose a response.

Every tool declares a pydantic input model. ``execute_tool`` validates the
input, runs the executor and always returns a structured result dict:
``{"success": True, "data": ...}`` or ``{"success": False, "error": "..."}``.
Nothing in here raises to the calling agent.

One :class:`AgentToolkit` is shared by every session. Round state (the
bound :class:`DebateContext` and the context-request queue) lives on the
:class:`RoundToolkit` returned by :meth:`AgentToolkit.bind`, so rounds of
different sessions running at the same time never see each other's requests.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..core.types import ContextRequest, DebateContext, RequestPriority, Stance

logger = logging.getLogger(__name__)


class WebSearchProvider(Protocol):
    """Anything that can run a web search."""

    async def search(self, query: str, max_results: int = 5) -> list[dict]: ...


class SessionDataProvider(Protocol):
    """Source of evidence already present in a debate session."""

    async def find_related_evidence(self, session_id: str, claim: str) -> list[dict]: ...


# =============================================================================
# Tool input models
# =============================================================================
class GetContextInput(BaseModel):
    model_config = ConfigDict(extra="forbid")


class SubmitResponseInput(BaseModel):
    stance: Stance | None = None
    position: str = Field(min_length=1)
    reasoning: str = Field(min_length=1)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class SearchWebInput(BaseModel):
    query: str = Field(min_length=1)
    max_results: int = Field(default=5, gt=0, le=10)


class FactCheckInput(BaseModel):
    claim: str = Field(min_length=1)
    source_agent: str = "unknown"


class RequestContextInput(BaseModel):
    query: str = Field(min_length=1)
    reason: str = Field(min_length=1)
    priority: Literal["required", "optional"] = "optional"


def format_validation_error(error: ValidationError) -> str:
    """Render pydantic errors as ``path: message; path: message``."""
    messages = []
    for issue in error.errors():
        path = ".".join(str(p) for p in issue["loc"])
        messages.append(f"{path}: {issue['msg']}" if path else issue["msg"])
    return "; ".join(messages)


# =============================================================================
# Toolkit
# =============================================================================
@dataclass(frozen=True)
class ToolCall:
    """Who is calling a tool, and from which round."""

    agent_id: str | None = None
    scope: "RoundToolkit | None" = None

    @property
    def context(self) -> DebateContext | None:
        return self.scope.context if self.scope is not None else None


ToolExecutor = Callable[[BaseModel, ToolCall], Awaitable[dict]]


@dataclass
class AgentTool:
    """Tool declaration as presented to a model."""

    name: str
    description: str
    parameters: dict = field(default_factory=dict)  # JSON schema


@dataclass
class _ToolDefinition:
    tool: AgentTool
    executor: ToolExecutor
    input_model: type[BaseModel]


class AgentToolkit:
    """Named tool dispatch shared by all sessions.

    Calls made directly on the toolkit run without a debate context; the
    engine hands agents a :class:`RoundToolkit` from :meth:`bind` instead.
    """

    def __init__(
        self,
        search_provider: WebSearchProvider | None = None,
        session_data_provider: SessionDataProvider | None = None,
    ) -> None:
        self.search_provider = search_provider
        self.session_data_provider = session_data_provider
        self._tools: dict[str, _ToolDefinition] = {}
        self._register_default_tools()

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------
    def register_tool(
        self,
        name: str,
        description: str,
        executor: ToolExecutor,
        input_model: type[BaseModel],
    ) -> None:
        """Register (or replace) a tool."""
        schema = input_model.model_json_schema()
        schema.pop("title", None)
        self._tools[name] = _ToolDefinition(
            tool=AgentTool(name=name, description=description, parameters=schema),
            executor=executor,
            input_model=input_model,
        )

    def _register_default_tools(self) -> None:
        self.register_tool(
            "get_context",
            "Get the current debate context including topic, round number, and "
            "previous responses from other participants.",
            self._get_context,
            GetContextInput,
        )
        self.register_tool(
            "submit_response",
            "Submit your structured response with stance, position, reasoning, and confidence level.",
            self._submit_response,
            SubmitResponseInput,
        )
        self.register_tool(
            "request_context",
            "Ask the caller for information you cannot obtain yourself. Use priority "
            "'required' only when you cannot answer responsibly without it.",
            self._request_context,
            RequestContextInput,
        )
        self.register_tool(
            "fact_check",
            "Request fact checking on a specific claim made by another participant. "
            "Returns supporting/contradicting evidence.",
            self._fact_check,
            FactCheckInput,
        )
        if self.search_provider is not None:
            self.register_tool(
                "search_web",
                "Search the web for relevant information to support your arguments. "
                "Returns titles, URLs, and snippets.",
                self._search_web,
                SearchWebInput,
            )

    def get_tools(self) -> list[AgentTool]:
        return [d.tool for d in self._tools.values()]

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def bind(self, context: DebateContext) -> "RoundToolkit":
        """A view of this toolkit for one round, with its own request queue."""
        return RoundToolkit(self, context)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------
    async def execute_tool(
        self,
        name: str,
        tool_input: Any,
        agent_id: str | None = None,
        scope: "RoundToolkit | None" = None,
    ) -> dict:
        """Validate ``tool_input`` and run tool ``name``.

        Args:
            name: Registered tool name
            tool_input: Raw arguments from the model
            agent_id: Calling agent, recorded on context requests
            scope: Round the call belongs to, if any

        Returns:
            Structured success or error result
        """
        definition = self._tools.get(name)
        if definition is None:
            return {"success": False, "error": f'Tool "{name}" not found'}

        try:
            parsed = definition.input_model.model_validate(tool_input or {})
        except ValidationError as e:
            return {"success": False, "error": format_validation_error(e)}

        try:
            return await definition.executor(parsed, ToolCall(agent_id=agent_id, scope=scope))
        except Exception as e:
            logger.warning(f"Tool {name} failed: {e}")
            return {"success": False, "error": str(e) or "Tool execution failed"}

    # -------------------------------------------------------------------------
    # Built-in executors
    # -------------------------------------------------------------------------
    async def _get_context(self, _: GetContextInput, call: ToolCall) -> dict:
        ctx = call.context
        if ctx is None:
            return {"success": False, "error": "No debate context available"}
        data = {
            "topic": ctx.topic,
            "mode": ctx.mode,
            "current_round": ctx.current_round,
            "total_rounds": ctx.total_rounds,
            "previous_responses": [
                {
                    "agent_name": r.agent_name,
                    "position": r.position,
                    "confidence": r.confidence,
                }
                for r in ctx.previous_responses
            ],
        }
        if ctx.focus_question:
            data["focus_question"] = ctx.focus_question
        return {"success": True, "data": data}

    async def _submit_response(self, payload: SubmitResponseInput, call: ToolCall) -> dict:
        return {"success": True, "data": payload.model_dump(mode="json", exclude_none=True)}

    async def _request_context(self, payload: RequestContextInput, call: ToolCall) -> dict:
        ctx = call.context
        if ctx is None:
            return {"success": False, "error": "No debate context available"}

        priority = RequestPriority(payload.priority)
        if priority == RequestPriority.REQUIRED and ctx.current_round >= ctx.total_rounds:
            return {
                "success": False,
                "error": "Required context requests are not allowed in the final round; "
                "use priority 'optional' or answer with what you have",
            }

        request = ContextRequest(
            id=f"ctx-{uuid.uuid4().hex[:12]}",
            agent_id=call.agent_id or "unknown",
            query=payload.query,
            reason=payload.reason,
            priority=priority,
        )
        call.scope.add_request(request)
        logger.info(
            f"[{ctx.session_id}] Context request {request.id} ({priority}) "
            f"from {request.agent_id}: {payload.query}"
        )
        return {
            "success": True,
            "data": {
                "request_id": request.id,
                "status": "queued",
                "message": "The caller will answer before the next round.",
            },
        }

    async def _search_web(self, payload: SearchWebInput, call: ToolCall) -> dict:
        if self.search_provider is None:
            return {"success": False, "error": "Web search is not available"}
        results = await self.search_provider.search(payload.query, max_results=payload.max_results)
        return {"success": True, "data": {"results": results}}

    async def _fact_check(self, payload: FactCheckInput, call: ToolCall) -> dict:
        web_evidence: list[dict] = []
        if self.search_provider is not None:
            try:
                web_evidence = await self.search_provider.search(f"fact check: {payload.claim}", max_results=3)
            except Exception as e:
                # Partial evidence is still useful
                logger.warning(f"fact_check web search failed: {e}")

        debate_evidence: list[dict] = []
        if self.session_data_provider is not None and call.context is not None:
            try:
                debate_evidence = await self.session_data_provider.find_related_evidence(
                    call.context.session_id, payload.claim
                )
            except Exception as e:
                logger.warning(f"fact_check session lookup failed: {e}")

        return {
            "success": True,
            "data": {
                "claim": payload.claim,
                "source_agent": payload.source_agent,
                "web_evidence": web_evidence,
                "debate_evidence": debate_evidence,
            },
        }


class RoundToolkit:
    """The toolkit as seen by the agents of a single round.

    Holds that round's :class:`DebateContext` and the context requests its
    agents queue. Tool declarations and dispatch come from the shared
    :class:`AgentToolkit`.
    """

    def __init__(self, toolkit: AgentToolkit, context: DebateContext) -> None:
        self.toolkit = toolkit
        self.context = context
        self._pending: list[ContextRequest] = []

    def get_tools(self) -> list[AgentTool]:
        return self.toolkit.get_tools()

    def has_tool(self, name: str) -> bool:
        return self.toolkit.has_tool(name)

    async def execute_tool(self, name: str, tool_input: Any, agent_id: str | None = None) -> dict:
        return await self.toolkit.execute_tool(name, tool_input, agent_id=agent_id, scope=self)

    def add_request(self, request: ContextRequest) -> None:
        self._pending.append(request)

    def get_pending_requests(self) -> list[ContextRequest]:
        return list(self._pending)

    def clear_pending_requests(self) -> None:
        self._pending.clear()

    def has_required_requests(self) -> bool:
        return any(r.priority == RequestPriority.REQUIRED for r in self._pending)
