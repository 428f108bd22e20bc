"""Debate engine: drives rounds through a mode strategy and scores them.

The engine is stateless between calls. It reads the session it is given,
runs rounds, and reports results; persisting them is the caller's job
(see :class:`~roundtable_mcp.session.manager.SessionManager`).
"""

import logging
import time
from typing import TYPE_CHECKING

from ..config import config
from ..core.exceptions import AgentError, ConfigurationError
from ..core.types import (
    AgentResponse,
    ContextResult,
    DebateContext,
    RoundResult,
    RoundStatus,
    Session,
)
from .exit_criteria import ExitCriteria, check_exit_criteria

if TYPE_CHECKING:
    from ..agents.base import BaseAgent
    from ..consensus.analyzer import ConsensusAnalyzer
    from ..modes.registry import ModeRegistry
    from ..tools.toolkit import AgentToolkit

logger = logging.getLogger(__name__)


class DebateEngine:
    """Execute debate rounds.

    Args:
        toolkit: Tools offered to agents, bound to each round's context
        consensus_analyzer: Scores each round
        mode_registry: Resolves ``session.mode`` to a strategy
    """

    def __init__(
        self,
        toolkit: "AgentToolkit | None",
        consensus_analyzer: "ConsensusAnalyzer | None",
        mode_registry: "ModeRegistry",
    ) -> None:
        if toolkit is None:
            raise ConfigurationError("DebateEngine requires an AgentToolkit")
        if consensus_analyzer is None:
            raise ConfigurationError("DebateEngine requires a ConsensusAnalyzer")
        self.toolkit = toolkit
        self.consensus_analyzer = consensus_analyzer
        self.mode_registry = mode_registry

    async def execute_round(self, agents: list["BaseAgent"], context: DebateContext) -> RoundResult:
        """Run one round for ``context`` and analyze its consensus.

        Raises:
            ConfigurationError: Unknown mode
            AgentError: Every agent failed (code ``ALL_AGENTS_FAILED``)
        """
        strategy = self.mode_registry.get(context.mode)
        round_toolkit = self.toolkit.bind(context)

        start = time.time()
        responses = await strategy.execute_round(agents, context, round_toolkit)
        if agents and not responses:
            raise AgentError(
                f"All {len(agents)} agents failed in round {context.current_round}",
                code="ALL_AGENTS_FAILED",
            )

        responses = [r.with_round(context.current_round) for r in responses]
        consensus = await self.consensus_analyzer.analyze_consensus(
            responses,
            context.topic,
            include_groupthink=strategy.needs_groupthink_detection,
        )

        requests = round_toolkit.get_pending_requests()
        if round_toolkit.has_required_requests():
            status = RoundStatus.NEEDS_CONTEXT
        elif context.is_final_round:
            status = RoundStatus.COMPLETED
        else:
            status = RoundStatus.IN_PROGRESS

        logger.info(
            f"[{context.session_id}] Round {context.current_round}/{context.total_rounds} "
            f"({context.mode}): {len(responses)}/{len(agents)} responses, "
            f"agreement {consensus.agreement_level:.2f}, {len(requests)} context requests, "
            f"{time.time() - start:.1f}s"
        )
        return RoundResult(
            round_number=context.current_round,
            responses=responses,
            consensus=consensus,
            context_requests=requests,
            status=status,
        )

    async def execute_rounds(
        self,
        agents: list["BaseAgent"],
        session: Session,
        num_rounds: int,
        focus_question: str | None = None,
        context_results: list[ContextResult] | None = None,
    ) -> list[RoundResult]:
        """Run up to ``num_rounds`` rounds after ``session.current_round``.

        ``session`` is updated in memory (``current_round`` and ``responses``)
        so later rounds see earlier ones. Context results are shown to the
        first executed round only. Stops early once ``total_rounds`` is
        reached, when a round needs context from the caller, or when an exit
        criterion is met; the round that met it carries the reason in
        ``RoundResult.exit``.
        """
        results: list[RoundResult] = []
        for i in range(num_rounds):
            round_number = session.current_round + 1
            if round_number > session.total_rounds:
                logger.debug(f"[{session.id}] All {session.total_rounds} rounds done")
                break

            context = DebateContext(
                session_id=session.id,
                topic=session.topic,
                mode=session.mode,
                current_round=round_number,
                total_rounds=session.total_rounds,
                previous_responses=tuple(session.responses),
                focus_question=focus_question,
                context_results=tuple(context_results or ()) if i == 0 else (),
            )

            result = await self.execute_round(agents, context)
            if result.status != RoundStatus.NEEDS_CONTEXT and config.exit_criteria_enabled:
                self._apply_exit_criteria(result, session)
            results.append(result)

            session.current_round = round_number
            session.responses.extend(result.responses)

            if result.status == RoundStatus.NEEDS_CONTEXT or result.exit is not None:
                break

        return results

    def _apply_exit_criteria(self, result: RoundResult, session: Session) -> None:
        """Attach an exit to ``result`` and mark it completed if one is met."""
        by_round: dict[int, list[AgentResponse]] = {}
        for response in session.responses:
            by_round.setdefault(response.round_number or 0, []).append(response)
        previous_rounds = [by_round[n] for n in sorted(by_round)]

        outcome = check_exit_criteria(
            result.responses,
            previous_rounds,
            ExitCriteria.from_config(session.total_rounds),
            result.round_number,
            result.consensus,
        )
        if not outcome.should_exit:
            return

        result.exit = outcome
        result.status = RoundStatus.COMPLETED
        if result.round_number < session.total_rounds:
            logger.info(f"[{session.id}] Exiting after round {result.round_number}: {outcome.details}")
