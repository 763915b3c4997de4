"""Debate orchestration: research, sequential rounds, consensus gate, final answer.

One DebateOrchestrator can serve many debates; each run owns a fresh
DebateSession and reports progress as an ordered stream of StreamEvents.
"""

import asyncio
import logging
from dataclasses import asdict

from config.config_loader import LimitsConfig, ModelConfig, PromptsConfig
from council.clarification import check_for_clarification
from council.consensus import analyze_consensus
from council.cost import estimate_debate_cost
from council.models import (
    MODE_ROUNDS,
    ConsensusVerdict,
    CostEstimate,
    DebateOptions,
    DebateSession,
    EventKind,
    EventSink,
    SessionStatus,
    StreamEvent,
)
from council.personas import resolve_advisors
from council.providers.base import AIProvider, ProviderError
from council.research import ResearchGate
from council.rounds import InsufficientResponsesError, run_round
from council.synthesis import synthesize_final_answer

logger = logging.getLogger(__name__)

# Consensus is only meaningful once advisors have reacted to each other
FIRST_CONSENSUS_ROUND = 2


def _discard(event: StreamEvent) -> None:
    pass


class DebateOrchestrator:
    """Runs debates against one completion client and an optional research gate."""

    def __init__(
        self,
        client: AIProvider,
        prompts: PromptsConfig,
        limits: LimitsConfig | None = None,
        research_gate: ResearchGate | None = None,
        model_config: ModelConfig | None = None,
        research_cost: float = 0.0,
        session_timeout_sec: float | None = None,
    ) -> None:
        self._client = client
        self._prompts = prompts
        self._limits = limits or LimitsConfig()
        self._research_gate = research_gate
        self._model_config = model_config
        self._research_cost = research_cost
        self._session_timeout_sec = session_timeout_sec

    def create_session(
        self,
        question: str,
        prior_conversation: str = "",
        options: DebateOptions | None = None,
    ) -> DebateSession:
        """Validate the request and build a fresh session.

        Raises:
            ValueError: Empty question, unknown mode, or an invalid advisor panel.
        """
        options = options or DebateOptions()
        if not question.strip():
            raise ValueError("Question must not be empty")
        if options.mode not in MODE_ROUNDS:
            raise ValueError(
                f"Unknown mode '{options.mode}'. Choose from: {', '.join(MODE_ROUNDS)}"
            )
        return DebateSession(
            question=question.strip(),
            advisors=resolve_advisors(options.advisors),
            max_rounds=MODE_ROUNDS[options.mode],
            mode=options.mode,
            prior_conversation=prior_conversation,
        )

    async def run(
        self,
        question: str,
        prior_conversation: str = "",
        options: DebateOptions | None = None,
        on_event: EventSink | None = None,
    ) -> DebateSession:
        """Run a full debate, reporting every step to on_event.

        Returns the terminated session. Fatal failures end the session as
        FAILED with a single error event; they are not raised.
        """
        options = options or DebateOptions()
        session = self.create_session(question, prior_conversation, options)
        return await self.run_session(session, options, on_event or _discard)

    def stream(
        self,
        question: str,
        prior_conversation: str = "",
        options: DebateOptions | None = None,
    ) -> "DebateStream":
        """Start a debate as an async iterator of events with a cancel() handle."""
        options = options or DebateOptions()
        session = self.create_session(question, prior_conversation, options)
        return DebateStream(self, session, options)

    async def run_session(
        self,
        session: DebateSession,
        options: DebateOptions,
        emit: EventSink,
    ) -> DebateSession:
        logger.info(
            "Debate started: %d advisors, up to %d rounds (%s)",
            len(session.advisors),
            session.max_rounds,
            session.mode,
        )
        try:
            if self._session_timeout_sec:
                await asyncio.wait_for(
                    self._run(session, options, emit),
                    timeout=self._session_timeout_sec,
                )
            else:
                await self._run(session, options, emit)
        except TimeoutError:
            message = f"Debate exceeded the session timeout of {self._session_timeout_sec:g}s"
            logger.error(message)
            session.fail(message)
            emit(StreamEvent(EventKind.ERROR, content=message))
        except asyncio.CancelledError:
            logger.info("Debate cancelled in round %d", session.current_round)
            session.status = SessionStatus.CANCELLED
            raise

        logger.info(
            "Debate finished: %s after %d round(s), consensus=%s",
            session.status.value,
            session.current_round,
            session.consensus_reached,
        )
        return session

    async def _run(self, session: DebateSession, options: DebateOptions, emit: EventSink) -> None:
        emit(StreamEvent(EventKind.COST_ESTIMATE, data=self._estimate(session, options).to_dict()))

        if options.clarification_enabled and not session.prior_conversation.strip():
            if await self._clarify(session, emit):
                return

        await self._research(session, options, emit)

        verdict = ConsensusVerdict()
        while session.current_round < session.max_rounds:
            round_number = session.current_round + 1
            emit(StreamEvent(EventKind.STATUS, content=f"Round {round_number} of {session.max_rounds}"))
            emit(StreamEvent(EventKind.MODERATOR_ANALYSIS, content=f"Starting Round {round_number}..."))

            try:
                await run_round(session, self._client, self._prompts, self._limits, emit)
            except InsufficientResponsesError as exc:
                logger.error("Debate aborted: %s", exc)
                session.fail(str(exc))
                emit(StreamEvent(EventKind.ERROR, content=str(exc)))
                return

            if session.current_round < FIRST_CONSENSUS_ROUND:
                continue

            verdict = await self._check_consensus(session, emit)
            if verdict.consensus_reached:
                emit(StreamEvent(EventKind.STATUS, content="Generating final consensus..."))
                emit(StreamEvent(
                    EventKind.MODERATOR_ANALYSIS,
                    content="Consensus reached! Generating final answer...",
                ))
                await self._finalize(session, verdict, emit)
                return

        emit(StreamEvent(
            EventKind.MODERATOR_ANALYSIS,
            content="Maximum rounds reached. Synthesizing perspectives...",
        ))
        await self._finalize(session, verdict, emit)

    def _estimate(self, session: DebateSession, options: DebateOptions) -> CostEstimate:
        cfg = self._model_config
        return estimate_debate_cost(
            mode=session.mode,
            advisor_count=len(session.advisors),
            research_enabled=options.research_enabled,
            model=cfg.model if cfg else self._client.model_string(),
            input_price_per_mtok=cfg.input_price_per_mtok if cfg else 0.0,
            output_price_per_mtok=cfg.output_price_per_mtok if cfg else 0.0,
            research_cost=self._research_cost,
        )

    async def _clarify(self, session: DebateSession, emit: EventSink) -> bool:
        """Run the clarification gate. True if the session stopped to ask the user."""
        emit(StreamEvent(EventKind.MODERATOR_ANALYSIS, content="Analyzing question..."))
        try:
            follow_up = await check_for_clarification(
                session.question, self._client, self._prompts, self._limits
            )
        except ProviderError as exc:
            logger.warning("Clarification check failed, continuing: %s", exc)
            return False
        if follow_up is None:
            return False

        session.clarification_question = follow_up
        session.final_answer = follow_up
        session.status = SessionStatus.NEEDS_CLARIFICATION
        emit(StreamEvent(EventKind.CLARIFICATION_NEEDED, content=follow_up))
        return True

    async def _research(self, session: DebateSession, options: DebateOptions, emit: EventSink) -> None:
        gate = self._research_gate
        if gate is None or not gate.available:
            if options.research_enabled:
                emit(StreamEvent(
                    EventKind.STATUS,
                    content="Research requested but no search provider is configured",
                ))
            return
        if not gate.should_research(session.question, options.research_enabled):
            return

        emit(StreamEvent(EventKind.STATUS, content="Performing web research..."))
        results = await gate.perform_research(session.question, emit)
        if not results:
            return

        session.research_results = results
        emit(StreamEvent(
            EventKind.RESEARCH_RESULTS,
            content=f"Found {len(results)} relevant sources",
            data={"sources": [asdict(r) for r in results]},
        ))

    async def _check_consensus(self, session: DebateSession, emit: EventSink) -> ConsensusVerdict:
        emit(StreamEvent(EventKind.STATUS, content="Checking for consensus..."))
        emit(StreamEvent(EventKind.CONSENSUS_CHECK, content="Analyzing consensus..."))
        try:
            verdict = await analyze_consensus(session, self._client, self._prompts, self._limits)
        except ProviderError as exc:
            logger.warning("Consensus analysis failed in round %d: %s", session.current_round, exc)
            emit(StreamEvent(EventKind.ERROR, content=f"Consensus analysis failed: {exc}"))
            verdict = ConsensusVerdict()

        emit(StreamEvent(
            EventKind.MODERATOR_ANALYSIS,
            content=f"Agreement level: {round(verdict.agreement_level * 100)}%",
            data=verdict.to_dict(),
        ))
        return verdict

    async def _finalize(self, session: DebateSession, verdict: ConsensusVerdict, emit: EventSink) -> None:
        try:
            answer = await synthesize_final_answer(
                session, verdict, self._client, self._prompts, self._limits
            )
        except (ProviderError, RuntimeError) as exc:
            logger.error("Final answer synthesis failed: %s", exc)
            message = f"Final answer synthesis failed: {exc}"
            session.fail(message)
            emit(StreamEvent(EventKind.ERROR, content=message))
            return

        session.complete(answer, consensus_reached=verdict.consensus_reached)
        emit(StreamEvent(EventKind.FINAL_ANSWER, content=answer))


class DebateStream:
    """Async iterator over one running debate's events.

    The debate runs in its own task, started on first iteration. cancel()
    aborts the in-flight call and suppresses every later event. Breaking out
    of `async for` does not stop the task by itself; use the stream as an
    async context manager, or call aclose(), to guarantee no further calls:

        async with orchestrator.stream(question) as stream:
            async for event in stream:
                ...
    """

    def __init__(self, orchestrator: DebateOrchestrator, session: DebateSession, options: DebateOptions) -> None:
        self.session = session
        self._orchestrator = orchestrator
        self._options = options
        self._queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _push(self, event: StreamEvent) -> None:
        if not self._cancelled:
            self._queue.put_nowait(event)

    async def _produce(self) -> None:
        try:
            await self._orchestrator.run_session(self.session, self._options, self._push)
        finally:
            self._queue.put_nowait(None)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None:
            self._task.cancel()
        if not self.session.terminated:
            self.session.status = SessionStatus.CANCELLED
        # Wake a consumer blocked on the queue even if the task never started
        self._queue.put_nowait(None)

    async def aclose(self) -> None:
        """Cancel if still running and wait for the debate task to unwind."""
        if self._task is not None and not self._task.done():
            self.cancel()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def __aenter__(self) -> "DebateStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def __aiter__(self) -> "DebateStream":
        if self._task is None and not self._cancelled:
            self._task = asyncio.create_task(self._produce())
        return self

    async def __anext__(self) -> StreamEvent:
        if self._cancelled:
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is not None and not self._cancelled:
            return event
        if self._task is not None and not self._cancelled:
            # Surfaces an unexpected failure of the producer task
            await self._task
        raise StopAsyncIteration
