"""Round executor: one sequential pass over the advisor panel."""

import logging

from config.config_loader import LimitsConfig, PromptsConfig
from council.models import DebateSession, EventKind, EventSink, ResearchResult, StreamEvent
from council.personas import display_name, get_persona
from council.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)

# A round below this many successful turns aborts the debate
MIN_SUCCESSFUL_TURNS = 2

_CITE_FIRST = " Use the research findings above and cite sources with [1], [2], etc."
_CITE_AGAIN = " Continue citing research sources with [1], [2], etc."


class InsufficientResponsesError(RuntimeError):
    """Fewer than MIN_SUCCESSFUL_TURNS advisors answered in a round."""

    def __init__(self, round_number: int, succeeded: int, attempted: int) -> None:
        self.round_number = round_number
        self.succeeded = succeeded
        self.attempted = attempted
        super().__init__(
            f"Insufficient advisor responses in round {round_number}: "
            f"only {succeeded}/{attempted} succeeded"
        )


def format_research(results: list[ResearchResult] | None) -> str:
    """Numbered citation block, or "" when there is nothing to cite."""
    if not results:
        return ""
    entries = "\n\n".join(
        f"[{i}] {r.title}\n   Source: {r.url}\n   {r.snippet}"
        for i, r in enumerate(results, start=1)
    )
    return (
        "\n\n**RESEARCH FINDINGS** (cite these sources in your response):\n"
        f"{entries}\n\n"
        'IMPORTANT: When using research findings, cite them like "[1]" or "according to [2]"'
    )


def format_other_advisors(session: DebateSession, current_advisor: str) -> str:
    """Latest utterance of every other selected advisor that has spoken."""
    parts: list[str] = []
    for advisor in session.advisors:
        if advisor == current_advisor:
            continue
        latest = session.latest_response(advisor)
        if latest:
            parts.append(f"**{display_name(advisor)}**: {latest}")
    return "\n\n".join(parts)


def build_advisor_prompt(session: DebateSession, advisor: str, prompts: PromptsConfig) -> str:
    """User message for one advisor turn in the session's current round."""
    research = format_research(session.research_results)
    context = research
    if session.prior_conversation.strip():
        context += f"\n\nPrevious conversation:\n{session.prior_conversation.strip()}"

    if session.current_round <= 1:
        return prompts.round_one.format(
            question=session.question,
            context=context,
            citation_hint=_CITE_FIRST if research else "",
        )
    return prompts.follow_up.format(
        question=session.question,
        context=context,
        round=session.current_round,
        other_advisors=format_other_advisors(session, advisor),
        citation_hint=_CITE_AGAIN if research else "",
    )


async def _advisor_turn(
    session: DebateSession,
    advisor: str,
    client: AIProvider,
    prompts: PromptsConfig,
    limits: LimitsConfig,
    emit: EventSink,
) -> None:
    persona = get_persona(advisor)
    prompt = build_advisor_prompt(session, advisor, prompts)
    logger.debug("Round %d prompt for %s:\n%s", session.current_round, advisor, prompt)

    emit(StreamEvent(EventKind.STATUS, content=f"{persona.name} is thinking..."))
    emit(StreamEvent(EventKind.AGENT_START, agent=advisor))

    response = await client.complete(
        system_prompt=persona.system_prompt,
        messages=[{"role": "user", "content": prompt}],
        max_tokens=limits.advisor_max_tokens,
        on_chunk=lambda text: emit(StreamEvent(EventKind.AGENT_RESPONSE, agent=advisor, content=text)),
    )
    if not response.content.strip():
        raise ProviderError(client.name(), "Empty response content")

    # Visible to the advisors after this one in the same round
    session.record_advisor_turn(advisor, response.content)
    emit(StreamEvent(EventKind.AGENT_COMPLETE, agent=advisor))


async def run_round(
    session: DebateSession,
    client: AIProvider,
    prompts: PromptsConfig,
    limits: LimitsConfig,
    emit: EventSink,
) -> DebateSession:
    """Start the next round and give every advisor one turn, in panel order.

    A failed turn is reported as an error event and the round moves on.

    Raises:
        InsufficientResponsesError: If fewer than MIN_SUCCESSFUL_TURNS
            advisors answered.
    """
    round_number = session.start_round()
    logger.info("Starting round %d with %d advisors", round_number, len(session.advisors))

    succeeded = 0
    for advisor in session.advisors:
        try:
            await _advisor_turn(session, advisor, client, prompts, limits, emit)
        except Exception as exc:
            logger.warning("Advisor %s failed in round %d: %s", advisor, round_number, exc)
            emit(StreamEvent(
                EventKind.ERROR,
                agent=advisor,
                content=f"{display_name(advisor)} failed to respond: {exc}",
            ))
            continue
        succeeded += 1

    logger.info(
        "Round %d complete: %d/%d advisors succeeded",
        round_number,
        succeeded,
        len(session.advisors),
    )

    if succeeded < MIN_SUCCESSFUL_TURNS:
        raise InsufficientResponsesError(round_number, succeeded, len(session.advisors))

    return session
