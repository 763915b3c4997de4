"""Final synthesis: build the transcript, ask the moderator for the final answer."""

import logging

from config.config_loader import LimitsConfig, PromptsConfig
from council.models import ConsensusVerdict, DebateSession
from council.personas import MODERATOR_ID, display_name, get_persona
from council.providers.base import AIProvider

logger = logging.getLogger(__name__)

_UNIFIED = "The advisors have reached consensus, so present a unified recommendation."
_MAJORITY = (
    "The advisors have not fully agreed, so present the majority view while "
    "acknowledging alternative perspectives."
)


def _format_full_transcript(session: DebateSession) -> str:
    """Format every advisor turn, grouped by round, for synthesis."""
    parts: list[str] = []
    for round_number in range(1, session.current_round + 1):
        turns = [
            t for t in session.transcript
            if t.round_number == round_number and t.role in session.advisor_responses
        ]
        if not turns:
            continue
        parts.append(f"### Round {round_number}")
        for turn in turns:
            parts.append(f"**{display_name(turn.role)}**\n{turn.content}")
        parts.append("")  # blank line between rounds
    return "\n\n".join(parts)


async def synthesize_final_answer(
    session: DebateSession,
    verdict: ConsensusVerdict,
    client: AIProvider,
    prompts: PromptsConfig,
    limits: LimitsConfig,
) -> str:
    """Ask the moderator for the final answer.

    Args:
        session: The debate, after its last round.
        verdict: The latest consensus verdict (zero-value if none was run).
        client: Completion client used for the moderator call.
        prompts: Prompt templates from config.
        limits: Token limits from config.

    Returns:
        The synthesized answer text.

    Raises:
        ProviderError: If the moderator call fails.
        RuntimeError: If the moderator returns empty content.
    """
    prompt = prompts.final_answer.format(
        question=session.question,
        consensus_reached="Yes" if verdict.consensus_reached else "No",
        agreement_pct=round(verdict.agreement_level * 100),
        agreements="; ".join(verdict.agreements) or "none recorded",
        disagreements="; ".join(verdict.disagreements) or "none recorded",
        majority_view=verdict.majority_view or "not determined",
        rounds=session.current_round,
        transcript=_format_full_transcript(session),
        framing=_UNIFIED if verdict.consensus_reached else _MAJORITY,
    )

    logger.info("Running synthesis via %s", client.name())

    response = await client.complete(
        system_prompt=get_persona(MODERATOR_ID).system_prompt,
        messages=[{"role": "user", "content": prompt}],
        max_tokens=limits.final_answer_max_tokens,
    )

    if not response.content.strip():
        raise RuntimeError(f"Synthesizer {client.name()} returned empty content")

    return response.content
