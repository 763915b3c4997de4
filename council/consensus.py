"""Consensus analysis: ask the moderator whether the panel agrees, parse its verdict.

The moderator answers in a labelled free-text format. Each field is extracted
on its own; a missing or garbled field falls back to its zero value so a bad
reply degrades toward "no consensus" instead of failing.
"""

import logging
import re

from config.config_loader import LimitsConfig, PromptsConfig
from council.models import ConsensusVerdict, DebateSession
from council.personas import MODERATOR_ID, display_name, get_persona
from council.providers.base import AIProvider

logger = logging.getLogger(__name__)

# Fewer non-empty latest responses than this -> no call, no consensus
MIN_CONSENSUS_RESPONSES = 3

_LABELS = ("CONSENSUS", "AGREEMENT_LEVEL", "AGREEMENTS", "DISAGREEMENTS", "MAJORITY_VIEW", "MINORITY_VIEWS?")
# Optional markdown emphasis around a label, e.g. "**CONSENSUS:**"
_DECOR = r"[*_#\s]*"
_NEXT_LABEL = r"(?=^" + _DECOR + r"(?:" + "|".join(_LABELS) + r")\b" + _DECOR + r":|\Z)"
_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.*\S)")
_EMPTY_VIEWS = {"", "none", "n/a", "na", "-", "none noted", "no minority views"}


def _field(text: str, label: str) -> str | None:
    """Raw text after `label:` up to the next known label, or None."""
    pattern = re.compile(
        r"^" + _DECOR + r"\b" + label + r"\b" + _DECOR + r":[*_\s]*?(.*?)" + _NEXT_LABEL,
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )
    match = pattern.search(text)
    return match.group(1).strip() if match else None


def _parse_flag(text: str) -> bool:
    raw = _field(text, "CONSENSUS")
    if raw is None:
        return False
    match = re.match(r"[\s*_\[]*(YES|NO)\b", raw, re.IGNORECASE)
    return bool(match) and match.group(1).upper() == "YES"


def _parse_level(text: str) -> float:
    raw = _field(text, "AGREEMENT_LEVEL")
    if raw is None:
        return 0.0
    match = re.match(r"[\s*_\[]*(\d{1,3}(?:\.\d+)?)", raw)
    if not match:
        return 0.0
    return min(max(float(match.group(1)), 0.0), 100.0) / 100


def _parse_list(text: str, label: str) -> list[str]:
    raw = _field(text, label)
    if not raw:
        return []
    items: list[str] = []
    for line in raw.splitlines():
        match = _BULLET.match(line)
        if match:
            items.append(match.group(1).strip())
    return items


def _parse_view(text: str, label: str) -> str | None:
    raw = _field(text, label)
    if raw is None:
        return None
    view = " ".join(raw.split()).strip("*_ ")
    return None if view.lower().strip(".") in _EMPTY_VIEWS else view


def parse_verdict(text: str) -> ConsensusVerdict:
    """Parse a moderator reply. Never raises."""
    return ConsensusVerdict(
        consensus_reached=_parse_flag(text),
        agreement_level=_parse_level(text),
        agreements=_parse_list(text, "AGREEMENTS"),
        disagreements=_parse_list(text, "DISAGREEMENTS"),
        majority_view=_parse_view(text, "MAJORITY_VIEW"),
        minority_view=_parse_view(text, "MINORITY_VIEWS?"),
    )


def latest_responses(session: DebateSession) -> list[tuple[str, str]]:
    """(display name, latest response) for every advisor that has one."""
    return [
        (display_name(advisor), session.latest_response(advisor))
        for advisor in session.advisors
        if session.latest_response(advisor).strip()
    ]


def format_responses(responses: list[tuple[str, str]]) -> str:
    return "\n---\n".join(f"{name}:\n{text}\n" for name, text in responses)


async def analyze_consensus(
    session: DebateSession,
    client: AIProvider,
    prompts: PromptsConfig,
    limits: LimitsConfig,
) -> ConsensusVerdict:
    """Ask the moderator to judge agreement across the advisors' latest turns.

    Returns the zero-value verdict without calling the model when fewer than
    MIN_CONSENSUS_RESPONSES advisors have a non-empty response.

    Raises:
        ProviderError: If the moderator call itself fails.
    """
    responses = latest_responses(session)
    if len(responses) < MIN_CONSENSUS_RESPONSES:
        logger.info(
            "Skipping consensus analysis: %d/%d responses available",
            len(responses),
            MIN_CONSENSUS_RESPONSES,
        )
        return ConsensusVerdict()

    prompt = prompts.consensus.format(
        question=session.question,
        responses=format_responses(responses),
    )
    response = await client.complete(
        system_prompt=get_persona(MODERATOR_ID).system_prompt,
        messages=[{"role": "user", "content": prompt}],
        max_tokens=limits.consensus_max_tokens,
    )

    verdict = parse_verdict(response.content)
    logger.info(
        "Round %d consensus: %s (agreement %.0f%%)",
        session.current_round,
        "YES" if verdict.consensus_reached else "NO",
        verdict.agreement_level * 100,
    )
    return verdict
