"""Optional clarification gate: ask the moderator whether a question is too vague."""

import logging

from config.config_loader import LimitsConfig, PromptsConfig
from council.personas import MODERATOR_ID, get_persona
from council.providers.base import AIProvider

logger = logging.getLogger(__name__)

_MARKER = "NEEDS_CLARIFICATION:"


async def check_for_clarification(
    question: str,
    client: AIProvider,
    prompts: PromptsConfig,
    limits: LimitsConfig,
) -> str | None:
    """Return the moderator's clarifying question, or None if the question is clear."""
    response = await client.complete(
        system_prompt=get_persona(MODERATOR_ID).system_prompt,
        messages=[{"role": "user", "content": prompts.clarification.format(question=question)}],
        max_tokens=limits.clarification_max_tokens,
    )
    content = response.content.strip()
    if not content.upper().startswith(_MARKER):
        return None

    follow_up = content[len(_MARKER):].strip()
    logger.info("Moderator asked for clarification: %s", follow_up)
    return follow_up or None
