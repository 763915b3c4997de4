"""Tests for council/synthesis.py and council/clarification.py."""

import pytest

from council.clarification import check_for_clarification
from council.models import ConsensusVerdict, DebateSession
from council.providers.base import ProviderError
from council.synthesis import _format_full_transcript, synthesize_final_answer
from tests.conftest import MockProvider


@pytest.fixture
def two_round_session() -> DebateSession:
    session = DebateSession(question="Hire an editor?", advisors=["naval", "elon"], max_rounds=2)
    session.start_round()
    session.record_advisor_turn("naval", "N1")
    session.record_advisor_turn("elon", "E1")
    session.start_round()
    session.record_advisor_turn("naval", "N2")
    session.record_advisor_turn("elon", "E2")
    return session


def test_format_full_transcript_groups_by_round(two_round_session):
    transcript = _format_full_transcript(two_round_session)
    assert transcript.index("### Round 1") < transcript.index("N1") < transcript.index("### Round 2")
    assert "**Elon Musk**\nE2" in transcript
    # The user's question turn is not part of the advisor transcript
    assert "Hire an editor?" not in transcript


async def test_synthesize_unified_framing_on_consensus(two_round_session, sample_prompts_config, sample_limits_config):
    client = MockProvider(response_content="Hire later.")
    verdict = ConsensusVerdict(consensus_reached=True, agreement_level=0.8, agreements=["Wait"], majority_view="Wait")

    answer = await synthesize_final_answer(two_round_session, verdict, client, sample_prompts_config, sample_limits_config)

    assert answer == "Hire later."
    kwargs = client.complete.call_args.kwargs
    prompt = kwargs["messages"][0]["content"]
    assert "Consensus: Yes (80%)" in prompt
    assert "unified recommendation" in prompt
    assert "Transcript (2 rounds)" in prompt
    assert kwargs["max_tokens"] == sample_limits_config.final_answer_max_tokens


async def test_synthesize_majority_framing_without_verdict(two_round_session, sample_prompts_config, sample_limits_config):
    client = MockProvider(response_content="Mixed views.")

    await synthesize_final_answer(two_round_session, ConsensusVerdict(), client, sample_prompts_config, sample_limits_config)

    prompt = client.complete.call_args.kwargs["messages"][0]["content"]
    assert "Consensus: No (0%)" in prompt
    assert "Agreements: none recorded" in prompt
    assert "majority view" in prompt


async def test_synthesize_empty_content_raises(two_round_session, sample_prompts_config, sample_limits_config):
    client = MockProvider(provider_name="claude", response_content="")
    with pytest.raises(RuntimeError, match="Synthesizer claude returned empty content"):
        await synthesize_final_answer(two_round_session, ConsensusVerdict(), client, sample_prompts_config, sample_limits_config)


async def test_synthesize_propagates_provider_error(two_round_session, sample_prompts_config, sample_limits_config):
    client = MockProvider()
    client.complete.side_effect = ProviderError("claude", "rate limited")
    with pytest.raises(ProviderError, match="rate limited"):
        await synthesize_final_answer(two_round_session, ConsensusVerdict(), client, sample_prompts_config, sample_limits_config)


async def test_clarification_returns_follow_up(sample_prompts_config, sample_limits_config):
    client = MockProvider(response_content="NEEDS_CLARIFICATION: What industry are you in?")
    follow_up = await check_for_clarification("Should I start a business?", client, sample_prompts_config, sample_limits_config)
    assert follow_up == "What industry are you in?"


@pytest.mark.parametrize("reply", ["CLEAR", "The question is clear enough.", "NEEDS_CLARIFICATION:   "])
async def test_clarification_none_when_clear(reply, sample_prompts_config, sample_limits_config):
    client = MockProvider(response_content=reply)
    assert await check_for_clarification("Q?", client, sample_prompts_config, sample_limits_config) is None
