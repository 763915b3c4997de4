"""Tests for council/consensus.py."""

from council.consensus import analyze_consensus, format_responses, latest_responses, parse_verdict
from council.models import DebateSession
from council.personas import get_persona
from tests.conftest import CONSENSUS_YES, MockProvider


def _session(responses: dict[str, str]) -> DebateSession:
    session = DebateSession(question="Hire an editor?", advisors=list(responses), max_rounds=2)
    session.start_round()
    for advisor, text in responses.items():
        if text:
            session.record_advisor_turn(advisor, text)
    return session


def test_parse_verdict_full_reply():
    verdict = parse_verdict(CONSENSUS_YES)
    assert verdict.consensus_reached is True
    assert verdict.agreement_level == 0.85
    assert verdict.agreements == ["Focus on distribution first", "Skip the editor for now"]
    assert verdict.disagreements == ["How fast to scale output"]
    assert verdict.majority_view == "Grow the audience before spending on production."
    assert verdict.minority_view == "Pavel prefers slower organic growth."


def test_parse_verdict_markdown_decorated_labels():
    text = (
        "**CONSENSUS:** yes\n"
        "**AGREEMENT_LEVEL:** 70%\n"
        "**AGREEMENTS:**\n"
        "* Ship weekly\n"
        "1. Keep costs low\n"
        "**DISAGREEMENTS:**\n"
        "**MAJORITY_VIEW:** **Ship weekly.**\n"
        "**MINORITY_VIEWS:** None\n"
    )
    verdict = parse_verdict(text)
    assert verdict.consensus_reached is True
    assert verdict.agreement_level == 0.7
    assert verdict.agreements == ["Ship weekly", "Keep costs low"]
    assert verdict.disagreements == []
    assert verdict.majority_view == "Ship weekly."
    assert verdict.minority_view is None


def test_parse_verdict_bracketed_flag():
    assert parse_verdict("CONSENSUS: [NO]\nAGREEMENT_LEVEL: 30").consensus_reached is False
    assert parse_verdict("CONSENSUS: [YES]").consensus_reached is True


def test_parse_verdict_garbage_is_zero_value():
    verdict = parse_verdict("I think they mostly agree, roughly.")
    assert verdict.consensus_reached is False
    assert verdict.agreement_level == 0.0
    assert verdict.agreements == []
    assert verdict.majority_view is None


def test_parse_verdict_bad_level_keeps_other_fields():
    verdict = parse_verdict("CONSENSUS: YES\nAGREEMENT_LEVEL: high\nMAJORITY_VIEW: Do it.")
    assert verdict.consensus_reached is True
    assert verdict.agreement_level == 0.0
    assert verdict.majority_view == "Do it."


def test_parse_verdict_clamps_level():
    assert parse_verdict("AGREEMENT_LEVEL: 140").agreement_level == 1.0


def test_parse_verdict_empty_string():
    assert parse_verdict("").consensus_reached is False


def test_latest_responses_skip_silent_advisors():
    session = _session({"naval": "Long-term.", "elon": "", "larry": "Own the stack."})
    assert latest_responses(session) == [("Naval Ravikant", "Long-term."), ("Larry Ellison", "Own the stack.")]


def test_format_responses_separates_advisors():
    text = format_responses([("Naval Ravikant", "A"), ("Elon Musk", "B")])
    assert text == "Naval Ravikant:\nA\n\n---\nElon Musk:\nB\n"


async def test_analyze_consensus_skips_call_below_three_responses(sample_prompts_config, sample_limits_config):
    client = MockProvider(response_content=CONSENSUS_YES)
    session = _session({"naval": "A", "elon": "B", "larry": ""})

    verdict = await analyze_consensus(session, client, sample_prompts_config, sample_limits_config)

    assert verdict.consensus_reached is False
    client.complete.assert_not_called()


async def test_analyze_consensus_calls_moderator(sample_prompts_config, sample_limits_config):
    client = MockProvider(response_content=CONSENSUS_YES)
    session = _session({"naval": "A", "elon": "B", "larry": "C"})

    verdict = await analyze_consensus(session, client, sample_prompts_config, sample_limits_config)

    assert verdict.consensus_reached is True
    kwargs = client.complete.call_args.kwargs
    assert kwargs["system_prompt"] == get_persona("moderator").system_prompt
    assert kwargs["max_tokens"] == sample_limits_config.consensus_max_tokens
    prompt = kwargs["messages"][0]["content"]
    assert "Naval Ravikant:\nA" in prompt
    assert "Larry Ellison:\nC" in prompt
