"""Pre-debate cost estimate from average per-message token counts."""

from council.models import MODE_ROUNDS, CostEstimate

# Average token counts per message type
AVG_QUESTION_TOKENS = 50
AVG_ADVISOR_RESPONSE_TOKENS = 250
AVG_RESEARCH_CONTEXT_TOKENS = 300
AVG_MODERATOR_ANALYSIS_TOKENS = 500
AVG_FINAL_ANSWER_TOKENS = 800
PERSONA_OVERHEAD_TOKENS = 100


def _dollars(tokens: float, price_per_mtok: float) -> float:
    return tokens / 1_000_000 * price_per_mtok


def estimate_debate_cost(
    mode: str,
    advisor_count: int,
    research_enabled: bool,
    model: str = "",
    input_price_per_mtok: float = 0.0,
    output_price_per_mtok: float = 0.0,
    research_cost: float = 0.0,
) -> CostEstimate:
    """Estimate tokens and dollars for a full debate before it starts.

    Assumes every round runs and a single consensus analysis.
    """
    rounds = MODE_ROUNDS[mode]

    advisor_input_per_round = (
        AVG_QUESTION_TOKENS
        + (AVG_RESEARCH_CONTEXT_TOKENS if research_enabled else 0)
        + PERSONA_OVERHEAD_TOKENS
    )
    # Later rounds carry the other advisors' responses
    context_growth = (advisor_count - 1) * AVG_ADVISOR_RESPONSE_TOKENS

    input_tokens = AVG_QUESTION_TOKENS
    for round_index in range(rounds):
        context = 0 if round_index == 0 else context_growth
        input_tokens += advisor_count * (advisor_input_per_round + context)
    input_tokens += advisor_count * AVG_ADVISOR_RESPONSE_TOKENS + AVG_QUESTION_TOKENS
    input_tokens += advisor_count * AVG_ADVISOR_RESPONSE_TOKENS + AVG_MODERATOR_ANALYSIS_TOKENS

    advisor_output = advisor_count * rounds * AVG_ADVISOR_RESPONSE_TOKENS
    output_tokens = advisor_output + AVG_MODERATOR_ANALYSIS_TOKENS + AVG_FINAL_ANSWER_TOKENS

    breakdown = {
        "advisor_responses": round(_dollars(advisor_output, output_price_per_mtok), 4),
        "moderator_analysis": round(_dollars(AVG_MODERATOR_ANALYSIS_TOKENS, output_price_per_mtok), 4),
        "final_answer": round(_dollars(AVG_FINAL_ANSWER_TOKENS, output_price_per_mtok), 4),
    }
    total = _dollars(input_tokens, input_price_per_mtok) + _dollars(output_tokens, output_price_per_mtok)
    if research_enabled:
        breakdown["research"] = round(research_cost, 4)
        total += research_cost

    return CostEstimate(
        estimated_input_tokens=input_tokens,
        estimated_output_tokens=output_tokens,
        estimated_cost=round(total, 4),
        breakdown=breakdown,
        model=model,
        mode=mode,
        advisor_count=advisor_count,
    )


def format_cost(cost: float) -> str:
    if cost < 0.01:
        return "<$0.01"
    return f"${cost:.2f}"


def format_tokens(tokens: int) -> str:
    if tokens < 1000:
        return f"{tokens} tokens"
    return f"{tokens / 1000:.1f}K tokens"


def cost_warning_level(estimated_cost: float) -> str:
    """Bucket an estimate: low under $0.10, medium under $0.50, else high."""
    if estimated_cost < 0.10:
        return "low"
    if estimated_cost < 0.50:
        return "medium"
    return "high"
