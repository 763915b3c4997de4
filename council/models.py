"""Dataclasses for the advisor council debate engine."""

import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

# Debate mode -> number of rounds
MODE_ROUNDS: dict[str, int] = {
    "quick": 1,
    "standard": 2,
    "deep": 3,
}


@dataclass(frozen=True)
class Persona:
    id: str
    name: str
    role: str
    system_prompt: str
    avatar: str
    color: str
    image: str | None = None


@dataclass
class ResearchResult:
    title: str
    url: str
    snippet: str


@dataclass
class Turn:
    role: str              # "user", "moderator" or an advisor id
    content: str
    round_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ModelResponse:
    provider: str          # configured model name, e.g. "claude"
    model: str             # actual model string used
    content: str
    latency_sec: float
    token_count: int | None


@dataclass
class ConsensusVerdict:
    consensus_reached: bool = False
    agreement_level: float = 0.0           # 0-1
    agreements: list[str] = field(default_factory=list)
    disagreements: list[str] = field(default_factory=list)
    majority_view: str | None = None
    minority_view: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CostEstimate:
    estimated_input_tokens: int
    estimated_output_tokens: int
    estimated_cost: float
    breakdown: dict[str, float]
    model: str
    mode: str
    advisor_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class EventKind(str, Enum):
    COST_ESTIMATE = "cost_estimate"
    RESEARCH_START = "research_start"
    RESEARCH_COMPLETE = "research_complete"
    RESEARCH_RESULTS = "research_results"
    AGENT_START = "agent_start"
    AGENT_RESPONSE = "agent_response"
    AGENT_COMPLETE = "agent_complete"
    MODERATOR_ANALYSIS = "moderator_analysis"
    CONSENSUS_CHECK = "consensus_check"
    CLARIFICATION_NEEDED = "clarification_needed"
    FINAL_ANSWER = "final_answer"
    STATUS = "status"
    ERROR = "error"


@dataclass
class StreamEvent:
    kind: EventKind
    content: str | None = None
    agent: str | None = None
    data: dict[str, Any] | None = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """Plain-JSON form; None fields are dropped."""
        out: dict[str, Any] = {"type": self.kind.value, "timestamp": self.timestamp}
        if self.agent is not None:
            out["agent"] = self.agent
        if self.content is not None:
            out["content"] = self.content
        if self.data is not None:
            out["data"] = self.data
        return out


# Receives every StreamEvent in emission order
EventSink = Callable[[StreamEvent], None]


class SessionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    NEEDS_CLARIFICATION = "needs_clarification"


@dataclass
class DebateOptions:
    mode: str = "standard"
    advisors: list[str] = field(default_factory=list)   # empty -> every advisor
    research_enabled: bool = False
    clarification_enabled: bool = False


@dataclass
class DebateSession:
    question: str
    advisors: list[str]
    max_rounds: int
    mode: str = "standard"
    prior_conversation: str = ""
    transcript: list[Turn] = field(default_factory=list)
    current_round: int = 0
    advisor_responses: dict[str, list[str]] = field(default_factory=dict)
    research_results: list[ResearchResult] | None = None
    consensus_reached: bool = False
    final_answer: str | None = None
    status: SessionStatus = SessionStatus.RUNNING
    clarification_question: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        for advisor in self.advisors:
            self.advisor_responses.setdefault(advisor, [])
        if not self.transcript:
            self.transcript.append(Turn(role="user", content=self.question, round_number=0))

    @property
    def terminated(self) -> bool:
        return self.status is not SessionStatus.RUNNING

    def start_round(self) -> int:
        if self.terminated:
            raise RuntimeError(f"Session already terminated ({self.status.value})")
        if self.current_round >= self.max_rounds:
            raise RuntimeError(f"Round budget exhausted ({self.max_rounds} rounds)")
        self.current_round += 1
        return self.current_round

    def record_advisor_turn(self, advisor: str, content: str) -> None:
        self.advisor_responses[advisor].append(content)
        self.transcript.append(Turn(role=advisor, content=content, round_number=self.current_round))

    def latest_response(self, advisor: str) -> str:
        """Most recent utterance of an advisor, or "" if it has none yet."""
        responses = self.advisor_responses.get(advisor) or []
        return responses[-1] if responses else ""

    def complete(self, final_answer: str, consensus_reached: bool) -> None:
        self.final_answer = final_answer
        self.consensus_reached = consensus_reached
        self.status = SessionStatus.COMPLETED
        self.transcript.append(
            Turn(role="moderator", content=final_answer, round_number=self.current_round)
        )

    def fail(self, message: str) -> None:
        self.error = message
        self.status = SessionStatus.FAILED
