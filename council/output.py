"""Rich console rendering of the debate event stream and markdown transcript save."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from council.cost import cost_warning_level, format_cost, format_tokens
from council.models import DebateSession, EventKind, StreamEvent
from council.personas import PERSONAS, display_name

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_COST_STYLES = {"low": "green", "medium": "yellow", "high": "red"}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


class EventPrinter:
    """Renders StreamEvents to a console as they arrive."""

    def __init__(self, out: Console | None = None) -> None:
        self._console = out or console
        self._speaking: str | None = None

    def _end_turn(self) -> None:
        if self._speaking is not None:
            self._console.print()
            self._speaking = None

    def __call__(self, event: StreamEvent) -> None:
        kind = event.kind
        if kind is EventKind.AGENT_RESPONSE:
            self._console.print(event.content or "", end="", markup=False, highlight=False)
            return
        if kind is EventKind.AGENT_START:
            persona = PERSONAS.get(event.agent or "")
            label = f"{persona.avatar} {persona.name}" if persona else str(event.agent)
            color = persona.color if persona else "white"
            self._console.print(Text(label, style=f"bold {color}"))
            self._speaking = event.agent
            return
        if kind is EventKind.AGENT_COMPLETE:
            self._end_turn()
            self._console.print()
            return

        self._end_turn()
        if kind is EventKind.COST_ESTIMATE and event.data:
            cost = event.data["estimated_cost"]
            style = _COST_STYLES[cost_warning_level(cost)]
            tokens = event.data["estimated_input_tokens"] + event.data["estimated_output_tokens"]
            self._console.print(
                f"[dim]Estimated cost:[/dim] [{style}]{format_cost(cost)}[/{style}] "
                f"[dim]({format_tokens(tokens)})[/dim]"
            )
        elif kind is EventKind.STATUS:
            self._console.print(f"[dim]{event.content}[/dim]")
        elif kind is EventKind.MODERATOR_ANALYSIS:
            if (event.content or "").startswith("Starting Round"):
                self._console.print(Rule(f"[bold cyan]{event.content.rstrip('.')}[/bold cyan]"))
            else:
                self._console.print(f"[italic]⚖️ {event.content}[/italic]")
        elif kind is EventKind.RESEARCH_RESULTS and event.data:
            self._console.print(f"[cyan]{event.content}[/cyan]")
            for i, source in enumerate(event.data.get("sources", []), start=1):
                self._console.print(Text.assemble(f"  [{i}] {source['title']} ", (source["url"], "dim")))
        elif kind is EventKind.CLARIFICATION_NEEDED:
            self._console.print(Panel(event.content or "", title="Clarification needed", border_style="yellow"))
        elif kind is EventKind.ERROR:
            self._console.print(f"[bold red]Error:[/bold red] {event.content}")
        elif kind is EventKind.FINAL_ANSWER:
            print_final_answer(event.content or "", self._console)


def print_final_answer(answer: str, out: Console | None = None) -> None:
    """Print the final answer using Rich markdown."""
    out = out or console
    out.print(Rule("[bold green]Council Answer[/bold green]"))
    out.print(Markdown(answer))


def save_to_file(session: DebateSession, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the full debate transcript as a markdown file.

    Args:
        session: A terminated DebateSession.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the question text.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(session.question)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    lines: list[str] = [
        f"# Advisor Council Debate: {session.question[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Advisors:** {', '.join(display_name(a) for a in session.advisors)}",
        f"**Mode:** {session.mode} ({session.current_round}/{session.max_rounds} rounds run)",
        f"**Status:** {session.status.value}",
        f"**Consensus:** {'yes' if session.consensus_reached else 'no'}",
        "",
        "---",
        "",
    ]

    if session.research_results:
        lines += ["## Research Findings", ""]
        for i, r in enumerate(session.research_results, start=1):
            lines.append(f"{i}. [{r.title}]({r.url}): {r.snippet}")
        lines.append("")

    for round_number in range(1, session.current_round + 1):
        round_label = "Initial Positions" if round_number == 1 else "Rebuttals"
        lines += [f"## Round {round_number}: {round_label}", ""]
        for turn in session.transcript:
            if turn.round_number != round_number or turn.role not in session.advisor_responses:
                continue
            lines += [f"### {display_name(turn.role)}", "", turn.content, ""]

    if session.clarification_question:
        lines += ["## Clarification Needed", "", session.clarification_question, ""]
    elif session.final_answer:
        lines += ["## Final Answer", "", session.final_answer, ""]
    if session.error:
        lines += ["## Error", "", session.error, ""]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Debate saved to: %s", filepath)
    return filepath
