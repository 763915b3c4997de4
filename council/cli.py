"""Click CLI: loads config, builds the completion/search clients, runs one debate."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from config.config_loader import AppConfig, load_config
from council.healthcheck import run_health_checks
from council.models import MODE_ROUNDS, DebateOptions, DebateSession, SessionStatus, StreamEvent
from council.orchestrator import DebateOrchestrator
from council.output import EventPrinter, save_to_file
from council.personas import ADVISOR_IDS, PERSONAS
from council.providers.anthropic import AnthropicProvider
from council.providers.base import AIProvider, SearchProvider
from council.providers.gemini import GeminiProvider
from council.providers.openai_provider import OpenAIProvider
from council.providers.tavily import TavilySearchProvider
from council.question_file import advisors_from_meta, parse_file
from council.research import ResearchGate
from council.templates import DebateTemplate, TemplateLibrary, load_templates

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
}

SEARCH_CLASSES: dict[str, type[SearchProvider]] = {
    "tavily": TavilySearchProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_provider(config: AppConfig, model_name: str) -> AIProvider:
    """Instantiate the completion client for a configured model name.

    Raises:
        click.ClickException: Unknown model, unsupported sdk, or missing API key.
    """
    if model_name not in config.models:
        raise click.ClickException(
            f"Unknown model '{model_name}'. Configured: {', '.join(sorted(config.models))}"
        )
    model_cfg = config.models[model_name]
    if model_cfg.sdk not in PROVIDER_CLASSES:
        raise click.ClickException(f"Model '{model_name}' uses unsupported sdk '{model_cfg.sdk}'")
    if model_name not in config.available_providers:
        raise click.ClickException(f"No API key for '{model_name}'. Set {model_cfg.api_key_env} in .env.")
    return PROVIDER_CLASSES[model_cfg.sdk](model_cfg)


def _build_search(config: AppConfig) -> SearchProvider | None:
    """Instantiate the configured search provider, or None if unavailable."""
    name = config.defaults.search
    if not name or name not in config.search:
        return None
    if name not in config.available_search:
        logger.info("Search '%s' has no API key; keyword research disabled", name)
        return None
    if name not in SEARCH_CLASSES:
        logger.warning("Search provider '%s' unknown, skipping", name)
        return None
    try:
        return SEARCH_CLASSES[name](config.search[name])
    except Exception as exc:
        logger.warning("Failed to instantiate search provider '%s': %s", name, exc)
        return None


_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0", ""}


def _meta_flag(meta: dict, key: str, default: bool) -> bool:
    """Read a yes/no frontmatter value. Quoted strings like 'no' count as False.

    Raises:
        click.BadParameter: The value is not a recognizable boolean.
    """
    value = meta.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    normalized = str(value).strip().lower()
    if normalized in _TRUE_STRINGS:
        return True
    if normalized in _FALSE_STRINGS:
        return False
    raise click.BadParameter(f"Frontmatter '{key}' must be true or false, got {value!r}")


def _resolve_options(
    config: AppConfig,
    meta: dict,
    mode: str | None,
    advisors: str | None,
    research: bool | None,
    clarify: bool,
) -> DebateOptions:
    """CLI flag > frontmatter > config default, per option.

    Empty frontmatter values (e.g. `advisors:` with nothing after it) fall
    through to the config default.
    """
    if advisors is not None:
        effective_advisors = [a.strip() for a in advisors.split(",") if a.strip()]
    else:
        effective_advisors = advisors_from_meta(meta.get("advisors")) or config.defaults.advisors
    return DebateOptions(
        mode=mode if mode is not None else str(meta.get("mode") or config.defaults.mode),
        advisors=list(effective_advisors),
        research_enabled=(
            research if research is not None
            else _meta_flag(meta, "research", config.defaults.research_enabled)
        ),
        clarification_enabled=clarify or _meta_flag(meta, "clarify", config.defaults.clarification_enabled),
    )


def _check_provider(provider: AIProvider) -> None:
    """Ping the completion client; exit if it is unreachable."""
    console.print("[dim]Checking provider...[/dim]")
    results = asyncio.run(run_health_checks({provider.name(): provider}))
    ok, err = results[provider.name()]
    if not ok:
        short_err = err.splitlines()[0][:120] if err else "unknown error"
        console.print(f"[bold red]Error:[/bold red] {provider.name()} failed health check: {short_err}")
        sys.exit(1)


def _print_advisors() -> None:
    table = Table(title="Advisors")
    table.add_column("id")
    table.add_column("name")
    table.add_column("role")
    for advisor in ADVISOR_IDS:
        persona = PERSONAS[advisor]
        table.add_row(advisor, f"{persona.avatar} {persona.name}", persona.role)
    console.print(table)


def _print_templates(library: TemplateLibrary, query: str | None) -> None:
    matches = library.search(query) if query else library.templates
    if not matches:
        console.print(f"[yellow]No templates match '{query}'.[/yellow]")
        return
    table = Table(title="Debate templates")
    table.add_column("id")
    table.add_column("category")
    table.add_column("mode")
    table.add_column("title")
    for template in matches:
        category = library.categories.get(template.category, template.category)
        mode = f"{template.mode} +research" if template.research else template.mode
        table.add_row(template.id, category, mode, template.title)
    console.print(table)


def _load_template(template_id: str) -> DebateTemplate:
    """Look up a template by id.

    Raises:
        click.BadParameter: No template has that id.
    """
    library = load_templates()
    template = library.get(template_id)
    if template is None:
        raise click.BadParameter(
            f"Unknown template '{template_id}'. See --list-templates.", param_hint="--template"
        )
    return template


async def _run_debate(
    orchestrator: DebateOrchestrator,
    question: str,
    prior_conversation: str,
    options: DebateOptions,
    as_json: bool,
) -> DebateSession:
    """Consume the event stream, rendering or printing JSON lines."""
    printer = EventPrinter(console)

    def handle(event: StreamEvent) -> None:
        if as_json:
            click.echo(json.dumps(event.to_dict(), ensure_ascii=False))
        else:
            printer(event)

    async with orchestrator.stream(question, prior_conversation, options) as stream:
        async for event in stream:
            handle(event)
    return stream.session


@click.command()
@click.argument("question", required=False)
@click.option("--file", "question_file", type=click.Path(exists=True, dir_okay=False),
              help="Read question (and frontmatter options) from a .md file")
@click.option("--mode", type=click.Choice(list(MODE_ROUNDS)), default=None,
              help="quick = 1 round, standard = 2, deep = 3 (default: from config)")
@click.option("--advisors", default=None, help=f"Comma-separated panel of 2-5 from: {','.join(ADVISOR_IDS)}")
@click.option("--research/--no-research", default=None,
              help="Force web research on, or rely on keyword detection only")
@click.option("--clarify", is_flag=True, default=False,
              help="Let the moderator ask for clarification on vague questions")
@click.option("--model", "model_name", default=None, help="Configured model name (default: from config)")
@click.option("--prior-file", type=click.Path(exists=True, dir_okay=False),
              help="Text of the earlier conversation to continue from")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print events as JSON lines")
@click.option("--template", "template_id", default=None,
              help="Start from a pre-built question (its mode/advisors/research act as defaults)")
@click.option("--list-templates", is_flag=False, flag_value="", default=None, metavar="[QUERY]",
              help="List debate templates, optionally filtered by a search term, and exit")
@click.option("--list-advisors", is_flag=True, default=False, help="List available advisors and exit")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    question: str | None,
    question_file: str | None,
    mode: str | None,
    advisors: str | None,
    research: bool | None,
    clarify: bool,
    model_name: str | None,
    prior_file: str | None,
    output_path: str | None,
    as_json: bool,
    template_id: str | None,
    list_templates: str | None,
    list_advisors: bool,
    skip_health_check: bool,
    verbose: bool,
) -> None:
    """Advisor Council -- ask a question, let five advisors debate it.

    \b
    Examples:
      council "Should I hire a video editor at 81 subscribers?"
      council "Should I raise a seed round?" --mode deep --advisors naval,elon,alex
      council "What does the latest data say about remote work?" --research
      council --file question.md --json
      council --template raise-funding --advisors naval,alex
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    if list_advisors:
        _print_advisors()
        return

    if list_templates is not None:
        _print_templates(load_templates(), list_templates)
        return

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    meta: dict = {}
    template = _load_template(template_id) if template_id else None
    if template is not None:
        meta = template.as_meta()

    if question_file:
        question_text, file_meta = parse_file(Path(question_file))
        meta = {**meta, **{k: v for k, v in file_meta.items() if v is not None}}
    elif question:
        question_text = question
    elif template is not None:
        question_text = template.question
    else:
        console.print("[bold red]Error:[/bold red] Provide a QUESTION argument, --file or --template.")
        sys.exit(1)

    prior_conversation = Path(prior_file).read_text(encoding="utf-8") if prior_file else ""
    options = _resolve_options(config, meta, mode, advisors, research, clarify)

    provider = _build_provider(config, model_name or config.defaults.model)
    search = _build_search(config)
    search_cost = config.search[search.name()].cost_per_search if search else 0.0

    orchestrator = DebateOrchestrator(
        client=provider,
        prompts=config.prompts,
        limits=config.limits,
        research_gate=ResearchGate(search, config.research.keywords, config.limits.max_research_results),
        model_config=config.models[provider.name()],
        research_cost=search_cost,
        session_timeout_sec=config.defaults.session_timeout_sec,
    )

    # Reject bad panels/modes before spending a health-check call
    try:
        orchestrator.create_session(question_text, prior_conversation, options)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    if not skip_health_check:
        _check_provider(provider)

    if not as_json:
        console.print(
            f"\n[bold cyan]Advisor Council[/bold cyan] | {provider.model_string()}, "
            f"{options.mode} mode ({MODE_ROUNDS[options.mode]} rounds max)"
        )
        console.print(f"Question: [italic]{question_text[:80]}{'...' if len(question_text) > 80 else ''}[/italic]\n")

    try:
        session = asyncio.run(_run_debate(orchestrator, question_text, prior_conversation, options, as_json))
    except KeyboardInterrupt:
        console.print("\n[yellow]Debate cancelled.[/yellow]")
        sys.exit(130)

    effective_output = Path(output_path) if output_path else config.defaults.output_dir
    saved_path = save_to_file(
        session,
        effective_output,
        slug_override=Path(question_file).stem if question_file else None,
    )
    if not as_json:
        console.print(f"\n[dim]Saved to: {saved_path}[/dim]")

    if session.status is SessionStatus.FAILED:
        sys.exit(1)


if __name__ == "__main__":
    main()
