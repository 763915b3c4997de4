"""Load settings.yaml into typed dataclasses. Checks API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    base_url: str | None = None
    input_price_per_mtok: float = 0.0
    output_price_per_mtok: float = 0.0


@dataclass
class SearchConfig:
    name: str
    api_key_env: str
    timeout_sec: int
    search_depth: str = "basic"
    cost_per_search: float = 0.0


@dataclass
class LimitsConfig:
    advisor_max_tokens: int = 250
    consensus_max_tokens: int = 1000
    final_answer_max_tokens: int = 1500
    clarification_max_tokens: int = 500
    max_research_results: int = 3


@dataclass
class PromptsConfig:
    round_one: str
    follow_up: str
    consensus: str
    final_answer: str
    clarification: str


@dataclass
class ResearchConfig:
    keywords: list[str] = field(default_factory=list)


@dataclass
class DefaultsConfig:
    mode: str
    advisors: list[str]
    model: str
    output_dir: Path
    search: str | None = None
    research_enabled: bool = False
    clarification_enabled: bool = False
    session_timeout_sec: float | None = None


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    research: ResearchConfig = field(default_factory=ResearchConfig)
    search: dict[str, SearchConfig] = field(default_factory=dict)
    available_providers: set[str] = field(default_factory=set)
    available_search: set[str] = field(default_factory=set)


def _has_key(env_name: str) -> bool:
    return bool(os.environ.get(env_name, "").strip())


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs missing API keys but does not raise; callers check
    available_providers / available_search.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    timeout_raw = defaults_raw.get("session_timeout_sec")
    defaults = DefaultsConfig(
        mode=str(defaults_raw["mode"]),
        advisors=list(defaults_raw.get("advisors") or []),
        model=str(defaults_raw["model"]),
        output_dir=Path(defaults_raw["output_dir"]),
        search=defaults_raw.get("search"),
        research_enabled=bool(defaults_raw.get("research_enabled", False)),
        clarification_enabled=bool(defaults_raw.get("clarification_enabled", False)),
        session_timeout_sec=float(timeout_raw) if timeout_raw is not None else None,
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        round_one=prompts_raw["round_one"],
        follow_up=prompts_raw["follow_up"],
        consensus=prompts_raw["consensus"],
        final_answer=prompts_raw["final_answer"],
        clarification=prompts_raw["clarification"],
    )

    limits = LimitsConfig(**{k: int(v) for k, v in (raw.get("limits") or {}).items()})
    research = ResearchConfig(
        keywords=[str(k).lower() for k in (raw.get("research") or {}).get("keywords", [])],
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        models[provider_name] = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            base_url=model_raw.get("base_url"),
            input_price_per_mtok=float(model_raw.get("input_price_per_mtok", 0.0)),
            output_price_per_mtok=float(model_raw.get("output_price_per_mtok", 0.0)),
        )

        if _has_key(model_raw["api_key_env"]):
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s (set %s in .env)",
                provider_name,
                model_raw["api_key_env"],
            )

    search: dict[str, SearchConfig] = {}
    available_search: set[str] = set()

    for search_name, search_raw in (raw.get("search") or {}).items():
        search[search_name] = SearchConfig(
            name=search_name,
            api_key_env=search_raw["api_key_env"],
            timeout_sec=int(search_raw["timeout_sec"]),
            search_depth=str(search_raw.get("search_depth", "basic")),
            cost_per_search=float(search_raw.get("cost_per_search", 0.0)),
        )
        if _has_key(search_raw["api_key_env"]):
            available_search.add(search_name)
            logger.info("Search available: %s", search_name)
        else:
            logger.info(
                "Search skipped (no API key): %s (set %s in .env)",
                search_name,
                search_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        limits=limits,
        research=research,
        search=search,
        available_providers=available_providers,
        available_search=available_search,
    )
