"""Pre-built debate questions loaded from config/templates.yaml."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from council.models import MODE_ROUNDS

logger = logging.getLogger(__name__)

_TEMPLATES_PATH = Path(__file__).parent.parent / "config" / "templates.yaml"


@dataclass(frozen=True)
class DebateTemplate:
    id: str
    title: str
    question: str
    category: str
    mode: str = "standard"
    advisors: list[str] | None = None
    research: bool = False
    tags: list[str] = field(default_factory=list)

    def as_meta(self) -> dict:
        """Options in question-file frontmatter form, so they resolve like a --file."""
        meta: dict = {"mode": self.mode, "research": self.research}
        if self.advisors:
            meta["advisors"] = list(self.advisors)
        return meta


@dataclass
class TemplateLibrary:
    templates: list[DebateTemplate]
    categories: dict[str, str] = field(default_factory=dict)

    def get(self, template_id: str) -> DebateTemplate | None:
        return next((t for t in self.templates if t.id == template_id), None)

    def by_category(self, category: str) -> list[DebateTemplate]:
        return [t for t in self.templates if t.category == category]

    def search(self, query: str) -> list[DebateTemplate]:
        """Case-insensitive substring match on title, question and tags."""
        needle = query.strip().lower()
        if not needle:
            return list(self.templates)
        return [
            t for t in self.templates
            if needle in t.title.lower()
            or needle in t.question.lower()
            or any(needle in tag.lower() for tag in t.tags)
        ]


def load_templates(templates_path: Path = _TEMPLATES_PATH) -> TemplateLibrary:
    """Load the template library.

    Raises:
        FileNotFoundError: The templates file is missing.
        ValueError: Duplicate id, unknown category or unknown mode.
    """
    if not templates_path.exists():
        raise FileNotFoundError(f"Templates file not found: {templates_path}")

    with templates_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    categories = {str(k): str(v) for k, v in (raw.get("categories") or {}).items()}
    templates: list[DebateTemplate] = []
    seen: set[str] = set()

    for entry in raw.get("templates") or []:
        template = DebateTemplate(
            id=str(entry["id"]),
            title=str(entry["title"]),
            question=str(entry["question"]).strip(),
            category=str(entry["category"]),
            mode=str(entry.get("mode", "standard")),
            advisors=list(entry["advisors"]) if entry.get("advisors") else None,
            research=bool(entry.get("research", False)),
            tags=[str(tag) for tag in entry.get("tags") or []],
        )
        if template.id in seen:
            raise ValueError(f"Duplicate template id '{template.id}'")
        if categories and template.category not in categories:
            raise ValueError(f"Template '{template.id}' has unknown category '{template.category}'")
        if template.mode not in MODE_ROUNDS:
            raise ValueError(f"Template '{template.id}' has unknown mode '{template.mode}'")
        seen.add(template.id)
        templates.append(template)

    logger.debug("Loaded %d debate templates", len(templates))
    return TemplateLibrary(templates=templates, categories=categories)
