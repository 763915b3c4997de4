"""Question files: markdown body with optional YAML frontmatter options."""

from pathlib import Path

import frontmatter

# Frontmatter keys that map onto debate options
OPTION_KEYS = ("mode", "advisors", "research", "clarify")


def parse_file(file_path: Path) -> tuple[str, dict]:
    """Parse a markdown question file.

    Returns:
        (content, metadata) where content is the body text and metadata holds
        any of: mode (str), advisors (str "a,b" or list), research (bool),
        clarify (bool). Unknown keys are dropped; no frontmatter gives {}.
    """
    post = frontmatter.load(str(file_path))
    content = post.content.strip()
    metadata = {k: v for k, v in post.metadata.items() if k in OPTION_KEYS}
    return content, metadata


def advisors_from_meta(value: object) -> list[str] | None:
    """Normalize an advisors frontmatter value to a list of ids."""
    if value is None:
        return None
    if isinstance(value, str):
        return [a.strip() for a in value.split(",") if a.strip()]
    return [str(a).strip() for a in value]
