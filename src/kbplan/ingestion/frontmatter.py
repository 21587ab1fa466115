"""YAML front matter parsing for topic documents.

A front matter block is a YAML mapping between a leading ``---`` line and the
next ``---`` (or ``...``) line. Files without one are common in the corpus and
are accepted with defaulted metadata; malformed blocks never raise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

import yaml

LOGGER = logging.getLogger(__name__)

RECOGNIZED_KEYS = (
    "title",
    "description",
    "area",
    "difficulty",
    "object_types",
    "variable_types",
    "tags",
)

_OPEN_DELIMITER = "---"
_CLOSE_DELIMITERS = ("---", "...")


@dataclass(slots=True)
class FrontMatter:
    """Parsed metadata plus the remaining Markdown body."""

    metadata: Dict[str, Any] = field(default_factory=dict)
    body: str = ""
    present: bool = False
    error: str | None = None

    @property
    def incomplete(self) -> bool:
        return not self.present or self.error is not None

    def get_list(self, key: str) -> Tuple[str, ...]:
        return as_string_tuple(self.metadata.get(key))

    def get_text(self, key: str) -> str:
        value = self.metadata.get(key)
        if value is None:
            return ""
        return str(value).strip()

    @property
    def extra(self) -> Dict[str, Any]:
        return {key: value for key, value in self.metadata.items() if key not in RECOGNIZED_KEYS}


def as_string_tuple(value: Any) -> Tuple[str, ...]:
    """Normalize a YAML list or comma-separated string to unique stripped strings."""
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = [str(item) for item in value if item is not None]
    else:
        items = [str(value)]
    seen: dict[str, None] = {}
    for item in items:
        cleaned = item.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen)


def parse_front_matter(text: str) -> FrontMatter:
    """Split `text` into metadata and body."""
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != _OPEN_DELIMITER:
        return FrontMatter(body=text)

    closing = None
    for index in range(1, len(lines)):
        if lines[index].strip() in _CLOSE_DELIMITERS:
            closing = index
            break

    if closing is None:
        return FrontMatter(body=text, present=True, error="unterminated front matter block")

    raw = "".join(lines[1:closing])
    body = "".join(lines[closing + 1 :]).lstrip("\n")

    try:
        loaded = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as exc:
        LOGGER.debug("Invalid YAML front matter: %s", exc)
        return FrontMatter(body=body, present=True, error=f"invalid YAML: {exc}")

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        return FrontMatter(
            body=body,
            present=True,
            error=f"front matter is a {type(loaded).__name__}, expected a mapping",
        )

    metadata = {str(key).strip().lower(): value for key, value in loaded.items()}
    return FrontMatter(metadata=metadata, body=body, present=True)
