"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from kbplan.embedding.encoder import DEFAULT_MODEL
from kbplan.errors import ConfigError

ENV_PREFIX = "KBPLAN_"


def _convert(name: str, value: str, kind: type):
    try:
        return kind(value)
    except ValueError:
        raise ConfigError(
            f"Invalid {ENV_PREFIX}{name.upper()}={value!r}: expected {'an integer' if kind is int else 'a number'}"
        ) from None


@dataclass(slots=True)
class AppConfig:
    root: Path | None = None
    areas_dir: str = "areas"
    scorer: str = "keyword"
    reviewer: str = "outline"
    samples_policy: str = "auto"
    max_areas: int = 3
    # keyword scorer: weighted hit counts
    keyword_high: float = 4.0
    keyword_medium: float = 1.5
    # embedding scorer: cosine similarity
    model_name: str = DEFAULT_MODEL
    similarity_high: float = 0.55
    similarity_medium: float = 0.35
    llm_endpoint: str | None = None
    llm_api_key: str | None = None
    llm_model: str = "gpt-4o-mini"
    llm_timeout: float = 60.0

    def __post_init__(self) -> None:
        if self.root is None:
            self.root = Path.cwd()

    def resolve_root(self, base_dir: Path | None = None) -> Path:
        if self.root is None:
            self.root = Path.cwd()
        root = Path(self.root).expanduser()
        if root.is_absolute() or base_dir is None:
            return root
        return base_dir / root

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Build a config from `KBPLAN_*` variables, falling back to defaults."""
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value if value not in (None, "") else None

        config = cls()
        if (root := get("ROOT")) is not None:
            config.root = Path(root)
        if (areas_dir := get("AREAS_DIR")) is not None:
            config.areas_dir = areas_dir
        for name in ("scorer", "reviewer", "samples_policy", "model_name", "llm_endpoint", "llm_api_key", "llm_model"):
            value = get(name.upper())
            if value is not None:
                setattr(config, name, value)
        for name in ("keyword_high", "keyword_medium", "similarity_high", "similarity_medium", "llm_timeout"):
            value = get(name.upper())
            if value is not None:
                setattr(config, name, _convert(name, value, float))
        if (max_areas := get("MAX_AREAS")) is not None:
            config.max_areas = _convert("max_areas", max_areas, int)
        return config
