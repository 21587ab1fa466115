"""Relevance scorers and the factory used by the CLI."""

from __future__ import annotations

from kbplan.config import AppConfig
from kbplan.errors import LLMUnavailableError, ScorerUnavailableError
from kbplan.scoring.base import RelevanceScorer
from kbplan.scoring.keyword import KeywordScorer

SCORER_NAMES = ("keyword", "embedding", "llm")


def build_scorer(name: str, config: AppConfig) -> RelevanceScorer:
    """Instantiate the named scorer from configuration."""
    if name == "keyword":
        return KeywordScorer(high=config.keyword_high, medium=config.keyword_medium)
    if name == "embedding":
        from kbplan.embedding.encoder import EmbeddingConfig, EmbeddingModel
        from kbplan.scoring.embedding import EmbeddingScorer

        embedder = EmbeddingModel(EmbeddingConfig(model_name=config.model_name))
        return EmbeddingScorer(
            embedder, high=config.similarity_high, medium=config.similarity_medium
        )
    if name == "llm":
        from kbplan.llm.client import ChatClient, ChatConfig
        from kbplan.scoring.llm import LLMScorer

        try:
            client = ChatClient(
                ChatConfig(
                    endpoint=config.llm_endpoint or "",
                    api_key=config.llm_api_key,
                    model=config.llm_model,
                    timeout=config.llm_timeout,
                )
            )
        except LLMUnavailableError as exc:
            raise ScorerUnavailableError(f"{exc} (set KBPLAN_LLM_ENDPOINT)") from exc
        return LLMScorer(client)
    raise ScorerUnavailableError(f"Unknown scorer: {name!r} (choose from {', '.join(SCORER_NAMES)})")


__all__ = ["RelevanceScorer", "KeywordScorer", "SCORER_NAMES", "build_scorer"]
