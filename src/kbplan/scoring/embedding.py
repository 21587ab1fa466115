"""Semantic relevance via sentence embeddings."""

from __future__ import annotations

import logging
from typing import Dict

import numpy as np

from kbplan.embedding.encoder import EmbeddingModel
from kbplan.models import ScoreResult, TopicSummary
from kbplan.scoring.base import tier_for

LOGGER = logging.getLogger(__name__)


def summary_text(topic: TopicSummary) -> str:
    parts = [topic.title, topic.description, " ".join(topic.tags), topic.excerpt]
    return "\n".join(part for part in parts if part)


class EmbeddingScorer:
    """Cosine similarity between request and topic summary, bucketed into tiers."""

    def __init__(self, embedder: EmbeddingModel, *, high: float = 0.55, medium: float = 0.35) -> None:
        self.embedder = embedder
        self.high = high
        self.medium = medium
        self._topic_cache: Dict[str, np.ndarray] = {}
        self._request_cache: Dict[str, np.ndarray] = {}

    def _vector(self, cache: Dict[str, np.ndarray], key: str, text: str) -> np.ndarray:
        if key not in cache:
            cache[key] = np.asarray(self.embedder.embed_query(text), dtype="float32")
        return cache[key]

    def similarity(self, request: str, topic: TopicSummary) -> float:
        query = self._vector(self._request_cache, request, request)
        doc = self._vector(self._topic_cache, topic.path, summary_text(topic))
        denom = float(np.linalg.norm(query) * np.linalg.norm(doc))
        if denom == 0.0:
            return 0.0
        return float(np.dot(query, doc) / denom)

    def score(self, request: str, topic: TopicSummary) -> ScoreResult:
        value = self.similarity(request, topic)
        LOGGER.debug("Similarity %.4f for %s", value, topic.path)
        return ScoreResult(
            priority=tier_for(value, high=self.high, medium=self.medium),
            rationale=f"semantic similarity {value:.2f}",
        )
