"""Keyword-overlap relevance heuristic; the default offline scorer."""

from __future__ import annotations

from kbplan.models import ScoreResult, TopicSummary
from kbplan.scoring.base import tier_for
from kbplan.utils.text import tokenize

TITLE_WEIGHT = 2.0
TAG_WEIGHT = 2.0
DESCRIPTION_WEIGHT = 1.0
EXCERPT_WEIGHT = 0.5


class KeywordScorer:
    """Weights request terms found in title and tags above prose hits."""

    def __init__(self, *, high: float = 4.0, medium: float = 1.5) -> None:
        self.high = high
        self.medium = medium

    def weigh(self, request: str, topic: TopicSummary) -> tuple[float, list[str]]:
        terms = tokenize(request)
        title = set(tokenize(topic.title))
        tags = set(tokenize(" ".join(topic.tags)))
        description = set(tokenize(topic.description))
        body = set(tokenize(topic.excerpt))

        total = 0.0
        matched: list[str] = []
        for term in terms:
            weight = 0.0
            if term in title:
                weight += TITLE_WEIGHT
            if term in tags:
                weight += TAG_WEIGHT
            if term in description:
                weight += DESCRIPTION_WEIGHT
            if term in body:
                weight += EXCERPT_WEIGHT
            if weight:
                matched.append(term)
                total += weight
        return total, matched

    def score(self, request: str, topic: TopicSummary) -> ScoreResult:
        total, matched = self.weigh(request, topic)
        priority = tier_for(total, high=self.high, medium=self.medium)
        if matched:
            rationale = f"matched {', '.join(matched)} (weight {total:g})"
        else:
            rationale = "no request terms found in topic"
        return ScoreResult(priority=priority, rationale=rationale)
