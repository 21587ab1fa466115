"""Relevance scorer contract."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from kbplan.models import Priority, ScoreResult, TopicSummary


@runtime_checkable
class RelevanceScorer(Protocol):
    """Anything that maps a request and a topic to a priority tier."""

    def score(self, request: str, topic: TopicSummary) -> ScoreResult:
        ...


def tier_for(value: float, *, high: float, medium: float) -> Priority:
    if value >= high:
        return Priority.HIGH
    if value >= medium:
        return Priority.MEDIUM
    return Priority.LOW
