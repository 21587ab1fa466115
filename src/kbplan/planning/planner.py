"""Relevance planning: score candidate topics and build a sorted plan."""

from __future__ import annotations

import logging
from typing import List, Sequence

from kbplan.cancellation import CancellationToken, check
from kbplan.errors import PlanningError
from kbplan.index.catalogue import TopicIndex
from kbplan.models import (
    EvaluationPlan,
    EvaluationPlanEntry,
    Priority,
    ScoreResult,
    TopicDocument,
)
from kbplan.scoring.base import RelevanceScorer

LOGGER = logging.getLogger(__name__)

UNSCORED_RATIONALE = "scoring unavailable"


class RelevancePlanner:
    """Orchestrates scorer calls; the relevance judgment itself is injected."""

    def __init__(
        self,
        scorer: RelevanceScorer,
        *,
        max_areas: int = 3,
        token: CancellationToken | None = None,
    ) -> None:
        self.scorer = scorer
        self.max_areas = max_areas
        self.token = token

    def _validate(self, request: str, areas: Sequence[str]) -> List[str]:
        if not request or not request.strip():
            raise PlanningError("Request text must not be empty")
        unique = list(dict.fromkeys(area.strip() for area in areas if area.strip()))
        if not unique:
            raise PlanningError("At least one area is required")
        if len(unique) > self.max_areas:
            raise PlanningError(
                f"Too many areas ({len(unique)}); a plan covers at most {self.max_areas}"
            )
        return unique

    def plan(self, request: str, index: TopicIndex, areas: Sequence[str]) -> EvaluationPlan:
        """Score every topic of the selected areas and return an unapproved plan."""
        selected = self._validate(request, areas)
        known = set(index.areas())
        for area in selected:
            if area not in known:
                LOGGER.warning("Area %s has no indexed topics; skipping", area)

        scoped = index.restrict(selected)
        entries: List[EvaluationPlanEntry] = []
        seen: set[str] = set()
        for topic in scoped.topics():
            if topic.path in seen:
                continue
            seen.add(topic.path)
            check(self.token)
            entries.append(self._score_topic(request, topic, scoped.position(topic)))

        unscored = sum(1 for entry in entries if entry.unscored)
        LOGGER.info(
            "Planned %d topics across %d areas (%d unscored)",
            len(entries),
            len(selected),
            unscored,
        )
        return EvaluationPlan(request=request.strip(), areas=tuple(selected), entries=tuple(entries))

    def _score_topic(self, request: str, topic: TopicDocument, order: int) -> EvaluationPlanEntry:
        try:
            result = self.scorer.score(request, topic.summary())
        except Exception as exc:
            LOGGER.warning("Scoring failed for %s: %s", topic.path, exc)
            return _unscored(topic, order)

        if not _is_valid_result(result):
            LOGGER.warning("Scorer returned an invalid result for %s: %r", topic.path, result)
            return _unscored(topic, order)

        LOGGER.debug("%s -> %s (%s)", topic.path, result.priority.value, result.rationale)
        return EvaluationPlanEntry(
            topic=topic,
            priority=result.priority,
            rationale=result.rationale.strip(),
            order=order,
        )


def _unscored(topic: TopicDocument, order: int) -> EvaluationPlanEntry:
    return EvaluationPlanEntry(
        topic=topic,
        priority=Priority.LOW,
        rationale=UNSCORED_RATIONALE,
        order=order,
        unscored=True,
    )


def _is_valid_result(result: object) -> bool:
    return (
        isinstance(result, ScoreResult)
        and isinstance(result.priority, Priority)
        and isinstance(result.rationale, str)
    )
