"""Relevance scoring delegated to a chat-completion model."""

from __future__ import annotations

import json

from kbplan.errors import LLMUnavailableError, ScoringError
from kbplan.llm.client import ChatClient
from kbplan.models import Priority, ScoreResult, TopicSummary

SYSTEM_PROMPT = (
    "You triage knowledge-base topics for a reviewer. Given a request and one topic, "
    "decide how relevant the topic is. Answer with a single JSON object with the keys "
    '"priority" (one of "High", "Medium", "Low") and "rationale" (one short sentence).'
)


def build_prompt(request: str, topic: TopicSummary) -> str:
    payload = {
        "request": request,
        "topic": {
            "path": topic.path,
            "area": topic.area,
            "title": topic.title,
            "description": topic.description,
            "tags": list(topic.tags),
            "difficulty": topic.difficulty.value,
            "excerpt": topic.excerpt,
        },
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


class LLMScorer:
    def __init__(self, client: ChatClient) -> None:
        self.client = client

    def score(self, request: str, topic: TopicSummary) -> ScoreResult:
        try:
            answer = self.client.complete_json(SYSTEM_PROMPT, build_prompt(request, topic))
        except LLMUnavailableError as exc:
            raise ScoringError(str(exc)) from exc

        try:
            priority = Priority.parse(answer.get("priority", ""))
        except ValueError as exc:
            raise ScoringError(str(exc)) from exc
        rationale = str(answer.get("rationale") or "").strip() or "no rationale given"
        return ScoreResult(priority=priority, rationale=" ".join(rationale.split()))
