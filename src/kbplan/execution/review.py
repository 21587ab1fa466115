"""Per-topic reviewers used by the execution walker."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Protocol

from kbplan.config import AppConfig
from kbplan.errors import LLMUnavailableError, ReviewError
from kbplan.llm.client import ChatClient, ChatConfig
from kbplan.models import TopicDocument
from kbplan.utils.text import count_code_blocks, first_paragraph, iter_headings, tokenize

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class Review:
    findings: str = ""
    strengths: List[str] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)


class TopicReviewer(Protocol):
    def review(
        self, request: str, topic: TopicDocument, body: str, samples_body: str | None
    ) -> Review:
        ...


class OutlineReviewer:
    """Offline reviewer built from the topic's structure and metadata.

    Strengths are sections whose headings share terms with the request;
    issues are metadata gaps and request terms the topic never mentions.
    """

    def __init__(self, *, max_sections: int = 8) -> None:
        self.max_sections = max_sections

    def review(
        self, request: str, topic: TopicDocument, body: str, samples_body: str | None
    ) -> Review:
        terms = tokenize(request)
        headings = [text for level, text in iter_headings(body) if level >= 2]

        summary = topic.description or first_paragraph(body) or "(no prose summary)"
        findings = f"{topic.title}: {summary}"
        if headings:
            shown = headings[: self.max_sections]
            more = len(headings) - len(shown)
            findings += f" Sections: {'; '.join(shown)}" + (f" (+{more} more)" if more > 0 else "")

        strengths: List[str] = []
        for heading in headings:
            if set(tokenize(heading)) & set(terms):
                strengths.append(f"{topic.path}: covers '{heading}'")
        if samples_body is not None:
            blocks = count_code_blocks(samples_body)
            if blocks:
                strengths.append(f"{topic.path}: {blocks} code sample(s) in paired samples file")

        issues: List[str] = []
        if topic.metadata_incomplete:
            issues.append(f"{topic.path}: front matter missing or malformed")
        elif not topic.description:
            issues.append(f"{topic.path}: no description in front matter")
        searchable = set(tokenize(" ".join((topic.title, " ".join(topic.tags), body))))
        missing = [term for term in terms if term not in searchable]
        if terms and missing:
            issues.append(f"{topic.path}: does not address {', '.join(missing)}")

        return Review(findings=findings, strengths=strengths, issues=issues)


REVIEW_PROMPT = (
    "You review one knowledge-base topic against a request. Answer with a single JSON "
    'object with the keys "findings" (short paragraph), "strengths" (list of strings) '
    'and "issues" (list of strings).'
)


class LLMReviewer:
    def __init__(self, client: ChatClient, *, max_chars: int = 12000) -> None:
        self.client = client
        self.max_chars = max_chars

    def review(
        self, request: str, topic: TopicDocument, body: str, samples_body: str | None
    ) -> Review:
        prompt = f"Request: {request}\n\nTopic: {topic.path} ({topic.title})\n\n{body[: self.max_chars]}"
        if samples_body:
            prompt += f"\n\nPaired samples:\n{samples_body[: self.max_chars]}"
        try:
            answer = self.client.complete_json(REVIEW_PROMPT, prompt)
        except LLMUnavailableError as exc:
            raise ReviewError(str(exc)) from exc

        def as_list(value: object) -> List[str]:
            if isinstance(value, list):
                return [str(item).strip() for item in value if str(item).strip()]
            if isinstance(value, str) and value.strip():
                return [value.strip()]
            return []

        return Review(
            findings=str(answer.get("findings") or "").strip(),
            strengths=[f"{topic.path}: {item}" for item in as_list(answer.get("strengths"))],
            issues=[f"{topic.path}: {item}" for item in as_list(answer.get("issues"))],
        )


REVIEWER_NAMES = ("outline", "llm")


def build_reviewer(name: str, config: AppConfig) -> TopicReviewer:
    if name == "outline":
        return OutlineReviewer()
    if name == "llm":
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
            raise ReviewError(f"{exc} (set KBPLAN_LLM_ENDPOINT)") from exc
        return LLMReviewer(client)
    raise ReviewError(f"Unknown reviewer: {name!r} (choose from {', '.join(REVIEWER_NAMES)})")
