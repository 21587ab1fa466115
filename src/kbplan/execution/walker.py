"""Walk an approved plan and collect one finding per entry."""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict

from kbplan.cancellation import CancellationToken, check
from kbplan.errors import PlanNotApprovedError, ReviewError, SourceRemovedError
from kbplan.execution.report import summarize
from kbplan.execution.review import TopicReviewer
from kbplan.ingestion.loader import CorpusLoader
from kbplan.models import (
    EvaluationPlan,
    EvaluationPlanEntry,
    ExecutionFinding,
    ExecutionReport,
    TopicDocument,
)

LOGGER = logging.getLogger(__name__)

SOURCE_REMOVED = "source removed"
SOURCE_UNREADABLE = "source unreadable"

SamplesPredicate = Callable[[TopicDocument, str], bool]

_CODE_HINT_RE = re.compile(
    r"\b(samples?|examples?|code|snippets?|implementation|procedure|codeunit)\b", re.IGNORECASE
)


def always(topic: TopicDocument, body: str) -> bool:
    return True


def never(topic: TopicDocument, body: str) -> bool:
    return False


def mentions_code_examples(topic: TopicDocument, body: str) -> bool:
    """True when the topic points at samples or talks about concrete code."""
    if topic.samples_path and topic.samples_path.rsplit("/", 1)[-1] in body:
        return True
    return bool(_CODE_HINT_RE.search(body))


SAMPLES_POLICIES: Dict[str, SamplesPredicate] = {
    "always": always,
    "never": never,
    "auto": mentions_code_examples,
}


class ExecutionWalker:
    """Iterates plan entries in order; removed sources become skipped findings."""

    def __init__(
        self,
        loader: CorpusLoader,
        reviewer: TopicReviewer,
        *,
        samples_predicate: SamplesPredicate = mentions_code_examples,
        token: CancellationToken | None = None,
    ) -> None:
        self.loader = loader
        self.reviewer = reviewer
        self.samples_predicate = samples_predicate
        self.token = token

    def run(self, plan: EvaluationPlan) -> ExecutionReport:
        if not plan.approved:
            raise PlanNotApprovedError("Plan must pass the approval gate before execution")

        report = ExecutionReport(request=plan.request)
        for position, entry in enumerate(plan.entries, start=1):
            check(self.token)
            LOGGER.info("[%d/%d] %s (%s)", position, len(plan), entry.path, entry.priority.value)
            report.findings.append(self._execute(plan.request, entry))

        report.summary = summarize(report.findings)
        LOGGER.info(
            "Execution finished: %d findings, %d skipped", len(report), report.skipped_count
        )
        return report

    def _execute(self, request: str, entry: EvaluationPlanEntry) -> ExecutionFinding:
        try:
            topic = self.loader.read_topic(entry.path)
        except SourceRemovedError:
            LOGGER.warning("Skipping %s: %s", entry.path, SOURCE_REMOVED)
            return ExecutionFinding(entry=entry, skipped=True, skip_reason=SOURCE_REMOVED)
        except (OSError, UnicodeDecodeError) as exc:
            LOGGER.warning("Skipping %s: %s (%s)", entry.path, SOURCE_UNREADABLE, exc)
            return ExecutionFinding(entry=entry, skipped=True, skip_reason=SOURCE_UNREADABLE)

        finding = ExecutionFinding(entry=entry)
        samples_body = None
        finding.samples_needed = self.samples_predicate(topic, topic.body)
        if finding.samples_needed:
            if topic.samples_path is None:
                finding.issues.append(f"{topic.path}: code samples needed but no paired samples file")
            else:
                try:
                    samples_body = self.loader.read_samples(topic.samples_path).body
                    finding.samples_consulted = True
                except SourceRemovedError:
                    finding.issues.append(f"{topic.path}: paired samples file was removed")
                except (OSError, UnicodeDecodeError) as exc:
                    LOGGER.warning("Cannot read samples for %s: %s", topic.path, exc)
                    finding.issues.append(f"{topic.path}: paired samples file is unreadable")

        try:
            review = self.reviewer.review(request, topic, topic.body, samples_body)
        except ReviewError as exc:
            LOGGER.warning("Review failed for %s: %s", entry.path, exc)
            finding.issues.append(f"{topic.path}: review unavailable: {exc}")
            return finding

        finding.findings = review.findings
        finding.strengths.extend(review.strengths)
        finding.issues.extend(review.issues)
        return finding
