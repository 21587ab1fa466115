"""Tests for the execution walker."""

from __future__ import annotations

from pathlib import Path

import pytest

from kbplan.cancellation import CancellationToken
from kbplan.errors import OperationCancelled, PlanNotApprovedError, ReviewError
from kbplan.execution.review import OutlineReviewer, Review
from kbplan.execution.walker import (
    SOURCE_REMOVED,
    SOURCE_UNREADABLE,
    ExecutionWalker,
    always,
    mentions_code_examples,
    never,
)
from kbplan.index.catalogue import TopicIndex
from kbplan.ingestion.loader import CorpusLoader
from kbplan.models import EvaluationPlan, EvaluationPlanEntry, Priority, TopicDocument


class RecordingReviewer:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str | None]] = []

    def review(self, request, topic, body, samples_body) -> Review:
        self.calls.append((topic.path, samples_body))
        return Review(findings=f"looked at {topic.title}", strengths=["s"], issues=["i"])


class FailingReviewer:
    def review(self, request, topic, body, samples_body) -> Review:
        raise ReviewError("model offline")


def _plan(root: Path, *, approved: bool = True) -> EvaluationPlan:
    index = TopicIndex.build(CorpusLoader(root).load())
    plan = EvaluationPlan(
        request="review error handling",
        areas=("a", "b"),
        entries=(
            EvaluationPlanEntry(index.get("b", "y.md"), Priority.LOW, "naming", order=1),
            EvaluationPlanEntry(index.get("a", "x.md"), Priority.HIGH, "errors", order=0),
        ),
    )
    return plan.approve() if approved else plan


class TestExecutionWalker:
    """Test walking approved plans."""

    def test_one_finding_per_entry_in_order(self, sample_corpus: Path) -> None:
        """One finding per entry, in plan order."""
        reviewer = RecordingReviewer()
        report = ExecutionWalker(CorpusLoader(sample_corpus), reviewer).run(_plan(sample_corpus))

        assert len(report) == 2
        assert [finding.entry.path for finding in report.findings] == ["areas/a/x.md", "areas/b/y.md"]
        assert [path for path, _ in reviewer.calls] == ["areas/a/x.md", "areas/b/y.md"]
        assert report.findings[0].findings == "looked at Error handling patterns"
        assert report.request == "review error handling"

    def test_unapproved_plan_rejected(self, sample_corpus: Path) -> None:
        """Unapproved plans are refused."""
        walker = ExecutionWalker(CorpusLoader(sample_corpus), RecordingReviewer())
        with pytest.raises(PlanNotApprovedError):
            walker.run(_plan(sample_corpus, approved=False))

    def test_removed_source_is_skipped(self, sample_corpus: Path) -> None:
        """A deleted topic becomes a skipped finding."""
        plan = _plan(sample_corpus)
        (sample_corpus / "areas" / "a" / "x.md").unlink()

        report = ExecutionWalker(CorpusLoader(sample_corpus), RecordingReviewer()).run(plan)

        assert len(report) == len(plan)
        skipped = report.findings[0]
        assert skipped.skipped is True
        assert skipped.skip_reason == SOURCE_REMOVED
        assert skipped.status == "skipped: source removed"
        assert report.findings[1].skipped is False
        assert report.skipped_count == 1

    def test_unreadable_source_is_skipped(self, sample_corpus: Path) -> None:
        """An undecodable topic file is skipped and the walk continues."""
        plan = _plan(sample_corpus)
        (sample_corpus / "areas" / "b" / "y.md").write_bytes(b"\xff\xfe\x80")

        report = ExecutionWalker(CorpusLoader(sample_corpus), RecordingReviewer()).run(plan)

        assert len(report) == 2
        x_finding, y_finding = report.findings
        assert x_finding.skipped is False
        assert y_finding.skipped is True
        assert y_finding.skip_reason == SOURCE_UNREADABLE
        assert report.summary.next_steps[0] == "Re-run planning: areas/b/y.md (source unreadable)"

    def test_samples_consulted_when_predicate_true(self, sample_corpus: Path) -> None:
        """The always policy reads samples where they exist."""
        reviewer = RecordingReviewer()
        report = ExecutionWalker(
            CorpusLoader(sample_corpus), reviewer, samples_predicate=always
        ).run(_plan(sample_corpus))

        x_finding, y_finding = report.findings
        assert x_finding.samples_needed is True
        assert x_finding.samples_consulted is True
        assert "TryPost" in (reviewer.calls[0][1] or "")
        assert y_finding.samples_needed is True
        assert y_finding.samples_consulted is False
        assert any("no paired samples file" in issue for issue in y_finding.issues)

    def test_samples_skipped_when_predicate_false(self, sample_corpus: Path) -> None:
        """The never policy reads no samples."""
        reviewer = RecordingReviewer()
        report = ExecutionWalker(
            CorpusLoader(sample_corpus), reviewer, samples_predicate=never
        ).run(_plan(sample_corpus))

        assert all(not finding.samples_needed for finding in report.findings)
        assert all(not finding.samples_consulted for finding in report.findings)
        assert reviewer.calls[0][1] is None

    def test_samples_need_decided_per_topic(self, sample_corpus: Path) -> None:
        """The default policy needs samples only for topics that talk about code."""
        report = ExecutionWalker(CorpusLoader(sample_corpus), RecordingReviewer()).run(_plan(sample_corpus))

        x_finding, y_finding = report.findings
        assert x_finding.samples_needed is True
        assert x_finding.samples_consulted is True
        assert y_finding.samples_needed is False
        assert y_finding.samples_consulted is False
        assert not any("samples" in issue for issue in y_finding.issues)

    def test_removed_samples_file(self, sample_corpus: Path) -> None:
        """A deleted samples file is recorded as an issue."""
        plan = _plan(sample_corpus)
        loader = CorpusLoader(sample_corpus)
        (sample_corpus / "areas" / "a" / "x-samples.md").unlink()

        report = ExecutionWalker(loader, RecordingReviewer(), samples_predicate=always).run(plan)
        x_finding = report.findings[0]
        assert x_finding.samples_consulted is False
        assert any("no paired samples file" in issue for issue in x_finding.issues)

    def test_review_error_recorded(self, sample_corpus: Path) -> None:
        """Reviewer failures become issues, not aborts."""
        report = ExecutionWalker(CorpusLoader(sample_corpus), FailingReviewer()).run(_plan(sample_corpus))

        assert len(report) == 2
        assert all(
            any("review unavailable: model offline" in issue for issue in finding.issues)
            for finding in report.findings
        )

    def test_summary_is_filled(self, sample_corpus: Path) -> None:
        """The report summary is filled after the walk."""
        report = ExecutionWalker(CorpusLoader(sample_corpus), RecordingReviewer()).run(_plan(sample_corpus))
        assert report.summary.critical_issues == ["i"]
        assert report.summary.strengths == ["s"]

    def test_cancelled_token(self, sample_corpus: Path) -> None:
        """A cancelled token stops the walk."""
        token = CancellationToken()
        token.cancel()
        walker = ExecutionWalker(CorpusLoader(sample_corpus), RecordingReviewer(), token=token)
        with pytest.raises(OperationCancelled):
            walker.run(_plan(sample_corpus))


class TestSamplesPredicates:
    """Test the built-in samples policies."""

    def _topic(self, samples_path: str | None = None) -> TopicDocument:
        return TopicDocument(path="areas/a/t.md", area="a", title="t", body="", samples_path=samples_path)

    def test_mentions_code(self) -> None:
        """Talk of code or examples needs samples."""
        assert mentions_code_examples(self._topic(), "See the example below.")
        assert not mentions_code_examples(self._topic(), "Pure prose about naming.")

    def test_mentions_samples_file_name(self) -> None:
        """Naming the samples file needs samples."""
        topic = self._topic("areas/a/t-samples.md")
        assert mentions_code_examples(topic, "Details live in t-samples.md.")

    def test_constant_policies(self) -> None:
        """always and never ignore the topic."""
        assert always(self._topic(), "") is True
        assert never(self._topic(), "code") is False


class TestOutlineReviewer:
    """Test the offline reviewer."""

    def test_review_sample_topic(self, sample_corpus: Path) -> None:
        """A complete topic yields sections and strengths."""
        loader = CorpusLoader(sample_corpus)
        topic = loader.read_topic("areas/a/x.md")
        samples = loader.read_samples("areas/a/x-samples.md").body

        review = OutlineReviewer().review("review error handling", topic, topic.body, samples)

        assert review.findings.startswith("Error handling patterns: How to raise")
        assert "Sections: Error handling with TryFunction; Logging telemetry" in review.findings
        assert "areas/a/x.md: covers 'Error handling with TryFunction'" in review.strengths
        assert "areas/a/x.md: 2 code sample(s) in paired samples file" in review.strengths
        assert review.issues == []

    def test_review_incomplete_topic(self, sample_corpus: Path) -> None:
        """An incomplete topic yields metadata and coverage issues."""
        topic = CorpusLoader(sample_corpus).read_topic("areas/b/y.md")
        review = OutlineReviewer().review("error handling", topic, topic.body, None)

        assert review.findings == "Naming conventions: Keep object names short and prefix them with the app affix."
        assert "areas/b/y.md: front matter missing or malformed" in review.issues
        assert "areas/b/y.md: does not address error, handling" in review.issues
        assert review.strengths == []
