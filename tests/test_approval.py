"""Tests for plan presentation and the approval gate."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Callable

import pytest
from rich.console import Console

from kbplan.cancellation import CancellationToken
from kbplan.errors import OperationCancelled, PlanEditError
from kbplan.index.catalogue import TopicIndex
from kbplan.ingestion.loader import CorpusLoader
from kbplan.models import EvaluationPlan, EvaluationPlanEntry, Priority
from kbplan.planning.approval import (
    ApprovalGate,
    Decision,
    PlanDraft,
    auto_approve,
    render_plan,
)


def scripted(*lines: str) -> Callable[[str], str]:
    """Feed `lines` to the gate, then signal end of input."""
    remaining = iter(lines)

    def read_line(prompt: str) -> str:
        try:
            return next(remaining)
        except StopIteration:
            raise EOFError from None

    return read_line


def _console() -> Console:
    return Console(file=io.StringIO(), width=160, color_system=None)


def _output(console: Console) -> str:
    return console.file.getvalue()  # type: ignore[attr-defined]


@pytest.fixture
def index(sample_corpus: Path) -> TopicIndex:
    return TopicIndex.build(CorpusLoader(sample_corpus).load())


@pytest.fixture
def plan(index: TopicIndex) -> EvaluationPlan:
    x = index.get("a", "x.md")
    y = index.get("b", "y.md")
    return EvaluationPlan(
        request="review error handling",
        areas=("a", "b"),
        entries=(
            EvaluationPlanEntry(x, Priority.HIGH, "about errors", order=0),
            EvaluationPlanEntry(y, Priority.LOW, "naming only", order=1),
        ),
    )


class TestRenderPlan:
    """Test the human-readable listing."""

    def test_grouped_by_priority(self, plan: EvaluationPlan) -> None:
        """Entries are listed under one table per priority tier."""
        console = _console()
        console.print(render_plan(plan))
        output = _output(console)

        assert "High priority (1)" in output
        assert "Low priority (1)" in output
        assert "Medium priority" not in output
        assert output.index("areas/a/x.md") < output.index("areas/b/y.md")

    def test_empty_plan(self) -> None:
        """An empty plan says so instead of printing tables."""
        console = _console()
        console.print(render_plan(EvaluationPlan(request="q", areas=("a",))))
        assert "No topics selected" in _output(console)


class TestPlanDraft:
    """Test plan edits."""

    def test_remove(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """Removing an entry marks the draft as edited."""
        draft = PlanDraft(plan, index)
        removed = draft.remove(2)

        assert removed.path == "areas/b/y.md"
        assert draft.edited is True
        assert draft.freeze().paths() == ["areas/a/x.md"]

    def test_remove_out_of_range(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """Entry numbers past the end are rejected."""
        with pytest.raises(PlanEditError):
            PlanDraft(plan, index).remove(3)

    def test_set_priority_resorts(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """Changing a priority moves the entry to its new tier."""
        draft = PlanDraft(plan, index)
        draft.set_priority(1, Priority.LOW)

        frozen = draft.freeze()
        assert frozen.paths() == ["areas/a/x.md", "areas/b/y.md"]
        assert [entry.priority for entry in frozen.entries] == [Priority.LOW, Priority.LOW]

        draft.set_priority(2, Priority.HIGH)
        assert draft.freeze().paths() == ["areas/b/y.md", "areas/a/x.md"]

    def test_add_after_remove(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """A removed topic can be added back with a new rationale."""
        draft = PlanDraft(plan, index)
        draft.remove(2)
        entry = draft.add("b/y", Priority.HIGH, "needed after all")

        assert entry.path == "areas/b/y.md"
        assert entry.rationale == "needed after all"
        assert draft.freeze().paths() == ["areas/a/x.md", "areas/b/y.md"]

    def test_add_duplicate(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """Adding a topic already in the plan is rejected."""
        with pytest.raises(PlanEditError, match="already"):
            PlanDraft(plan, index).add("a/x.md")

    def test_add_unknown_topic(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """Adding a topic that is not catalogued is rejected."""
        with pytest.raises(PlanEditError):
            PlanDraft(plan, index).add("a/nothing")

    def test_add_outside_plan_areas(self, make_corpus) -> None:
        """Only topics from the plan's areas can be added."""
        root = make_corpus({"a/x.md": "# X\n", "c/z.md": "# Z\n"})
        index = TopicIndex.build(CorpusLoader(root).load())
        plan = EvaluationPlan(request="q", areas=("a",))
        with pytest.raises(PlanEditError, match="not catalogued"):
            PlanDraft(plan, index).add("c/z")

    def test_add_path_missing_from_index(
        self, plan: EvaluationPlan, index: TopicIndex, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A resolved path that the index no longer holds is an edit error."""
        draft = PlanDraft(plan, index)
        draft.remove(2)
        monkeypatch.setattr(draft, "resolve", lambda reference: "areas/b/gone.md")

        with pytest.raises(PlanEditError, match="not catalogued"):
            draft.add("b/gone")
        assert draft.freeze().paths() == ["areas/a/x.md"]

    def test_add_requires_area(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """References without an area are rejected."""
        with pytest.raises(PlanEditError):
            PlanDraft(plan, index).add("x")

    def test_freeze_is_approved(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """Freezing a draft yields an approved plan."""
        assert PlanDraft(plan, index).freeze().approved is True


class TestApprovalGate:
    """Test the blocking review loop."""

    def test_approve_as_is(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """Approving without edits keeps the plan unchanged."""
        outcome = ApprovalGate(_console(), scripted("approve")).review(plan, index)

        assert outcome.decision is Decision.APPROVED
        assert outcome.approved is True
        assert outcome.plan is not None
        assert outcome.plan.approved is True
        assert outcome.plan.paths() == plan.paths()

    def test_approve_with_edits(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """Approving after an edit reports the edits."""
        outcome = ApprovalGate(_console(), scripted("remove 2", "yes")).review(plan, index)

        assert outcome.decision is Decision.APPROVED_WITH_EDITS
        assert outcome.plan.paths() == ["areas/a/x.md"]

    def test_add_and_set_commands(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """The add and set commands edit the draft."""
        gate = ApprovalGate(_console(), scripted("rm 2", "add b/y.md high still relevant", "set 2 medium", "a"))
        outcome = gate.review(plan, index)

        entries = outcome.plan.entries
        assert [entry.path for entry in entries] == ["areas/a/x.md", "areas/b/y.md"]
        assert entries[1].priority is Priority.MEDIUM
        assert entries[1].rationale == "still relevant"

    def test_reject(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """Rejecting returns no plan."""
        outcome = ApprovalGate(_console(), scripted("reject")).review(plan, index)

        assert outcome.decision is Decision.REJECTED
        assert outcome.plan is None
        assert outcome.approved is False

    def test_end_of_input_rejects(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """End of input counts as a rejection."""
        outcome = ApprovalGate(_console(), scripted()).review(plan, index)
        assert outcome.decision is Decision.REJECTED

    def test_bad_command_keeps_waiting(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """Unknown commands and bad edits keep the gate open."""
        console = _console()
        outcome = ApprovalGate(console, scripted("", "frobnicate", "remove x", "help", "show", "approve")).review(
            plan, index
        )

        output = _output(console)
        assert "Unknown command 'frobnicate'" in output
        assert "Expected an entry number" in output
        assert "Commands:" in output
        assert outcome.decision is Decision.APPROVED

    def test_cancelled_token(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """A cancelled token stops the gate."""
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelled):
            ApprovalGate(_console(), scripted("approve"), token=token).review(plan, index)

    def test_original_plan_untouched(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        """Edits never mutate the plan handed to the gate."""
        ApprovalGate(_console(), scripted("remove 1", "approve")).review(plan, index)
        assert len(plan) == 2
        assert plan.approved is False

    def test_auto_approve(self, plan: EvaluationPlan) -> None:
        """Auto approval returns an approved copy."""
        outcome = auto_approve(plan)
        assert outcome.decision is Decision.APPROVED
        assert outcome.plan.approved is True
