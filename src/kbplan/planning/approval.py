"""Plan presentation and the human approval gate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List

from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from kbplan.cancellation import CancellationToken, check
from kbplan.errors import PlanEditError
from kbplan.index.catalogue import TopicIndex
from kbplan.models import EvaluationPlan, EvaluationPlanEntry, Priority, sort_entries

LOGGER = logging.getLogger(__name__)

MANUAL_RATIONALE = "added during review"

_PRIORITY_STYLES = {
    Priority.HIGH: "bold red",
    Priority.MEDIUM: "bold yellow",
    Priority.LOW: "bold blue",
}

HELP_TEXT = """Commands:
  approve | a | yes          approve the plan as shown
  reject  | r | no | quit    discard the plan
  remove N                   drop entry N
  add AREA/TOPIC [PRIORITY] [RATIONALE...]
                             add a catalogued topic (default priority Medium)
  set N PRIORITY             change the priority of entry N (High, Medium, Low)
  show                       print the plan again
  help                       print this message"""

_APPROVE = {"approve", "a", "y", "yes", "ok"}
_REJECT = {"reject", "r", "n", "no", "q", "quit", "abort"}


class Decision(str, Enum):
    APPROVED = "approved"
    APPROVED_WITH_EDITS = "approved_with_edits"
    REJECTED = "rejected"


@dataclass(slots=True)
class ApprovalOutcome:
    decision: Decision
    plan: EvaluationPlan | None = None

    @property
    def approved(self) -> bool:
        return self.decision is not Decision.REJECTED


def render_plan(plan: EvaluationPlan) -> Group:
    """Render the plan grouped by priority tier with 1-based row numbers."""
    header = Text.assemble(
        ("Evaluation plan", "bold"),
        f" for: {plan.request}\n",
        ("Areas: ", "dim"),
        ", ".join(plan.areas) or "-",
        ("  Topics: ", "dim"),
        str(len(plan)),
    )
    if not plan.entries:
        return Group(header, Text("No topics selected.", style="yellow"))

    parts: list = [header]
    number = 0
    for priority in Priority:
        entries = plan.by_priority(priority)
        if not entries:
            continue
        table = Table(
            title=f"{priority.value} priority ({len(entries)})",
            title_style=_PRIORITY_STYLES[priority],
            title_justify="left",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("#", justify="right")
        table.add_column("Topic")
        table.add_column("Title")
        table.add_column("Rationale")
        for entry in entries:
            number += 1
            rationale = Text(entry.rationale, style="italic" if entry.unscored else "")
            table.add_row(str(number), Text(entry.path), Text(entry.topic.title), rationale)
        parts.append(table)
    return Group(*parts)


class PlanDraft:
    """Mutable editing copy of a plan; `freeze()` yields the approved plan."""

    def __init__(self, plan: EvaluationPlan, index: TopicIndex) -> None:
        self.request = plan.request
        self.areas = plan.areas
        self.index = index.restrict(plan.areas)
        self.entries: List[EvaluationPlanEntry] = list(plan.entries)
        self.edited = False

    def _entry_at(self, number: int) -> EvaluationPlanEntry:
        if not 1 <= number <= len(self.entries):
            raise PlanEditError(f"No entry #{number} (plan has {len(self.entries)} entries)")
        return self.entries[number - 1]

    def _resort(self) -> None:
        self.entries = list(sort_entries(self.entries))
        self.edited = True

    def remove(self, number: int) -> EvaluationPlanEntry:
        entry = self._entry_at(number)
        self.entries.remove(entry)
        self._resort()
        LOGGER.debug("Removed %s from plan", entry.path)
        return entry

    def set_priority(self, number: int, priority: Priority) -> EvaluationPlanEntry:
        entry = self._entry_at(number)
        updated = EvaluationPlanEntry(
            topic=entry.topic,
            priority=priority,
            rationale=entry.rationale if not entry.unscored else MANUAL_RATIONALE,
            order=entry.order,
        )
        self.entries[number - 1] = updated
        self._resort()
        return updated

    def resolve(self, reference: str) -> str:
        """Map `area/topic[.md]` to a catalogued topic path."""
        cleaned = reference.strip().strip("/")
        if "/" not in cleaned:
            raise PlanEditError(f"Use AREA/TOPIC to add a topic, got {reference!r}")
        area, _, name = cleaned.rpartition("/")
        area = area.rsplit("/", 1)[-1]
        if not name.lower().endswith(".md"):
            name += ".md"
        topic = self.index.get(area, name)
        if topic is None:
            raise PlanEditError(
                f"Topic {area}/{name} is not catalogued in the plan areas ({', '.join(self.areas)})"
            )
        return topic.path

    def add(
        self,
        reference: str,
        priority: Priority = Priority.MEDIUM,
        rationale: str = MANUAL_RATIONALE,
    ) -> EvaluationPlanEntry:
        path = self.resolve(reference)
        if any(entry.path == path for entry in self.entries):
            raise PlanEditError(f"{path} is already in the plan")
        topic = self.index.get_by_path(path)
        if topic is None:
            raise PlanEditError(f"{path} is not catalogued in the plan areas")
        entry = EvaluationPlanEntry(
            topic=topic,
            priority=priority,
            rationale=rationale or MANUAL_RATIONALE,
            order=self.index.position(topic),
        )
        self.entries.append(entry)
        self._resort()
        return entry

    def to_plan(self) -> EvaluationPlan:
        return EvaluationPlan(request=self.request, areas=self.areas, entries=tuple(self.entries))

    def freeze(self) -> EvaluationPlan:
        return self.to_plan().approve()


def auto_approve(plan: EvaluationPlan) -> ApprovalOutcome:
    return ApprovalOutcome(decision=Decision.APPROVED, plan=plan.approve())


def _parse_number(value: str) -> int:
    try:
        return int(value.lstrip("#"))
    except ValueError as exc:
        raise PlanEditError(f"Expected an entry number, got {value!r}") from exc


def _looks_like_priority(value: str) -> bool:
    return value.strip().lower() in {"high", "h", "medium", "med", "m", "low", "l"}


def _parse_priority(value: str) -> Priority:
    try:
        return Priority.parse(value)
    except ValueError as exc:
        raise PlanEditError(str(exc)) from exc


class ApprovalGate:
    """Blocks on `read_line` until the plan is approved or rejected.

    There is no timeout; a cancelled token or end of input ends the wait.
    """

    def __init__(
        self,
        console: Console,
        read_line: Callable[[str], str],
        *,
        token: CancellationToken | None = None,
        prompt: str = "plan> ",
    ) -> None:
        self.console = console
        self.read_line = read_line
        self.token = token
        self.prompt = prompt

    def review(self, plan: EvaluationPlan, index: TopicIndex) -> ApprovalOutcome:
        draft = PlanDraft(plan, index)
        self.console.print(render_plan(draft.to_plan()))
        self.console.print("Type [bold]approve[/bold], [bold]reject[/bold] or [bold]help[/bold].")

        while True:
            check(self.token)
            try:
                line = self.read_line(self.prompt)
            except EOFError:
                LOGGER.info("End of input at approval gate; treating as rejection")
                return ApprovalOutcome(decision=Decision.REJECTED)
            check(self.token)

            command, _, rest = line.strip().partition(" ")
            command = command.lower()
            if not command:
                continue
            if command in _APPROVE:
                decision = Decision.APPROVED_WITH_EDITS if draft.edited else Decision.APPROVED
                LOGGER.info("Plan %s with %d entries", decision.value, len(draft.entries))
                return ApprovalOutcome(decision=decision, plan=draft.freeze())
            if command in _REJECT:
                LOGGER.info("Plan rejected")
                return ApprovalOutcome(decision=Decision.REJECTED)
            if command in {"help", "?", "h"}:
                self.console.print(HELP_TEXT, markup=False, highlight=False)
                continue
            if command in {"show", "list", "ls"}:
                self.console.print(render_plan(draft.to_plan()))
                continue

            try:
                self._apply_edit(draft, command, rest.strip())
            except PlanEditError as exc:
                self.console.print(f"[red]{exc}[/red]")
                continue
            self.console.print(render_plan(draft.to_plan()))

    def _apply_edit(self, draft: PlanDraft, command: str, args: str) -> None:
        parts = args.split()
        if command in {"remove", "rm", "del", "drop"}:
            if len(parts) != 1:
                raise PlanEditError("Usage: remove N")
            entry = draft.remove(_parse_number(parts[0]))
            self.console.print(f"Removed {entry.path}")
        elif command == "add":
            if not parts:
                raise PlanEditError("Usage: add AREA/TOPIC [PRIORITY] [RATIONALE...]")
            priority = Priority.MEDIUM
            rationale_words = parts[1:]
            if rationale_words and _looks_like_priority(rationale_words[0]):
                priority = _parse_priority(rationale_words[0])
                rationale_words = rationale_words[1:]
            entry = draft.add(parts[0], priority, " ".join(rationale_words) or MANUAL_RATIONALE)
            self.console.print(f"Added {entry.path} as {entry.priority.value}")
        elif command in {"set", "priority", "prio"}:
            if len(parts) != 2:
                raise PlanEditError("Usage: set N PRIORITY")
            entry = draft.set_priority(_parse_number(parts[0]), _parse_priority(parts[1]))
            self.console.print(f"{entry.path} is now {entry.priority.value}")
        else:
            raise PlanEditError(f"Unknown command {command!r}; type help for the list")
