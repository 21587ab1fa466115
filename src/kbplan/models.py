"""Core kbplan data models."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional, Tuple

from kbplan.utils.text import excerpt


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "Difficulty":
        if value is None:
            return cls.UNKNOWN
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return cls.UNKNOWN


_PRIORITY_ALIASES = {
    "high": "High",
    "h": "High",
    "medium": "Medium",
    "med": "Medium",
    "m": "Medium",
    "low": "Low",
    "l": "Low",
}


class Priority(str, Enum):
    """Plan tier. Lower `rank` means reviewed earlier."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANKS[self]

    @classmethod
    def parse(cls, value: Any) -> "Priority":
        if isinstance(value, Priority):
            return value
        key = str(value).strip().lower()
        if key not in _PRIORITY_ALIASES:
            raise ValueError(f"Unknown priority: {value!r}")
        return cls(_PRIORITY_ALIASES[key])


_PRIORITY_RANKS = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


@dataclass(frozen=True, slots=True)
class TopicSummary:
    """Compact view of a topic handed to relevance scorers."""

    path: str
    area: str
    title: str
    description: str
    tags: Tuple[str, ...]
    difficulty: Difficulty
    excerpt: str


@dataclass(frozen=True, slots=True)
class TopicDocument:
    """One Markdown topic file inside an area folder."""

    path: str
    area: str
    title: str
    body: str
    description: str = ""
    difficulty: Difficulty = Difficulty.UNKNOWN
    tags: Tuple[str, ...] = ()
    object_types: Tuple[str, ...] = ()
    variable_types: Tuple[str, ...] = ()
    samples_path: Optional[str] = None
    metadata_incomplete: bool = False
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def filename(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def has_paired_samples(self) -> bool:
        return self.samples_path is not None

    def summary(self, *, max_chars: int = 400) -> TopicSummary:
        return TopicSummary(
            path=self.path,
            area=self.area,
            title=self.title,
            description=self.description,
            tags=self.tags,
            difficulty=self.difficulty,
            excerpt=excerpt(self.body, max_chars=max_chars),
        )


@dataclass(frozen=True, slots=True)
class SamplesDocument:
    """Paired `-samples` file. `topic_path` is None for orphans."""

    path: str
    area: str
    body: str
    topic_path: Optional[str] = None

    @property
    def is_orphan(self) -> bool:
        return self.topic_path is None


@dataclass(frozen=True, slots=True)
class ScoreResult:
    priority: Priority
    rationale: str


@dataclass(frozen=True, slots=True)
class EvaluationPlanEntry:
    topic: TopicDocument
    priority: Priority
    rationale: str
    order: int
    unscored: bool = False

    @property
    def path(self) -> str:
        return self.topic.path


def plan_sort_key(entry: EvaluationPlanEntry) -> Tuple[int, bool, int]:
    """Tier first, unscored bucket after scored entries, then discovery order."""
    return (entry.priority.rank, entry.unscored, entry.order)


def sort_entries(entries: Iterable[EvaluationPlanEntry]) -> Tuple[EvaluationPlanEntry, ...]:
    return tuple(sorted(entries, key=plan_sort_key))


@dataclass(frozen=True, slots=True)
class EvaluationPlan:
    """Prioritized shortlist for one request. Immutable once approved."""

    request: str
    areas: Tuple[str, ...]
    entries: Tuple[EvaluationPlanEntry, ...] = ()
    approved: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", sort_entries(self.entries))
        object.__setattr__(self, "areas", tuple(self.areas))

    def __len__(self) -> int:
        return len(self.entries)

    def by_priority(self, priority: Priority) -> List[EvaluationPlanEntry]:
        return [entry for entry in self.entries if entry.priority is priority]

    def paths(self) -> List[str]:
        return [entry.path for entry in self.entries]

    def approve(self) -> "EvaluationPlan":
        return dataclasses.replace(self, approved=True)


@dataclass(slots=True)
class ExecutionFinding:
    entry: EvaluationPlanEntry
    findings: str = ""
    strengths: List[str] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)
    samples_needed: bool = False
    samples_consulted: bool = False
    skipped: bool = False
    skip_reason: Optional[str] = None

    @property
    def status(self) -> str:
        if self.skipped:
            return f"skipped: {self.skip_reason}"
        return "reviewed"


@dataclass(slots=True)
class ReportSummary:
    critical_issues: List[str] = field(default_factory=list)
    recommended_improvements: List[str] = field(default_factory=list)
    strengths: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ExecutionReport:
    request: str
    findings: List[ExecutionFinding] = field(default_factory=list)
    summary: ReportSummary = field(default_factory=ReportSummary)

    def __len__(self) -> int:
        return len(self.findings)

    @property
    def skipped_count(self) -> int:
        return sum(1 for finding in self.findings if finding.skipped)


@dataclass(slots=True)
class LoadResult:
    """Everything the loader found under the requested areas."""

    root: str
    topics: List[TopicDocument] = field(default_factory=list)
    samples: List[SamplesDocument] = field(default_factory=list)
    orphan_samples: List[SamplesDocument] = field(default_factory=list)
    areas: List[str] = field(default_factory=list)
    missing_areas: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
