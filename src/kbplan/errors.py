"""Exception hierarchy shared across kbplan components."""

from __future__ import annotations


class KbPlanError(RuntimeError):
    """Base class for domain-specific runtime errors."""


class NotFoundError(KbPlanError):
    """A corpus location (area folder or document) does not exist."""


class CorpusNotFoundError(NotFoundError):
    """The corpus root itself is missing or is not a directory."""


class SourceRemovedError(NotFoundError):
    """A document referenced by a plan disappeared from disk."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Source removed: {path}")
        self.path = path


class ConfigError(KbPlanError):
    """A configuration value (usually a `KBPLAN_*` variable) cannot be used."""


class ScoringError(KbPlanError):
    """The relevance scorer could not produce a score for a topic."""


class ScorerUnavailableError(ScoringError):
    """The requested scorer cannot be constructed (missing extra or config)."""


class LLMUnavailableError(KbPlanError):
    """The chat completion endpoint is unreachable or answered with an error."""


class PlanningError(KbPlanError):
    """Invalid planning request (empty request text, bad area selection)."""


class PlanEditError(KbPlanError):
    """An edit command at the approval gate could not be applied."""


class PlanNotApprovedError(KbPlanError):
    """An execution was attempted on a plan that never passed the gate."""


class ReviewError(KbPlanError):
    """The topic reviewer failed for a single plan entry."""


class OperationCancelled(KbPlanError):
    """A cancellation token was triggered while waiting."""
