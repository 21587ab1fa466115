"""Report synthesis and Markdown rendering."""

from __future__ import annotations

from typing import Iterable, List

from kbplan.models import ExecutionFinding, ExecutionReport, Priority, ReportSummary

NOTHING_TO_DO = "No follow-up required; all planned topics were reviewed."


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(item for item in items if item))


def summarize(findings: List[ExecutionFinding]) -> ReportSummary:
    """Fold per-entry findings into the report summary sections."""
    critical: List[str] = []
    improvements: List[str] = []
    strengths: List[str] = []
    next_steps: List[str] = []

    for finding in findings:
        entry = finding.entry
        if finding.skipped:
            next_steps.append(f"Re-run planning: {entry.path} ({finding.skip_reason})")
            continue
        if entry.priority is Priority.HIGH:
            critical.extend(finding.issues)
        else:
            improvements.extend(finding.issues)
        strengths.extend(finding.strengths)
        if entry.unscored:
            next_steps.append(f"Check relevance manually: {entry.path} (scoring unavailable)")

    if critical:
        next_steps.append(f"Resolve {len(_unique(critical))} critical issue(s) first")
    if not next_steps:
        next_steps.append(NOTHING_TO_DO)

    return ReportSummary(
        critical_issues=_unique(critical),
        recommended_improvements=_unique(improvements),
        strengths=_unique(strengths),
        next_steps=_unique(next_steps),
    )


def _bullets(items: List[str], empty: str = "None.") -> List[str]:
    if not items:
        return [f"- {empty}"]
    return [f"- {item}" for item in items]


def render_markdown(report: ExecutionReport) -> str:
    lines = [
        "# Evaluation report",
        "",
        f"Request: {report.request}",
        "",
        f"Topics: {len(report)} ({report.skipped_count} skipped)",
        "",
        "## Findings",
        "",
    ]
    for number, finding in enumerate(report.findings, start=1):
        entry = finding.entry
        lines.append(f"### {number}. {entry.topic.title} ({entry.priority.value})")
        lines.append("")
        lines.append(f"- Path: `{entry.path}`")
        lines.append(f"- Rationale: {entry.rationale}")
        if finding.skipped:
            lines.append(f"- Status: {finding.status}")
            lines.append("")
            continue
        lines.append(f"- Samples needed: {'yes' if finding.samples_needed else 'no'}")
        lines.append(f"- Samples consulted: {'yes' if finding.samples_consulted else 'no'}")
        if finding.findings:
            lines.extend(["", finding.findings])
        if finding.strengths:
            lines.extend(["", "Strengths:", *_bullets(finding.strengths)])
        if finding.issues:
            lines.extend(["", "Issues:", *_bullets(finding.issues)])
        lines.append("")

    summary = report.summary
    lines.extend(["## Summary", ""])
    lines.extend(["### Critical issues", "", *_bullets(summary.critical_issues), ""])
    lines.extend(["### Recommended improvements", "", *_bullets(summary.recommended_improvements), ""])
    lines.extend(["### Strengths", "", *_bullets(summary.strengths), ""])
    lines.extend(["### Next steps", "", *_bullets(summary.next_steps)])
    return "\n".join(lines) + "\n"
