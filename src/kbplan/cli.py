"""Command line interface for kbplan."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from kbplan.cancellation import CancellationToken
from kbplan.config import AppConfig
from kbplan.errors import (
    ConfigError,
    CorpusNotFoundError,
    OperationCancelled,
    PlanningError,
    ReviewError,
    ScorerUnavailableError,
)
from kbplan.execution.report import render_markdown
from kbplan.execution.review import build_reviewer
from kbplan.execution.walker import SAMPLES_POLICIES, ExecutionWalker
from kbplan.index.catalogue import TopicIndex
from kbplan.ingestion.loader import CorpusLoader
from kbplan.models import LoadResult
from kbplan.planning.approval import ApprovalGate, Decision, auto_approve, render_plan
from kbplan.planning.planner import RelevancePlanner
from kbplan.scoring import build_scorer

EXIT_CORPUS_NOT_FOUND = 1
EXIT_USAGE_ERROR = 1
EXIT_EXECUTION_ERROR = 2

LOGGER = logging.getLogger(__name__)

console = Console()
app = typer.Typer(help="kbplan - plan and walk reviews of a Markdown knowledge base")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _fail(message: str, code: int = EXIT_USAGE_ERROR) -> typer.Exit:
    console.print(f"[red]{message}[/red]")
    return typer.Exit(code=code)


def _split_areas(value: str) -> List[str]:
    return list(dict.fromkeys(part.strip() for part in value.split(",") if part.strip()))


def _build_config(
    root: Optional[Path],
    areas_dir: Optional[str],
    **overrides: Optional[str],
) -> AppConfig:
    try:
        config = AppConfig.from_env()
    except ConfigError as exc:
        raise _fail(str(exc))
    if root is not None:
        config.root = root
    if areas_dir is not None:
        config.areas_dir = areas_dir
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)
    return config


def _load(config: AppConfig, areas: Optional[List[str]] = None) -> tuple[CorpusLoader, LoadResult]:
    loader = CorpusLoader(config.resolve_root(Path.cwd()), areas_dir=config.areas_dir)
    try:
        result = loader.load(areas)
    except CorpusNotFoundError as exc:
        raise _fail(str(exc), EXIT_CORPUS_NOT_FOUND)
    for area in result.missing_areas:
        console.print(f"[yellow]Area not found, skipped: {area}[/yellow]")
    return loader, result


@app.command()
def plan(
    request: str = typer.Option(..., "--request", "-r", help="What the review should focus on"),
    areas: str = typer.Option(..., "--areas", "-a", help="Comma-separated area names (at most 3)"),
    root: Path = typer.Option(None, "--root", help="Corpus root (defaults to current directory)"),
    areas_dir: str = typer.Option(None, "--areas-dir", help="Folder under the root holding the areas"),
    scorer: str = typer.Option(None, "--scorer", help="Relevance scorer: keyword, embedding or llm"),
    reviewer: str = typer.Option(None, "--reviewer", help="Topic reviewer: outline or llm"),
    samples: str = typer.Option(None, "--samples", help="Consult samples files: auto, always or never"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Approve the plan without prompting"),
    output: Path = typer.Option(None, "--output", "-o", help="Also write the report to this file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Build an evaluation plan, wait for approval, then walk it."""
    _setup_logging(verbose)
    config = _build_config(
        root, areas_dir, scorer=scorer, reviewer=reviewer, samples_policy=samples
    )
    if config.samples_policy not in SAMPLES_POLICIES:
        raise _fail(f"Unknown samples policy {config.samples_policy!r}; use auto, always or never")

    selected = _split_areas(areas)
    if not selected:
        raise _fail("At least one area is required")
    if len(selected) > config.max_areas:
        raise _fail(f"At most {config.max_areas} areas per plan")

    loader, result = _load(config, selected)
    catalogue = TopicIndex.build(result)
    if not len(catalogue):
        raise _fail("No topics found in the requested areas.", EXIT_CORPUS_NOT_FOUND)

    try:
        relevance = build_scorer(config.scorer, config)
        topic_reviewer = build_reviewer(config.reviewer, config)
    except (ScorerUnavailableError, ReviewError) as exc:
        raise _fail(str(exc))

    token = CancellationToken()
    try:
        planner = RelevancePlanner(relevance, max_areas=config.max_areas, token=token)
        try:
            draft = planner.plan(request, catalogue, result.areas)
        except PlanningError as exc:
            raise _fail(str(exc))

        if yes:
            console.print(render_plan(draft))
            outcome = auto_approve(draft)
        else:
            gate = ApprovalGate(console, console.input, token=token)
            outcome = gate.review(draft, catalogue)
    except (KeyboardInterrupt, OperationCancelled):
        token.cancel("interrupted")
        console.print("[yellow]Cancelled; no report produced.[/yellow]")
        return

    if outcome.decision is Decision.REJECTED or outcome.plan is None:
        console.print("Plan rejected; no report produced.")
        return

    walker = ExecutionWalker(
        loader,
        topic_reviewer,
        samples_predicate=SAMPLES_POLICIES[config.samples_policy],
        token=token,
    )
    try:
        report = walker.run(outcome.plan)
    except (KeyboardInterrupt, OperationCancelled):
        console.print("[yellow]Cancelled during execution; no report produced.[/yellow]")
        return
    except Exception as exc:
        LOGGER.debug("Execution walk failed", exc_info=True)
        console.print(f"[red]Execution failed: {exc}[/red]")
        raise typer.Exit(code=EXIT_EXECUTION_ERROR)

    markdown = render_markdown(report)
    console.print(markdown, markup=False, highlight=False, soft_wrap=True)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(markdown, encoding="utf-8")
        console.print(f"Report written to [bold]{output}[/bold]")


@app.command()
def areas(
    root: Path = typer.Option(None, "--root", help="Corpus root (defaults to current directory)"),
    areas_dir: str = typer.Option(None, "--areas-dir", help="Folder under the root holding the areas"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """List the areas of the corpus with topic counts."""
    _setup_logging(verbose)
    config = _build_config(root, areas_dir)
    _, result = _load(config)
    if not result.areas:
        console.print("[yellow]No areas found.[/yellow]")
        return

    catalogue = TopicIndex.build(result)
    counts = catalogue.counts_by_area()
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Area")
    table.add_column("Topics", justify="right")
    table.add_column("With samples", justify="right")
    table.add_column("Orphan samples", justify="right")
    for area in result.areas:
        topics = catalogue.topics([area])
        table.add_row(
            area,
            str(counts.get(area, 0)),
            str(sum(1 for topic in topics if topic.has_paired_samples)),
            str(sum(1 for sample in result.orphan_samples if sample.area == area)),
        )
    console.print(table)


@app.command()
def index(
    root: Path = typer.Option(None, "--root", help="Corpus root (defaults to current directory)"),
    areas_dir: str = typer.Option(None, "--areas-dir", help="Folder under the root holding the areas"),
    area: Optional[List[str]] = typer.Option(None, "--area", help="Restrict to an area (repeatable)"),
    tag: str = typer.Option(None, "--tag", help="Only topics carrying this tag"),
    keyword: str = typer.Option(None, "--keyword", "-k", help="Only topics mentioning this keyword"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Show the topic catalogue."""
    _setup_logging(verbose)
    config = _build_config(root, areas_dir)
    _, result = _load(config, list(area) if area else None)
    catalogue = TopicIndex.build(result)

    topics = catalogue.topics()
    if tag:
        tagged = {topic.path for topic in catalogue.find_by_tag(tag)}
        topics = [topic for topic in topics if topic.path in tagged]
    if keyword:
        matched = {topic.path for topic in catalogue.search(keyword)}
        topics = [topic for topic in topics if topic.path in matched]

    if not topics:
        console.print("[yellow]No topics found.[/yellow]")
    else:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Topic")
        table.add_column("Title")
        table.add_column("Difficulty")
        table.add_column("Tags")
        table.add_column("Samples")
        table.add_column("Metadata")
        for topic in topics:
            table.add_row(
                topic.path,
                topic.title,
                topic.difficulty.value,
                ", ".join(topic.tags),
                "yes" if topic.has_paired_samples else "-",
                "incomplete" if topic.metadata_incomplete else "ok",
            )
        console.print(table)

    for sample in catalogue.orphan_samples:
        console.print(f"[yellow]Orphan samples file: {sample.path}[/yellow]")
    console.print(f"{len(topics)} topics, {len(catalogue.incomplete())} with incomplete metadata")
