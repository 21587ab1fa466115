"""Corpus loading: area folders of topic files and their `-samples` pairs."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Dict, List, Sequence

from kbplan.errors import CorpusNotFoundError, NotFoundError, SourceRemovedError
from kbplan.ingestion.frontmatter import parse_front_matter
from kbplan.models import Difficulty, LoadResult, SamplesDocument, TopicDocument
from kbplan.utils.files import (
    base_name_for_samples,
    is_samples_file,
    iter_area_dirs,
    iter_markdown_paths,
    read_text,
    samples_name_for,
)
from kbplan.utils.text import first_heading

LOGGER = logging.getLogger(__name__)

DEFAULT_AREAS_DIR = "areas"


def is_area_name(name: str) -> bool:
    """True for a plain folder name: no separators, no parent references."""
    if not name or name in {".", ".."}:
        return False
    return "/" not in name and "\\" not in name and not Path(name).is_absolute()


class CorpusLoader:
    """Reads `<root>/<areas_dir>/<area>/*.md` into topic and samples documents."""

    def __init__(self, root: Path | str, *, areas_dir: str = DEFAULT_AREAS_DIR) -> None:
        self.root = Path(root).expanduser()
        self.areas_dir = areas_dir

    @property
    def areas_root(self) -> Path:
        return self.root / self.areas_dir if self.areas_dir else self.root

    def _ensure_root(self) -> Path:
        base = self.areas_root
        if not self.root.exists():
            raise CorpusNotFoundError(f"Corpus root not found: {self.root}")
        if not base.is_dir():
            raise CorpusNotFoundError(f"Areas directory not found: {base}")
        return base

    def discover_areas(self) -> List[str]:
        """Return the names of all area folders, sorted."""
        return [path.name for path in iter_area_dirs(self._ensure_root())]

    def load(self, areas: Sequence[str] | None = None) -> LoadResult:
        """Load every topic in the requested areas (all areas when None).

        Missing areas are skipped with a warning; unreadable files are
        skipped individually. Only a missing corpus root raises.
        """
        base = self._ensure_root()
        requested = list(dict.fromkeys(areas)) if areas is not None else self.discover_areas()
        result = LoadResult(root=str(self.root))

        for area in requested:
            try:
                self._load_area(base, area, result)
            except NotFoundError as exc:
                LOGGER.warning("%s", exc)
                result.missing_areas.append(area)
                result.warnings.append(str(exc))
                continue
            result.areas.append(area)

        LOGGER.info(
            "Loaded %d topics (%d samples, %d orphan) from %d areas",
            len(result.topics),
            len(result.samples),
            len(result.orphan_samples),
            len(result.areas),
        )
        return result

    def _load_area(self, base: Path, area: str, result: LoadResult) -> None:
        if not is_area_name(area):
            raise NotFoundError(f"Invalid area name: {area!r}")
        area_dir = base / area
        if not area_dir.is_dir():
            raise NotFoundError(f"Area not found: {area}")

        topic_files: List[Path] = []
        samples_files: Dict[str, Path] = {}
        for path in iter_markdown_paths(area_dir):
            if is_samples_file(path):
                samples_files[base_name_for_samples(path)] = path
            else:
                topic_files.append(path)

        topic_names = {path.name for path in topic_files}
        for path in topic_files:
            samples_path = samples_files.get(path.name)
            try:
                topic = self._read_topic_file(path, area, samples_path)
            except (OSError, UnicodeDecodeError) as exc:
                message = f"Failed to read {self._relative(path)}: {exc}"
                LOGGER.error(message)
                result.warnings.append(message)
                continue
            LOGGER.debug("Loaded topic %s", topic.path)
            result.topics.append(topic)

        for base_name, path in samples_files.items():
            orphan = base_name not in topic_names
            try:
                samples = self._read_samples_file(
                    path, area, None if orphan else self._relative(path.with_name(base_name))
                )
            except (OSError, UnicodeDecodeError) as exc:
                message = f"Failed to read {self._relative(path)}: {exc}"
                LOGGER.error(message)
                result.warnings.append(message)
                continue
            if orphan:
                message = f"Orphan samples file without a topic: {samples.path}"
                LOGGER.warning(message)
                result.warnings.append(message)
                result.orphan_samples.append(samples)
            else:
                result.samples.append(samples)

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def _read_topic_file(self, path: Path, area: str, samples_path: Path | None) -> TopicDocument:
        front = parse_front_matter(read_text(path))
        rel_path = self._relative(path)
        if front.error:
            LOGGER.warning("Malformed front matter in %s: %s", rel_path, front.error)

        title = front.get_text("title") or first_heading(front.body) or path.stem
        return TopicDocument(
            path=rel_path,
            area=area,
            title=title,
            body=front.body,
            description=front.get_text("description"),
            difficulty=Difficulty.parse(front.metadata.get("difficulty")),
            tags=front.get_list("tags"),
            object_types=front.get_list("object_types"),
            variable_types=front.get_list("variable_types"),
            samples_path=self._relative(samples_path) if samples_path is not None else None,
            metadata_incomplete=front.incomplete,
            extra=front.extra,
        )

    def _read_samples_file(self, path: Path, area: str, topic_path: str | None) -> SamplesDocument:
        return SamplesDocument(
            path=self._relative(path),
            area=area,
            body=read_text(path),
            topic_path=topic_path,
        )

    def read_topic(self, rel_path: str) -> TopicDocument:
        """Re-read one topic from disk, raising `SourceRemovedError` if it is gone."""
        path = self.root / PurePosixPath(rel_path)
        if not path.is_file():
            raise SourceRemovedError(rel_path)
        area = PurePosixPath(rel_path).parent.name
        samples = path.with_name(samples_name_for(path))
        try:
            return self._read_topic_file(path, area, samples if samples.is_file() else None)
        except FileNotFoundError as exc:
            raise SourceRemovedError(rel_path) from exc

    def read_samples(self, rel_path: str) -> SamplesDocument:
        path = self.root / PurePosixPath(rel_path)
        if not path.is_file():
            raise SourceRemovedError(rel_path)
        area = PurePosixPath(rel_path).parent.name
        topic_path = path.with_name(base_name_for_samples(path))
        try:
            return self._read_samples_file(
                path, area, self._relative(topic_path) if topic_path.is_file() else None
            )
        except FileNotFoundError as exc:
            raise SourceRemovedError(rel_path) from exc
