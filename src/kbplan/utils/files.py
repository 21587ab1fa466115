"""Utility helpers for locating topic files on disk."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

SAMPLES_SUFFIX = "-samples"
MARKDOWN_SUFFIX = ".md"


def iter_markdown_paths(directory: Path) -> Iterator[Path]:
    """Yield Markdown files directly inside `directory` in lexicographic order."""
    for item in sorted(directory.iterdir(), key=lambda child: child.name):
        if item.is_file() and item.suffix.lower() == MARKDOWN_SUFFIX:
            yield item


def iter_area_dirs(root: Path) -> Iterator[Path]:
    """Yield visible sub-directories of `root` in lexicographic order."""
    for item in sorted(root.iterdir(), key=lambda child: child.name):
        if item.is_dir() and not item.name.startswith((".", "_")):
            yield item


def is_samples_file(path: Path) -> bool:
    return path.stem.endswith(SAMPLES_SUFFIX)


def base_name_for_samples(path: Path) -> str:
    """`foo-samples.md` -> `foo.md`."""
    return path.stem[: -len(SAMPLES_SUFFIX)] + path.suffix


def samples_name_for(path: Path) -> str:
    """`foo.md` -> `foo-samples.md`."""
    return f"{path.stem}{SAMPLES_SUFFIX}{path.suffix}"


def read_text(path: Path) -> str:
    """Read a UTF-8 document, tolerating a byte-order mark."""
    return path.read_text(encoding="utf-8-sig")
