"""Utility helpers for working with files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator

# Order matters: extension-less lookups try these in sequence.
INDEXABLE_EXTENSIONS = (".mdx", ".md")

IGNORED_DIRS = frozenset(
    {".git", "node_modules", "dist", "build", "__pycache__", ".venv", ".turbo", ".next"}
)


def is_indexable(path: Path) -> bool:
    return path.suffix.lower() in INDEXABLE_EXTENSIONS


def is_ignored(relative: Path) -> bool:
    """True when any directory component is a dependency/build/VCS folder."""
    return any(part in IGNORED_DIRS for part in relative.parts[:-1])


def iter_files(root: Path, *, suffixes: Iterable[str] | None = None) -> Iterator[Path]:
    """Yield files under ``root`` in ascending path order, skipping ignored dirs.

    ``suffixes`` restricts the walk to the given (lower-case) extensions.
    """
    allowed = {s.lower() for s in suffixes} if suffixes is not None else None
    for item in sorted(root.rglob("*")):
        if not item.is_file():
            continue
        relative = item.relative_to(root)
        if is_ignored(relative):
            continue
        if allowed is not None and item.suffix.lower() not in allowed:
            continue
        yield item


def iter_indexable_paths(inputs: Iterable[Path]) -> Iterator[Path]:
    """Yield indexable documents from input paths, descending into directories."""
    for item in inputs:
        if item.is_dir():
            yield from iter_files(item, suffixes=INDEXABLE_EXTENSIONS)
        elif item.is_file() and is_indexable(item):
            yield item


def list_directory(directory: Path) -> tuple[list[str], list[str]]:
    """Return ``(subdirectories, indexable files)`` each sorted ascending."""
    dirs: list[str] = []
    files: list[str] = []
    for child in directory.iterdir():
        if child.name.startswith("."):
            continue
        if child.is_dir():
            dirs.append(child.name)
        elif child.is_file() and is_indexable(child):
            files.append(child.name)
    return sorted(dirs), sorted(files)
