"""Resolve logical corpus paths to content, listings or ancestor fallbacks."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import List, Optional, Sequence

from doccorpus.corpus.store import CorpusSnapshot
from doccorpus.models import PathResult
from doccorpus.utils.files import INDEXABLE_EXTENSIONS, list_directory
from doccorpus.utils.text import has_truncation_marker

LOGGER = logging.getLogger(__name__)


def normalize_logical_path(raw: str) -> Optional[PurePosixPath]:
    """Normalize a caller-supplied path; ``None`` if it tries to escape the corpus."""
    parts = [part for part in raw.replace("\\", "/").split("/") if part not in ("", ".")]
    if ".." in parts:
        return None
    return PurePosixPath(*parts)


def _display(logical: PurePosixPath, *, directory: bool) -> str:
    text = logical.as_posix() if logical.parts else ""
    if directory and text:
        return text + "/"
    return text


class PathResolver:
    """Reads one captured snapshot; never raises for missing paths."""

    def __init__(self, snapshot: CorpusSnapshot) -> None:
        self.snapshot = snapshot

    def resolve(self, logical_paths: Sequence[str]) -> List[PathResult]:
        return [self.resolve_one(path) for path in logical_paths]

    def resolve_one(self, requested: str) -> PathResult:
        logical = normalize_logical_path(requested)
        if logical is None:
            return self._miss(requested)

        if not logical.parts:
            return self._root_listing(requested, kind="listing")

        target = self.snapshot.locate(logical)
        if target is None:
            return self._miss(requested)

        if target.is_file():
            return self._content(requested, logical, target)
        if target.is_dir():
            return self._listing(requested, logical, target, kind="listing")

        for extension in INDEXABLE_EXTENSIONS:
            candidate = target.with_name(target.name + extension)
            if candidate.is_file():
                return self._content(
                    requested, logical.with_name(logical.name + extension), candidate
                )

        return self._fallback(requested, logical)

    def _fallback(self, requested: str, logical: PurePosixPath) -> PathResult:
        for ancestor in logical.parents:
            if not ancestor.parts:
                break
            directory = self.snapshot.locate(ancestor)
            if directory is not None and directory.is_dir():
                LOGGER.debug("No entry %s; falling back to %s", requested, ancestor)
                return self._listing(requested, ancestor, directory, kind="fallback")
        # Only reachable if the area vanished while resolving.
        return self._miss(requested)

    def _content(self, requested: str, logical: PurePosixPath, path: Path) -> PathResult:
        text = path.read_text(encoding="utf-8", errors="replace")
        return PathResult(
            requested=requested,
            kind="content",
            path=_display(logical, directory=False),
            text=text,
            truncated=has_truncation_marker(text),
        )

    def _listing(
        self, requested: str, logical: PurePosixPath, directory: Path, *, kind: str
    ) -> PathResult:
        dirs, files = list_directory(directory)
        return PathResult(
            requested=requested,
            kind=kind,  # type: ignore[arg-type]
            path=_display(logical, directory=True),
            dirs=dirs,
            files=files,
        )

    def _root_listing(self, requested: str, *, kind: str) -> PathResult:
        return PathResult(
            requested=requested,
            kind=kind,  # type: ignore[arg-type]
            path="",
            dirs=list(self.snapshot.areas()),
        )

    def _miss(self, requested: str) -> PathResult:
        LOGGER.debug("No corpus area for %s", requested)
        return PathResult(requested=requested, kind="miss")

    def root_areas(self) -> PathResult:
        """Listing of every top-level area, used to annotate total misses."""
        return self._root_listing("", kind="listing")
