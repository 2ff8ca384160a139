"""Copy indexable documents from external trees into the raw partition."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path, PurePosixPath
from typing import Optional, Sequence

from doccorpus.config import SourceRoot
from doccorpus.corpus.store import CHANGELOGS_AREA, EXAMPLES_AREA
from doccorpus.errors import SourceUnavailable
from doccorpus.models import CollectResult, RootOutcome, SourceDocument
from doccorpus.utils.files import iter_indexable_paths

LOGGER = logging.getLogger(__name__)

RESERVED_AREAS = (EXAMPLES_AREA, CHANGELOGS_AREA)


def _validate_dest(dest: str) -> PurePosixPath:
    relative = PurePosixPath(dest.strip("/"))
    if not relative.parts or ".." in relative.parts or relative.is_absolute():
        raise ValueError(f"Invalid destination subdirectory: {dest!r}")
    if relative.parts[0] in RESERVED_AREAS:
        raise ValueError(f"Destination {dest!r} is reserved for generated content")
    return relative


def read_documents(source: Path) -> list[SourceDocument]:
    """Read every indexable document under ``source``.

    Raises :class:`SourceUnavailable` if the tree is missing or any file in
    it cannot be read, so a root is either read completely or not at all.
    """
    if not source.is_dir():
        raise SourceUnavailable(str(source), "not a directory")
    documents = []
    try:
        for path in iter_indexable_paths([source]):
            documents.append(
                SourceDocument(
                    path=path.relative_to(source).as_posix(),
                    content=path.read_bytes(),
                    kind="doc",
                )
            )
    except OSError as exc:
        raise SourceUnavailable(str(source), str(exc)) from exc
    return documents


class SourceCollector:
    """Copies filtered documentation trees into ``dest_root``.

    Each root is written to a temporary sibling directory first and renamed
    into place only after every file copied. When a root fails, its
    destination is restored from ``fallback_root`` (the previous generation's
    raw partition) so it keeps its last good content.
    """

    def __init__(self, dest_root: Path, *, fallback_root: Optional[Path] = None) -> None:
        self.dest_root = Path(dest_root)
        self.fallback_root = fallback_root

    def collect(self, roots: Sequence[SourceRoot]) -> CollectResult:
        result = CollectResult()
        claimed: set[PurePosixPath] = set()
        for root in roots:
            outcome = self._collect_root(root, claimed)
            if not outcome.ok:
                message = f"Skipped source {root.source} -> {root.dest}: {outcome.error}"
                LOGGER.warning(message)
                result.warnings.append(message)
            result.outcomes.append(outcome)
        return result

    def _collect_root(self, root: SourceRoot, claimed: set[PurePosixPath]) -> RootOutcome:
        try:
            dest = _validate_dest(root.dest)
        except ValueError as exc:
            return RootOutcome(root=root.source, dest=root.dest, ok=False, error=str(exc))
        overlapping = [o for o in claimed if o == dest or o in dest.parents or dest in o.parents]
        if overlapping:
            return RootOutcome(
                root=root.source,
                dest=root.dest,
                ok=False,
                error="destination overlaps another root",
            )
        claimed.add(dest)

        target = self.dest_root.joinpath(*dest.parts)
        try:
            documents = read_documents(root.source)
            copied = self._write_atomically(target, documents)
        except (SourceUnavailable, OSError) as exc:
            self._restore_last_good(dest, target)
            return RootOutcome(root=root.source, dest=root.dest, ok=False, error=str(exc))

        LOGGER.info("Collected %s documents from %s into %s", copied, root.source, dest)
        return RootOutcome(root=root.source, dest=root.dest, ok=True, files=copied)

    def _write_atomically(self, target: Path, documents: Sequence[SourceDocument]) -> int:
        staging = target.with_name(f".tmp-{target.name}")
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir(parents=True)
        try:
            for document in documents:
                path = staging / document.path
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(document.content)
            if target.exists():
                shutil.rmtree(target)
            os.replace(staging, target)
        except OSError:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        return len(documents)

    def _restore_last_good(self, dest: PurePosixPath, target: Path) -> None:
        if self.fallback_root is None:
            return
        previous = self.fallback_root.joinpath(*dest.parts)
        if not previous.is_dir() or target.exists():
            return
        LOGGER.info("Keeping previous content for %s", dest)
        shutil.copytree(previous, target)
