"""Generation-numbered corpus storage on the local filesystem.

Layout under the corpus root::

    CURRENT                  # number of the published generation
    generations/
        3/raw/...            # verbatim copied documentation
        3/organized/...      # flattened examples, aggregated changelogs
        .staging-4/          # in-flight rebuild, never visible to readers

A generation directory is only ever created by renaming a finished staging
tree, and ``CURRENT`` is replaced atomically afterwards, so readers never see
a partially written generation.
"""

from __future__ import annotations

import logging
import os
import shutil
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, Optional

from doccorpus.errors import CorpusRootError

LOGGER = logging.getLogger(__name__)

RAW = "raw"
ORGANIZED = "organized"
EXAMPLES_AREA = "examples"
CHANGELOGS_AREA = "changelogs"

_POINTER = "CURRENT"
_GENERATIONS = "generations"
_STAGING_PREFIX = ".staging-"


@dataclass(frozen=True, slots=True)
class CorpusSnapshot:
    """Immutable view of one published generation."""

    generation: int
    root: Path

    @property
    def raw(self) -> Path:
        return self.root / RAW

    @property
    def organized(self) -> Path:
        return self.root / ORGANIZED

    @property
    def changelogs(self) -> Path:
        return self.organized / CHANGELOGS_AREA

    def areas(self) -> Dict[str, Path]:
        """Map each top-level logical area name to its directory.

        Raw areas shadow organized ones of the same name.
        """
        areas: Dict[str, Path] = {}
        for partition in (self.organized, self.raw):
            if not partition.is_dir():
                continue
            for child in partition.iterdir():
                if child.is_dir() and not child.name.startswith("."):
                    areas[child.name] = child
        return dict(sorted(areas.items()))

    def locate(self, logical: PurePosixPath) -> Optional[Path]:
        """Map a normalized logical path to its on-disk location.

        Returns ``None`` when the first segment names no area. The returned
        path may not exist.
        """
        if not logical.parts:
            return self.root
        area = self.areas().get(logical.parts[0])
        if area is None:
            return None
        return area.joinpath(*logical.parts[1:])

    def logical_path(self, path: Path) -> str:
        """Inverse of :meth:`locate` for files inside this generation."""
        for partition in (self.raw, self.organized):
            try:
                return path.relative_to(partition).as_posix()
            except ValueError:
                continue
        raise ValueError(f"{path} is outside generation {self.generation}")


class CorpusStore:
    """Persistence layer for corpus generations."""

    def __init__(self, root: Path, *, keep_generations: int = 2) -> None:
        self.root = Path(root)
        self.keep_generations = max(1, keep_generations)
        self._generations = self.root / _GENERATIONS
        try:
            self._generations.mkdir(parents=True, exist_ok=True)
            probe = self.root / ".write-test"
            probe.write_text("ok", encoding="utf-8")
            probe.unlink()
        except OSError as exc:
            raise CorpusRootError(f"Corpus root is not writable: {self.root}: {exc}") from exc
        self._remove_stale_staging()

    def _remove_stale_staging(self) -> None:
        for child in self._generations.glob(f"{_STAGING_PREFIX}*"):
            LOGGER.warning("Removing staging tree left by an interrupted rebuild: %s", child)
            shutil.rmtree(child, ignore_errors=True)

    def generation_dir(self, generation: int) -> Path:
        return self._generations / str(generation)

    def published_generations(self) -> list[int]:
        numbers = []
        for child in self._generations.iterdir():
            if child.is_dir() and child.name.isdigit():
                numbers.append(int(child.name))
        return sorted(numbers)

    def current(self) -> Optional[CorpusSnapshot]:
        """Return the published snapshot named by ``CURRENT``, if any."""
        pointer = self.root / _POINTER
        try:
            value = pointer.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        if not value.isdigit():
            LOGGER.warning("Ignoring malformed generation pointer %r", value)
            return None
        generation = int(value)
        directory = self.generation_dir(generation)
        if not directory.is_dir():
            LOGGER.warning("Generation pointer names missing generation %s", generation)
            return None
        return CorpusSnapshot(generation=generation, root=directory)

    def next_generation(self) -> int:
        published = self.published_generations()
        return (published[-1] if published else 0) + 1

    @contextmanager
    def transaction(self, generation: int) -> Iterator[Path]:
        """Stage a new generation; publish it on success, discard it on error."""
        staging = self._generations / f"{_STAGING_PREFIX}{generation}"
        if staging.exists():
            shutil.rmtree(staging)
        (staging / RAW).mkdir(parents=True)
        (staging / ORGANIZED).mkdir(parents=True)
        try:
            yield staging
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        self._publish(staging, generation)

    def _publish(self, staging: Path, generation: int) -> None:
        target = self.generation_dir(generation)
        try:
            os.replace(staging, target)
            tmp_pointer = self.root / f"{_POINTER}.tmp"
            tmp_pointer.write_text(str(generation), encoding="utf-8")
            os.replace(tmp_pointer, self.root / _POINTER)
        except OSError:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        LOGGER.info("Published corpus generation %s", generation)
        self._prune(generation)

    def _prune(self, current: int) -> None:
        published = [g for g in self.published_generations() if g <= current]
        for generation in published[: -self.keep_generations]:
            LOGGER.debug("Removing superseded generation %s", generation)
            shutil.rmtree(self.generation_dir(generation), ignore_errors=True)
