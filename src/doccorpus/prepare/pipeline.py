"""Corpus preparation pipeline."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from doccorpus.config import AppConfig
from doccorpus.corpus.store import (
    CHANGELOGS_AREA,
    EXAMPLES_AREA,
    ORGANIZED,
    RAW,
    CorpusSnapshot,
    CorpusStore,
)
from doccorpus.errors import CorpusNotReady, PreparationError
from doccorpus.models import RebuildResult
from doccorpus.prepare.changelogs import ChangelogAggregator
from doccorpus.prepare.collector import SourceCollector
from doccorpus.prepare.flattener import ExampleFlattener

LOGGER = logging.getLogger(__name__)


class PipelineState(str, Enum):
    EMPTY = "empty"
    PREPARING = "preparing"
    READY = "ready"


class CorpusPipeline:
    """Coordinates corpus rebuilds and publishes generations.

    At most one rebuild runs at a time; concurrent requests share the
    in-flight run's future. Readers take :attr:`snapshot` once and keep using
    it, so a rebuild never changes what an in-flight query sees.
    """

    def __init__(self, config: AppConfig, store: Optional[CorpusStore] = None) -> None:
        self.config = config
        self.store = store or CorpusStore(
            config.resolve_corpus_root(Path.cwd()),
            keep_generations=config.keep_generations,
        )
        self._lock = threading.Lock()
        self._published = threading.Event()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="corpus-rebuild")
        self._inflight: Optional[Future[RebuildResult]] = None
        self._listeners: List[Callable[[CorpusSnapshot], None]] = []

        self._snapshot = self.store.current()
        if self._snapshot is not None:
            LOGGER.info("Loaded corpus generation %s", self._snapshot.generation)
            self._published.set()

    @property
    def state(self) -> PipelineState:
        with self._lock:
            if self._inflight is not None and not self._inflight.done():
                return PipelineState.PREPARING
            return PipelineState.READY if self._snapshot is not None else PipelineState.EMPTY

    @property
    def snapshot(self) -> Optional[CorpusSnapshot]:
        with self._lock:
            return self._snapshot

    def wait_for_snapshot(self, timeout: Optional[float] = None) -> CorpusSnapshot:
        """Block until a generation is published, then return it."""
        snapshot = self.snapshot if self._published.wait(timeout) else None
        if snapshot is None:
            raise CorpusNotReady("No corpus generation has been published yet")
        return snapshot

    def on_publish(self, callback: Callable[[CorpusSnapshot], None]) -> None:
        self._listeners.append(callback)

    def request_rebuild(self) -> Future[RebuildResult]:
        """Start a rebuild, or join the one already running."""
        with self._lock:
            if self._inflight is not None and not self._inflight.done():
                LOGGER.info("Rebuild already in progress, joining it")
                return self._inflight
            self._inflight = self._executor.submit(self._prepare)
            return self._inflight

    def rebuild(self) -> RebuildResult:
        return self.request_rebuild().result()

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def _prepare(self) -> RebuildResult:
        previous = self.snapshot
        generation = self.store.next_generation()
        LOGGER.info("Preparing corpus generation %s", generation)
        try:
            with self.store.transaction(generation) as staging:
                result = self._run_phases(staging, generation, previous)
        except Exception as exc:
            LOGGER.error("Rebuild of generation %s failed: %s", generation, exc)
            raise PreparationError(f"Rebuild of generation {generation} failed: {exc}") from exc

        snapshot = CorpusSnapshot(generation=generation, root=self.store.generation_dir(generation))
        with self._lock:
            self._snapshot = snapshot
        self._published.set()
        for callback in self._listeners:
            callback(snapshot)
        return result

    def _run_phases(
        self, staging: Path, generation: int, previous: Optional[CorpusSnapshot]
    ) -> RebuildResult:
        collector = SourceCollector(
            staging / RAW,
            fallback_root=previous.raw if previous is not None else None,
        )
        flattener = ExampleFlattener(
            staging / ORGANIZED / EXAMPLES_AREA,
            line_limit=self.config.example_line_limit,
        )
        aggregator = ChangelogAggregator(line_limit=self.config.changelog_line_limit)

        def aggregate() -> int:
            entries = aggregator.aggregate(self.config.changelog_roots)
            return aggregator.write(entries, staging / ORGANIZED / CHANGELOGS_AREA)

        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="corpus-phase") as pool:
            collect_future = pool.submit(collector.collect, self.config.doc_roots)
            flatten_future = pool.submit(flattener.flatten_all, self.config.example_roots)
            changelog_future = pool.submit(aggregate)
            collected = collect_future.result()
            examples, example_warnings = flatten_future.result()
            changelog_count = changelog_future.result()

        return RebuildResult(
            generation=generation,
            roots=collected.outcomes,
            examples=len(examples),
            changelogs=changelog_count,
            warnings=collected.warnings + example_warnings + aggregator.warnings,
        )
