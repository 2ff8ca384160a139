"""Single entry point answering compound document requests."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from doccorpus.corpus.store import CorpusSnapshot
from doccorpus.models import AnswerEntry, ChangelogDocument, PathResult, RebuildResult, SearchResult
from doccorpus.prepare.pipeline import CorpusPipeline
from doccorpus.query.resolver import PathResolver
from doccorpus.query.search import KeywordSearcher, normalize_keywords
from doccorpus.utils.naming import changelog_filename, package_name_from_filename
from doccorpus.utils.text import has_truncation_marker

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def _listing_entry(result: PathResult, status: str) -> AnswerEntry:
    return AnswerEntry(
        kind="listing",
        path=result.path,
        status=status,  # type: ignore[arg-type]
        dirs=list(result.dirs),
        files=list(result.files),
    )


class QueryFacade:
    """Composes path resolution and keyword search over one snapshot per call."""

    def __init__(
        self,
        pipeline: CorpusPipeline,
        searcher: Optional[KeywordSearcher] = None,
        *,
        wait_timeout: Optional[float] = None,
    ) -> None:
        self.pipeline = pipeline
        self.searcher = searcher or KeywordSearcher(limit=pipeline.config.search_limit)
        self.wait_timeout = wait_timeout
        pipeline.on_publish(self.searcher.cache.invalidate)

    def _snapshot(self) -> CorpusSnapshot:
        return self.pipeline.wait_for_snapshot(self.wait_timeout)

    def _on_live_snapshot(self, query: Callable[[CorpusSnapshot], T]) -> T:
        """Run ``query`` again on the current generation if its own was pruned meanwhile."""
        snapshot = self._snapshot()
        result = query(snapshot)
        if not snapshot.root.is_dir():
            LOGGER.warning(
                "Generation %s was removed during a query, retrying on the current one",
                snapshot.generation,
            )
            result = query(self._snapshot())
        return result

    def answer(
        self, paths: Sequence[str], keywords: Optional[Iterable[str]] = None
    ) -> List[AnswerEntry]:
        if not paths:
            raise ValueError("At least one path is required")
        terms = normalize_keywords(keywords or [])
        return self._on_live_snapshot(lambda snapshot: self._answer(snapshot, paths, terms))

    def _answer(
        self, snapshot: CorpusSnapshot, paths: Sequence[str], terms: List[str]
    ) -> List[AnswerEntry]:
        resolver = PathResolver(snapshot)

        entries: List[AnswerEntry] = []
        for result in resolver.resolve(paths):
            if result.kind == "content":
                entries.append(
                    AnswerEntry(
                        kind="content",
                        path=result.path,
                        status="exact",
                        text=result.text,
                        truncated=result.truncated,
                    )
                )
            elif result.kind == "listing":
                entries.append(_listing_entry(result, "exact"))
            elif result.kind == "fallback":
                entries.append(_listing_entry(result, "fallback"))
                if terms:
                    entries.append(self._search_entry(snapshot, terms, result.path, "fallback"))
            else:
                miss = resolver.root_areas()
                miss.path = result.requested
                entries.append(_listing_entry(miss, "miss"))
                if terms:
                    entries.append(self._search_entry(snapshot, terms, None, "miss"))
        return entries

    def _search_entry(
        self, snapshot: CorpusSnapshot, terms: List[str], scope: Optional[str], status: str
    ) -> AnswerEntry:
        results = self.searcher.search(snapshot, terms, scope=scope)
        return AnswerEntry(
            kind="searchResults",
            path=scope or "",
            status=status,  # type: ignore[arg-type]
            results=results,
        )

    def search(self, keywords: Iterable[str], scope: Optional[str] = None) -> List[SearchResult]:
        return self._on_live_snapshot(
            lambda snapshot: self.searcher.search(snapshot, keywords, scope=scope)
        )

    def get_changelog(self, package_name: str) -> Optional[ChangelogDocument]:
        if not package_name:
            return None
        path = self._snapshot().changelogs / changelog_filename(package_name)
        if not path.is_file():
            LOGGER.debug("No changelog for %s", package_name)
            return None
        content = path.read_text(encoding="utf-8")
        return ChangelogDocument(
            package_name=package_name,
            content=content,
            truncated=has_truncation_marker(content),
        )

    def list_changelogs(self) -> List[str]:
        directory = self._snapshot().changelogs
        if not directory.is_dir():
            return []
        names = []
        for path in directory.iterdir():
            try:
                names.append(package_name_from_filename(path.name))
            except ValueError:
                LOGGER.debug("Ignoring non-changelog file %s", path)
        return sorted(names)

    def rebuild(self) -> RebuildResult:
        return self.pipeline.rebuild()
