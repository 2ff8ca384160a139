"""Keyword relevance search over a corpus snapshot."""

from __future__ import annotations

import logging
import threading
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional

from doccorpus.corpus.store import CorpusSnapshot
from doccorpus.models import FileScore, SearchCacheEntry, SearchResult
from doccorpus.query.resolver import normalize_logical_path
from doccorpus.utils.files import iter_indexable_paths
from doccorpus.utils.text import extract_title, iter_title_lines, make_snippet

LOGGER = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


def normalize_keywords(keywords: Iterable[str]) -> List[str]:
    """Lower-case, strip and de-duplicate keywords, dropping empty ones."""
    return sorted({k.strip().lower() for k in keywords if k and k.strip()})


class PathCache:
    """Indexable paths per scope, memoized for the newest generation seen.

    Seeing a newer generation discards every entry. Lookups against an older
    generation are answered without being cached.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation: Optional[int] = None
        self._entries: Dict[str, List[SearchCacheEntry]] = {}
        self.builds = 0

    def invalidate(self, snapshot: Optional[CorpusSnapshot] = None) -> None:
        with self._lock:
            self._generation = snapshot.generation if snapshot is not None else None
            self._entries = {}

    def get(self, snapshot: CorpusSnapshot, scope: PurePosixPath) -> List[SearchCacheEntry]:
        key = scope.as_posix() if scope.parts else ""
        with self._lock:
            if self._generation is None or snapshot.generation > self._generation:
                self._generation = snapshot.generation
                self._entries = {}
            current = snapshot.generation == self._generation
            if current and key in self._entries:
                return self._entries[key]

        entries = self._build(snapshot, scope)
        with self._lock:
            if current and snapshot.generation == self._generation:
                entries = self._entries.setdefault(key, entries)
        return entries

    def _build(self, snapshot: CorpusSnapshot, scope: PurePosixPath) -> List[SearchCacheEntry]:
        self.builds += 1
        if scope.parts:
            directory = snapshot.locate(scope)
            if directory is None or not directory.is_dir():
                return []
            directories = [directory]
        else:
            directories = list(snapshot.areas().values())

        entries: List[SearchCacheEntry] = []
        for path in iter_indexable_paths(directories):
            entries.append(
                SearchCacheEntry(
                    path=snapshot.logical_path(path),
                    title=_read_title(path),
                    source=path,
                )
            )
        entries.sort(key=lambda entry: entry.path)
        LOGGER.debug(
            "Cached %s paths for scope %r of generation %s",
            len(entries),
            scope.as_posix(),
            snapshot.generation,
        )
        return entries


def _read_title(path: Path) -> str:
    try:
        with path.open(encoding="utf-8", errors="replace") as handle:
            head = "".join(line for _, line in zip(range(40), handle))
    except OSError:
        return ""
    return extract_title(head)


def score_document(path: str, text: str, keywords: List[str]) -> FileScore:
    """Count keyword hits in content, title lines and path segments.

    Matching is case-insensitive substring matching.
    """
    score = FileScore(path=path)
    lowered = text.lower()
    title_lines = [line.lower() for line in iter_title_lines(text)]
    segments = [segment.lower() for segment in PurePosixPath(path).parts]
    if segments:
        segments[-1] = PurePosixPath(segments[-1]).stem

    for keyword in keywords:
        content_hits = lowered.count(keyword)
        path_hits = sum(1 for segment in segments if keyword in segment)
        score.total_matches += content_hits
        score.title_matches += sum(line.count(keyword) for line in title_lines)
        score.path_relevance += path_hits
        if content_hits or path_hits:
            score.keywords_matched.add(keyword)
    return score


class KeywordSearcher:
    """Ranks snapshot documents against a keyword set."""

    def __init__(self, cache: Optional[PathCache] = None, *, limit: int = DEFAULT_LIMIT) -> None:
        self.cache = cache or PathCache()
        self.limit = limit

    def search(
        self,
        snapshot: CorpusSnapshot,
        keywords: Iterable[str],
        scope: Optional[str] = None,
    ) -> List[SearchResult]:
        terms = normalize_keywords(keywords)
        if not terms:
            return []
        logical_scope = normalize_logical_path(scope or "")
        if logical_scope is None:
            return []

        ranked: List[SearchResult] = []
        for entry in self.cache.get(snapshot, logical_scope):
            try:
                text = entry.source.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                LOGGER.warning("Unable to read %s: %s", entry.source, exc)
                continue
            file_score = score_document(entry.path, text, terms)
            if not file_score.keywords_matched:
                continue
            ranked.append(
                SearchResult(
                    path=entry.path,
                    score=file_score.final_score(len(terms)),
                    snippet=make_snippet(text, terms),
                    title=entry.title,
                )
            )

        ranked.sort(key=lambda result: (-result.score, result.path))
        return ranked[: self.limit]
