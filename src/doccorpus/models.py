"""Core doccorpus data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Literal, Optional, Set

DocumentKind = Literal["doc", "example-file", "changelog-fragment"]
ResolveKind = Literal["content", "listing", "fallback", "miss"]
AnswerKind = Literal["content", "listing", "searchResults"]
AnswerStatus = Literal["exact", "fallback", "miss"]


@dataclass(frozen=True, slots=True)
class SourceDocument:
    """A raw document read from an external tree."""

    path: str
    content: bytes
    kind: DocumentKind


@dataclass(frozen=True, slots=True)
class Section:
    label: str
    content: str


@dataclass(slots=True)
class FlattenedExample:
    """One example directory collapsed into a single labeled document."""

    name: str
    sections: List[Section] = field(default_factory=list)
    truncated: bool = False
    omitted_lines: int = 0
    omitted_files: int = 0


@dataclass(slots=True)
class ChangelogEntry:
    package_name: str
    filename: str
    content: str
    truncated: bool = False
    omitted_lines: int = 0
    source: Optional[Path] = None


@dataclass(slots=True)
class RootOutcome:
    """Result of collecting one source root."""

    root: Path
    dest: str
    ok: bool
    files: int = 0
    error: Optional[str] = None


@dataclass(slots=True)
class CollectResult:
    outcomes: List[RootOutcome] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def copied_files(self) -> int:
        return sum(outcome.files for outcome in self.outcomes if outcome.ok)


@dataclass(slots=True)
class RebuildResult:
    generation: int
    roots: List[RootOutcome] = field(default_factory=list)
    examples: int = 0
    changelogs: int = 0
    warnings: List[str] = field(default_factory=list)


@dataclass(slots=True)
class PathResult:
    """Outcome of resolving one logical path.

    ``kind`` is ``content`` for an exact file hit, ``listing`` for an exact
    directory hit, ``fallback`` when the nearest existing ancestor is listed
    instead, and ``miss`` when the first path segment names no corpus area.
    """

    requested: str
    kind: ResolveKind
    path: str = ""
    text: str = ""
    truncated: bool = False
    dirs: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class SearchCacheEntry:
    path: str
    title: str
    source: Path


@dataclass(slots=True)
class FileScore:
    """Per-query scratch scores for one candidate document."""

    path: str
    total_matches: int = 0
    title_matches: int = 0
    path_relevance: int = 0
    keywords_matched: Set[str] = field(default_factory=set)

    def final_score(self, keyword_count: int) -> int:
        distinct = len(self.keywords_matched)
        score = (
            self.total_matches
            + self.title_matches * 3
            + self.path_relevance * 2
            + distinct * 5
        )
        if keyword_count and distinct == keyword_count:
            score += 10
        return score


@dataclass(slots=True)
class SearchResult:
    path: str
    score: int
    snippet: str
    title: str = ""


@dataclass(slots=True)
class AnswerEntry:
    kind: AnswerKind
    path: str
    status: AnswerStatus
    text: str = ""
    truncated: bool = False
    dirs: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    results: List[SearchResult] = field(default_factory=list)


@dataclass(slots=True)
class ChangelogDocument:
    package_name: str
    content: str
    truncated: bool
