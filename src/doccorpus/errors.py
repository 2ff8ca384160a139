"""Exception hierarchy for corpus preparation and queries."""

from __future__ import annotations


class CorpusError(Exception):
    """Base class for all doccorpus errors."""


class CorpusRootError(CorpusError):
    """The corpus root cannot be created or written. Fatal at startup."""


class SourceUnavailable(CorpusError):
    """A collection root is missing or unreadable."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Source unavailable: {source} ({reason})")
        self.source = source
        self.reason = reason


class PreparationError(CorpusError):
    """A rebuild failed; the previously published generation stays visible."""


class CorpusNotReady(CorpusError):
    """No generation has been published yet."""
