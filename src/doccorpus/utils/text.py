"""Text helpers: line caps, truncation markers, titles and snippets."""

from __future__ import annotations

from typing import Iterable, Iterator

TRUNCATION_PREFIX = "[... truncated:"


def truncate_lines(text: str, limit: int) -> tuple[str, int]:
    """Keep at most ``limit`` lines of ``text``.

    Returns the kept text and the number of omitted lines.
    """
    lines = text.splitlines()
    if len(lines) <= limit:
        return text, 0
    return "\n".join(lines[:limit]), len(lines) - limit


def truncation_marker(omitted_lines: int, omitted_files: int = 0) -> str:
    """Build the single-line notice appended to a capped document."""
    parts = [f"{omitted_lines} more lines omitted"]
    if omitted_files:
        noun = "file" if omitted_files == 1 else "files"
        parts.append(f"{omitted_files} {noun} skipped")
    return f"{TRUNCATION_PREFIX} {', '.join(parts)} ...]"


def has_truncation_marker(text: str) -> bool:
    for line in reversed(text.splitlines()):
        if line.strip():
            return line.startswith(TRUNCATION_PREFIX)
    return False


def is_title_line(line: str) -> bool:
    stripped = line.lstrip()
    return stripped.startswith("#") or stripped.lower().startswith("title:")


def iter_title_lines(text: str) -> Iterator[str]:
    """Yield heading and title lines, skipping lines inside code fences."""
    in_fence = False
    for line in text.splitlines():
        if line.lstrip().startswith("```"):
            in_fence = not in_fence
            continue
        if not in_fence and is_title_line(line):
            yield line


def extract_title(text: str) -> str:
    """Return the first heading or frontmatter title, without markup."""
    for line in iter_title_lines(text):
        stripped = line.strip()
        if stripped.lower().startswith("title:"):
            return stripped[len("title:") :].strip().strip("\"'")
        return stripped.lstrip("#").strip()
    return ""


def normalize_whitespace(lines: Iterable[str]) -> str:
    """Collapse whitespace and join lines."""
    return "\n".join(line.strip() for line in lines if line.strip())


def make_snippet(text: str, keywords: Iterable[str], *, width: int = 200) -> str:
    """Return the first line mentioning any keyword, trimmed to ``width``."""
    lowered = [k.lower() for k in keywords]
    for line in text.splitlines():
        candidate = line.lower()
        if any(keyword in candidate for keyword in lowered):
            snippet = " ".join(line.split())
            return snippet[:width]
    return normalize_whitespace(text.splitlines()[:1])[:width]
