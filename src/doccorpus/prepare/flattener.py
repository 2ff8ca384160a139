"""Collapse example directories into single size-capped documents."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from doccorpus.models import FlattenedExample, Section
from doccorpus.utils.files import iter_files
from doccorpus.utils.text import truncation_marker

LOGGER = logging.getLogger(__name__)

MANIFEST_NAMES = ("package.json", "pyproject.toml")

EXAMPLE_EXTENSIONS = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "jsx",
    ".mjs": "javascript",
    ".py": "python",
    ".json": "json",
    ".toml": "toml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".md": "markdown",
    ".mdx": "mdx",
}

LOCK_FILES = frozenset(
    {"package-lock.json", "pnpm-lock.yaml", "yarn.lock", "poetry.lock", "uv.lock"}
)

EMPTY_EXAMPLE_NOTE = "_This example directory contains no source files._"


def ordered_example_files(example_dir: Path) -> List[Tuple[str, Path]]:
    """Return ``(label, path)`` pairs: manifest first, then ascending path order."""
    manifest = next(
        (example_dir / name for name in MANIFEST_NAMES if (example_dir / name).is_file()),
        None,
    )
    ordered: List[Tuple[str, Path]] = []
    if manifest is not None:
        ordered.append((manifest.name, manifest))
    for path in iter_files(example_dir, suffixes=EXAMPLE_EXTENSIONS):
        if path == manifest or path.name in LOCK_FILES:
            continue
        ordered.append((path.relative_to(example_dir).as_posix(), path))
    return ordered


def flatten(example_dir: Path, *, line_limit: int = 1000) -> FlattenedExample:
    """Flatten one example directory.

    Files are appended verbatim as labeled sections while a running line
    count stays under ``line_limit``. The file that crosses the limit is cut
    at the limit; later files are omitted entirely and counted.
    """
    example = FlattenedExample(name=example_dir.name)
    used = 0
    for label, path in ordered_example_files(example_dir):
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            LOGGER.warning("Unable to read %s: %s", path, exc)
            continue
        lines = text.splitlines()

        if used >= line_limit:
            example.omitted_lines += len(lines)
            example.omitted_files += 1
            continue

        remaining = line_limit - used
        if len(lines) > remaining:
            example.sections.append(Section(label=label, content="\n".join(lines[:remaining])))
            example.omitted_lines += len(lines) - remaining
            used = line_limit
        else:
            example.sections.append(Section(label=label, content=text))
            used += len(lines)

    example.truncated = bool(example.omitted_lines or example.omitted_files)
    if example.truncated:
        LOGGER.debug(
            "Truncated example %s: %s lines, %s files omitted",
            example.name,
            example.omitted_lines,
            example.omitted_files,
        )
    return example


def render_example(example: FlattenedExample) -> str:
    parts = [f"# Example: {example.name}", ""]
    if not example.sections:
        parts.extend([EMPTY_EXAMPLE_NOTE, ""])
        return "\n".join(parts)

    for section in example.sections:
        language = EXAMPLE_EXTENSIONS.get(Path(section.label).suffix.lower(), "")
        parts.append(f"### {section.label}")
        parts.append(f"```{language}")
        parts.append(section.content.rstrip("\n"))
        parts.append("```")
        parts.append("")

    if example.truncated:
        parts.append(truncation_marker(example.omitted_lines, example.omitted_files))
        parts.append("")
    return "\n".join(parts)


def iter_example_dirs(roots: Iterable[Path]) -> Iterable[Path]:
    for root in roots:
        if not root.is_dir():
            LOGGER.warning("Example root not found: %s", root)
            continue
        for child in sorted(root.iterdir()):
            if child.is_dir() and not child.name.startswith("."):
                yield child


class ExampleFlattener:
    """Writes one flattened document per example directory."""

    def __init__(self, dest_dir: Path, *, line_limit: int = 1000) -> None:
        self.dest_dir = Path(dest_dir)
        self.line_limit = line_limit

    def flatten_all(self, roots: Sequence[Path]) -> Tuple[List[FlattenedExample], List[str]]:
        self.dest_dir.mkdir(parents=True, exist_ok=True)
        produced: List[FlattenedExample] = []
        warnings: List[str] = []
        seen: set[str] = set()
        for example_dir in iter_example_dirs(roots):
            if example_dir.name in seen:
                message = f"Duplicate example name {example_dir.name!r} ignored: {example_dir}"
                LOGGER.warning(message)
                warnings.append(message)
                continue
            seen.add(example_dir.name)

            example = flatten(example_dir, line_limit=self.line_limit)
            target = self.dest_dir / f"{example.name}.md"
            target.write_text(render_example(example), encoding="utf-8")
            produced.append(example)
        LOGGER.info("Flattened %s examples into %s", len(produced), self.dest_dir)
        return produced, warnings
