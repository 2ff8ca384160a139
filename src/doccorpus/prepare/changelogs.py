"""Aggregate per-package changelogs into name-encoded documents."""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from doccorpus.models import ChangelogEntry
from doccorpus.utils.naming import changelog_filename
from doccorpus.utils.text import truncate_lines, truncation_marker

LOGGER = logging.getLogger(__name__)

CHANGELOG_NAMES = ("CHANGELOG.md", "changelog.md", "CHANGES.md")


def read_package_name(package_dir: Path) -> Optional[str]:
    """Return the name declared by ``package.json`` or ``pyproject.toml``."""
    package_json = package_dir / "package.json"
    if package_json.is_file():
        try:
            name = json.loads(package_json.read_text(encoding="utf-8")).get("name")
        except (OSError, ValueError, AttributeError) as exc:
            LOGGER.warning("Unreadable manifest %s: %s", package_json, exc)
            return None
        return name if isinstance(name, str) and name else None

    pyproject = package_dir / "pyproject.toml"
    if pyproject.is_file():
        try:
            with pyproject.open("rb") as handle:
                project = tomllib.load(handle).get("project")
        except (OSError, tomllib.TOMLDecodeError) as exc:
            LOGGER.warning("Unreadable manifest %s: %s", pyproject, exc)
            return None
        if not isinstance(project, dict):
            LOGGER.warning("No [project] table in %s", pyproject)
            return None
        name = project.get("name")
        return name if isinstance(name, str) and name else None
    return None


def _has_manifest(directory: Path) -> bool:
    return (directory / "package.json").is_file() or (directory / "pyproject.toml").is_file()


def iter_package_dirs(scan_root: Path) -> Iterator[Path]:
    """A scan root is a package itself or a directory of packages."""
    if not scan_root.is_dir():
        LOGGER.warning("Changelog root not found: %s", scan_root)
        return
    if _has_manifest(scan_root):
        yield scan_root
        return
    for child in sorted(scan_root.iterdir()):
        if child.is_dir() and _has_manifest(child):
            yield child


def find_changelog(package_dir: Path) -> Optional[Path]:
    for name in CHANGELOG_NAMES:
        candidate = package_dir / name
        if candidate.is_file():
            return candidate
    return None


class ChangelogAggregator:
    """Builds one capped changelog document per distinct package name.

    The first package seen under a name wins; later packages declaring the
    same name are dropped with a warning.
    """

    def __init__(self, *, line_limit: int = 300) -> None:
        self.line_limit = line_limit
        self.warnings: List[str] = []

    def _warn(self, message: str) -> None:
        LOGGER.warning(message)
        self.warnings.append(message)

    def aggregate(self, scan_roots: Sequence[Path]) -> Dict[str, ChangelogEntry]:
        self.warnings = []
        entries: Dict[str, ChangelogEntry] = {}
        seen: Dict[str, Path] = {}
        for root in scan_roots:
            for package_dir in iter_package_dirs(root):
                name = read_package_name(package_dir)
                if name is None:
                    self._warn(f"No package name declared in {package_dir}")
                    continue
                if name in seen:
                    self._warn(
                        f"Duplicate package name {name!r}: keeping "
                        f"{seen[name]}, ignoring {package_dir}"
                    )
                    continue
                seen[name] = package_dir
                entry = self._build_entry(name, package_dir)
                if entry is not None:
                    entries[name] = entry
        return entries

    def _build_entry(self, name: str, package_dir: Path) -> Optional[ChangelogEntry]:
        changelog = find_changelog(package_dir)
        if changelog is None:
            LOGGER.debug("No changelog in %s", package_dir)
            return None
        try:
            text = changelog.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            self._warn(f"Unable to read {changelog}: {exc}")
            return None

        kept, omitted = truncate_lines(text, self.line_limit)
        if omitted:
            kept = kept.rstrip("\n") + "\n\n" + truncation_marker(omitted) + "\n"
        return ChangelogEntry(
            package_name=name,
            filename=changelog_filename(name),
            content=kept,
            truncated=bool(omitted),
            omitted_lines=omitted,
            source=package_dir,
        )

    def write(self, entries: Dict[str, ChangelogEntry], dest_dir: Path) -> int:
        dest_dir.mkdir(parents=True, exist_ok=True)
        for entry in entries.values():
            (dest_dir / entry.filename).write_text(entry.content, encoding="utf-8")
        LOGGER.info("Wrote %s changelogs into %s", len(entries), dest_dir)
        return len(entries)
