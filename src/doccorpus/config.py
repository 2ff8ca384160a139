"""Application configuration defaults."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_ENV_VAR = "DOCCORPUS_CONFIG"
CORPUS_ENV_VAR = "DOCCORPUS_CORPUS"


def _get_default_corpus_root() -> Path:
    """Get the default corpus root, preferring a local ``data/`` checkout."""
    local_root = Path("data/corpus")
    if local_root.exists():
        return local_root

    return Path.home() / ".local" / "share" / "doccorpus" / "corpus"


@dataclass(frozen=True, slots=True)
class SourceRoot:
    """A documentation tree copied verbatim into ``raw/<dest>``."""

    source: Path
    dest: str


@dataclass(slots=True)
class AppConfig:
    corpus_root: Path | None = None
    doc_roots: list[SourceRoot] = field(default_factory=list)
    example_roots: list[Path] = field(default_factory=list)
    changelog_roots: list[Path] = field(default_factory=list)
    example_line_limit: int = 1000
    changelog_line_limit: int = 300
    search_limit: int = 10
    keep_generations: int = 2

    def __post_init__(self) -> None:
        if self.corpus_root is None:
            self.corpus_root = _get_default_corpus_root()

    def resolve_corpus_root(self, base_dir: Path | None = None) -> Path:
        if self.corpus_root is None:
            self.corpus_root = _get_default_corpus_root()
        if Path(self.corpus_root).is_absolute() or base_dir is None:
            return Path(self.corpus_root)
        return base_dir / self.corpus_root


def _resolve(base_dir: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else base_dir / path


def load_config(path: Path) -> AppConfig:
    """Load an :class:`AppConfig` from a TOML file.

    Relative paths inside the file are resolved against the file's directory::

        [corpus]
        root = "data/corpus"

        [[docs]]
        source = "../site/docs"
        dest = "docs"

        [examples]
        roots = ["../examples"]

        [changelogs]
        roots = ["../packages"]

        [limits]
        example_lines = 1000
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("rb") as handle:
        data: dict[str, Any] = tomllib.load(handle)

    base_dir = path.parent.resolve()
    corpus = data.get("corpus", {})
    limits = data.get("limits", {})
    defaults = AppConfig(corpus_root=Path("."))

    return AppConfig(
        corpus_root=_resolve(base_dir, corpus["root"]) if "root" in corpus else None,
        doc_roots=[
            SourceRoot(source=_resolve(base_dir, item["source"]), dest=item["dest"])
            for item in data.get("docs", [])
        ],
        example_roots=[_resolve(base_dir, p) for p in data.get("examples", {}).get("roots", [])],
        changelog_roots=[
            _resolve(base_dir, p) for p in data.get("changelogs", {}).get("roots", [])
        ],
        example_line_limit=int(limits.get("example_lines", defaults.example_line_limit)),
        changelog_line_limit=int(limits.get("changelog_lines", defaults.changelog_line_limit)),
        search_limit=int(limits.get("search_results", defaults.search_limit)),
        keep_generations=int(corpus.get("keep_generations", defaults.keep_generations)),
    )


def config_from_env() -> AppConfig:
    """Load the config named by ``DOCCORPUS_CONFIG``, or fall back to defaults.

    ``DOCCORPUS_CORPUS`` overrides the corpus root either way.
    """
    value = os.environ.get(CONFIG_ENV_VAR)
    config = load_config(Path(value)) if value else AppConfig()
    corpus = os.environ.get(CORPUS_ENV_VAR)
    if corpus:
        config.corpus_root = Path(corpus)
    return config
