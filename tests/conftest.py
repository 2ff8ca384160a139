"""Shared fixtures building small source trees and corpora."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from doccorpus.config import AppConfig, SourceRoot
from doccorpus.prepare.pipeline import CorpusPipeline


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def make_package(directory: Path, name: str, changelog: str) -> Path:
    write(directory / "package.json", json.dumps({"name": name, "version": "1.0.0"}))
    write(directory / "CHANGELOG.md", changelog)
    return directory


@pytest.fixture
def sources(tmp_path: Path) -> Path:
    """Create documentation, example and package trees under ``tmp_path/src``."""
    root = tmp_path / "src"
    docs = root / "site" / "docs"
    write(docs / "index.md", "# Welcome\nStart here.\n")
    write(docs / "agents" / "overview.mdx", "# Agents overview\nAgents call tools.\n")
    write(docs / "agents" / "tools.mdx", "# Tools\nA tool is a function an agent can call.\n")
    write(docs / "workflows" / "intro.md", "# Workflows\nSteps run in order.\n")
    write(docs / "agents" / "diagram.png", "not markdown")
    write(docs / "node_modules" / "dep" / "README.md", "# ignored\n")

    examples = root / "examples"
    write(examples / "weather" / "package.json", '{\n  "name": "weather"\n}\n')
    write(examples / "weather" / "src" / "index.ts", "export const city = 'Paris';\n")
    write(examples / "weather" / "README.md", "# Weather agent\n")
    (examples / "empty").mkdir(parents=True)

    packages = root / "packages"
    make_package(packages / "core", "@scope/pkg", "# Changelog\n\n## 1.0.0\n- first\n")
    make_package(packages / "plain", "plain", "# Changelog\n\n## 0.1.0\n- init\n")
    return root


@pytest.fixture
def config(tmp_path: Path, sources: Path) -> AppConfig:
    return AppConfig(
        corpus_root=tmp_path / "corpus",
        doc_roots=[SourceRoot(source=sources / "site" / "docs", dest="docs")],
        example_roots=[sources / "examples"],
        changelog_roots=[sources / "packages"],
    )


@pytest.fixture
def pipeline(config: AppConfig):
    pipeline = CorpusPipeline(config)
    yield pipeline
    pipeline.close()


@pytest.fixture
def built(pipeline: CorpusPipeline) -> CorpusPipeline:
    pipeline.rebuild()
    return pipeline
