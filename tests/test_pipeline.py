"""Tests for CorpusPipeline."""

from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import write
from doccorpus.config import AppConfig, SourceRoot
from doccorpus.errors import CorpusNotReady, PreparationError
from doccorpus.prepare.pipeline import CorpusPipeline, PipelineState


class TestCorpusPipeline:
    """Test rebuild, publication and state transitions."""

    def test_starts_empty(self, pipeline: CorpusPipeline) -> None:
        assert pipeline.state is PipelineState.EMPTY
        assert pipeline.snapshot is None

    def test_wait_without_generation(self, pipeline: CorpusPipeline) -> None:
        with pytest.raises(CorpusNotReady):
            pipeline.wait_for_snapshot(timeout=0)

    def test_published_flag_without_snapshot(self, pipeline: CorpusPipeline) -> None:
        pipeline._published.set()

        with pytest.raises(CorpusNotReady):
            pipeline.wait_for_snapshot(timeout=0)

    def test_rebuild_publishes_all_partitions(self, pipeline: CorpusPipeline) -> None:
        """A rebuild fills raw and organized and becomes Ready."""
        result = pipeline.rebuild()

        assert result.generation == 1
        assert [outcome.ok for outcome in result.roots] == [True]
        assert result.examples == 2
        assert result.changelogs == 2
        assert result.warnings == []
        assert pipeline.state is PipelineState.READY

        snapshot = pipeline.wait_for_snapshot(timeout=0)
        assert (snapshot.raw / "docs" / "agents" / "overview.mdx").is_file()
        assert (snapshot.organized / "examples" / "weather.md").is_file()
        assert (snapshot.organized / "changelogs" / "%40scope%2Fpkg.md").is_file()

    def test_second_rebuild_new_generation(self, built: CorpusPipeline) -> None:
        first = built.snapshot

        result = built.rebuild()

        assert result.generation == 2
        assert built.snapshot.generation == 2
        # The captured first snapshot is untouched by the new generation.
        assert first.generation == 1
        assert (first.raw / "docs" / "index.md").is_file()

    def test_loads_existing_generation(self, built: CorpusPipeline, config: AppConfig) -> None:
        """A new pipeline over the same root is Ready immediately."""
        reopened = CorpusPipeline(config)
        try:
            assert reopened.state is PipelineState.READY
            assert reopened.snapshot.generation == built.snapshot.generation
        finally:
            reopened.close()

    def test_failed_rebuild_keeps_previous(self, built: CorpusPipeline) -> None:
        """A failing phase discards the attempt and keeps the old generation."""
        with patch(
            "doccorpus.prepare.pipeline.ExampleFlattener.flatten_all",
            side_effect=RuntimeError("boom"),
        ):
            with pytest.raises(PreparationError):
                built.rebuild()

        assert built.state is PipelineState.READY
        assert built.snapshot.generation == 1
        assert built.store.published_generations() == [1]

    def test_failed_first_rebuild_stays_empty(self, pipeline: CorpusPipeline) -> None:
        with patch(
            "doccorpus.prepare.pipeline.SourceCollector.collect",
            side_effect=RuntimeError("boom"),
        ):
            with pytest.raises(PreparationError):
                pipeline.rebuild()

        assert pipeline.state is PipelineState.EMPTY

    def test_missing_root_degrades_gracefully(self, config: AppConfig, tmp_path: Path) -> None:
        """An unavailable source root is a warning, not a failed rebuild."""
        config.doc_roots.append(SourceRoot(tmp_path / "missing", "course"))
        pipeline = CorpusPipeline(config)
        try:
            result = pipeline.rebuild()
        finally:
            pipeline.close()

        assert [outcome.ok for outcome in result.roots] == [True, False]
        assert len(result.warnings) == 1

    def test_malformed_manifest_degrades_gracefully(
        self, config: AppConfig, tmp_path: Path
    ) -> None:
        """A manifest with a non-table project section is skipped, not fatal."""
        write(tmp_path / "extra" / "bad" / "pyproject.toml", 'project = "oops"\n')
        write(tmp_path / "extra" / "bad" / "CHANGELOG.md", "# bad\n")
        config.changelog_roots.append(tmp_path / "extra")
        pipeline = CorpusPipeline(config)
        try:
            result = pipeline.rebuild()
        finally:
            pipeline.close()

        assert result.generation == 1
        assert result.changelogs == 2
        assert any("No package name declared" in w for w in result.warnings)

    def test_failed_root_keeps_previous_content(self, config: AppConfig, tmp_path: Path) -> None:
        """A root that disappears keeps its last good copy in the next generation."""
        course = tmp_path / "course"
        write(course / "lesson.md", "# Lesson 1\n")
        config.doc_roots.append(SourceRoot(course, "course"))
        pipeline = CorpusPipeline(config)
        try:
            pipeline.rebuild()
            (course / "lesson.md").unlink()
            course.rmdir()
            result = pipeline.rebuild()
            snapshot = pipeline.snapshot
        finally:
            pipeline.close()

        assert result.roots[1].ok is False
        assert (snapshot.raw / "course" / "lesson.md").read_text() == "# Lesson 1\n"

    def test_concurrent_rebuilds_coalesce(self, pipeline: CorpusPipeline) -> None:
        """A rebuild requested while one is running joins it."""
        release = threading.Event()
        started = threading.Event()
        original = pipeline._run_phases

        def slow_phases(*args, **kwargs):
            started.set()
            assert release.wait(timeout=10)
            return original(*args, **kwargs)

        with patch.object(pipeline, "_run_phases", side_effect=slow_phases):
            first = pipeline.request_rebuild()
            assert started.wait(timeout=10)
            assert pipeline.state is PipelineState.PREPARING
            second = pipeline.request_rebuild()
            release.set()
            first_result = first.result(timeout=10)
            second_result = second.result(timeout=10)

        assert first is second
        assert first_result is second_result
        assert first_result.generation == 1
        assert pipeline.store.published_generations() == [1]

    def test_publish_callbacks(self, pipeline: CorpusPipeline) -> None:
        seen = []
        pipeline.on_publish(lambda snapshot: seen.append(snapshot.generation))

        pipeline.rebuild()
        pipeline.rebuild()

        assert seen == [1, 2]
