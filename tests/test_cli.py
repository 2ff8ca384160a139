"""Tests for CLI commands."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from doccorpus.cli import _parse_source_root, _setup_logging, app
from doccorpus.config import CONFIG_ENV_VAR, CORPUS_ENV_VAR


runner = CliRunner()


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        """Verbose mode sets DEBUG level."""
        with patch("doccorpus.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        """Normal mode sets INFO level."""
        with patch("doccorpus.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestParseSourceRoot:
    def test_valid(self, tmp_path: Path) -> None:
        root = _parse_source_root(f"{tmp_path}=docs")

        assert root.source == tmp_path.resolve()
        assert root.dest == "docs"

    @pytest.mark.parametrize("value", ["nodest", "=docs", "/src="])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(typer.BadParameter):
            _parse_source_root(value)


@pytest.fixture
def corpus_args(tmp_path: Path) -> list[str]:
    return ["--corpus", str(tmp_path / "corpus")]


@pytest.fixture
def rebuilt(sources: Path, corpus_args: list[str]) -> list[str]:
    result = runner.invoke(
        app,
        [
            "rebuild",
            *corpus_args,
            "--docs",
            f"{sources / 'site' / 'docs'}=docs",
            "--examples",
            str(sources / "examples"),
            "--changelogs",
            str(sources / "packages"),
        ],
    )
    assert result.exit_code == 0, result.stdout
    return corpus_args


class TestRebuildCommand:
    """Tests for the rebuild command."""

    def test_rebuild_reports_generation(self, sources: Path, corpus_args: list[str]) -> None:
        result = runner.invoke(
            app, ["rebuild", *corpus_args, "--docs", f"{sources / 'site' / 'docs'}=docs"]
        )

        assert result.exit_code == 0
        assert "Generation: 1" in result.stdout

    def test_rebuild_missing_root_warns(self, tmp_path: Path, corpus_args: list[str]) -> None:
        result = runner.invoke(
            app, ["rebuild", *corpus_args, "--docs", f"{tmp_path / 'missing'}=docs"]
        )

        assert result.exit_code == 0
        assert "warnings: 1" in result.stdout

    def test_rebuild_from_config_file(self, tmp_path: Path, sources: Path) -> None:
        config_file = tmp_path / "corpus.toml"
        config_file.write_text(
            f'[corpus]\nroot = "{tmp_path / "from-config"}"\n\n'
            f'[[docs]]\nsource = "{sources / "site" / "docs"}"\ndest = "docs"\n',
            encoding="utf-8",
        )

        result = runner.invoke(app, ["rebuild", "--config", str(config_file)])

        assert result.exit_code == 0
        assert (tmp_path / "from-config" / "CURRENT").read_text() == "1"

    def test_rebuild_missing_config(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["rebuild", "--config", str(tmp_path / "missing.toml")])

        assert result.exit_code != 0


class TestQueryCommands:
    """Tests for get, search and changelog commands."""

    def test_get_before_rebuild(self, corpus_args: list[str]) -> None:
        result = runner.invoke(app, ["get", "docs", *corpus_args])

        assert result.exit_code == 0
        assert "Corpus not built yet" in result.stdout

    def test_get_content(self, rebuilt: list[str]) -> None:
        result = runner.invoke(app, ["get", "docs/index.md", *rebuilt])

        assert result.exit_code == 0
        assert "Start here." in result.stdout

    def test_get_fallback_listing(self, rebuilt: list[str]) -> None:
        result = runner.invoke(app, ["get", "docs/agents/missing.mdx", *rebuilt])

        assert result.exit_code == 0
        assert "overview.mdx" in result.stdout
        assert "tools.mdx" in result.stdout

    def test_search(self, rebuilt: list[str]) -> None:
        result = runner.invoke(app, ["search", "steps", *rebuilt])

        assert result.exit_code == 0
        assert "intro.md" in result.stdout

    def test_search_no_matches(self, rebuilt: list[str]) -> None:
        result = runner.invoke(app, ["search", "zzzzzz", *rebuilt])

        assert "No matches found" in result.stdout

    def test_changelog(self, rebuilt: list[str]) -> None:
        result = runner.invoke(app, ["changelog", "@scope/pkg", *rebuilt])

        assert result.exit_code == 0
        assert "1.0.0" in result.stdout

    def test_changelog_missing(self, rebuilt: list[str]) -> None:
        result = runner.invoke(app, ["changelog", "nope", *rebuilt])

        assert result.exit_code == 1
        assert "No changelog" in result.stdout

    def test_changelogs(self, rebuilt: list[str]) -> None:
        result = runner.invoke(app, ["changelogs", *rebuilt])

        assert result.exit_code == 0
        assert "@scope/pkg" in result.stdout
        assert "plain" in result.stdout

    def test_changelogs_verbose(self, rebuilt: list[str]) -> None:
        with patch("doccorpus.cli._setup_logging") as setup:
            result = runner.invoke(app, ["changelogs", "--verbose", *rebuilt])

        assert result.exit_code == 0
        setup.assert_called_once_with(True)


class TestServeCommand:
    """Tests for the serve command."""

    def test_serve_passes_corpus_and_config(self, tmp_path: Path) -> None:
        """The web app picks up --corpus and --config through the environment."""
        config_file = tmp_path / "doccorpus.toml"
        config_file.write_text("", encoding="utf-8")

        with patch.dict(os.environ), patch("uvicorn.run") as mock_uvicorn_run:
            result = runner.invoke(
                app,
                [
                    "serve",
                    "--port",
                    "9000",
                    "--corpus",
                    str(tmp_path / "corpus"),
                    "--config",
                    str(config_file),
                    "--verbose",
                ],
            )
            corpus_env = os.environ.get(CORPUS_ENV_VAR)
            config_env = os.environ.get(CONFIG_ENV_VAR)

        assert result.exit_code == 0
        mock_uvicorn_run.assert_called_once()
        call_kwargs = mock_uvicorn_run.call_args[1]
        assert call_kwargs["port"] == 9000
        assert call_kwargs["log_level"] == "debug"
        assert corpus_env == str((tmp_path / "corpus").resolve())
        assert config_env == str(config_file.resolve())
