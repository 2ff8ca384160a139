"""Command line interface for doccorpus."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from doccorpus.config import CONFIG_ENV_VAR, CORPUS_ENV_VAR, AppConfig, SourceRoot, load_config
from doccorpus.errors import CorpusNotReady, CorpusRootError, PreparationError
from doccorpus.models import AnswerEntry, SearchResult
from doccorpus.prepare.pipeline import CorpusPipeline
from doccorpus.query.facade import QueryFacade

console = Console()
app = typer.Typer(help="doccorpus - prepared documentation corpus with lookup and search")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _parse_source_root(value: str) -> SourceRoot:
    source, sep, dest = value.rpartition("=")
    if not sep or not source or not dest:
        raise typer.BadParameter(f"Expected SOURCE=DEST, got {value!r}")
    return SourceRoot(source=Path(source).expanduser().resolve(), dest=dest)


def _build_config(config_path: Optional[Path], corpus: Optional[Path]) -> AppConfig:
    if config_path is not None:
        try:
            config = load_config(config_path)
        except FileNotFoundError as exc:
            raise typer.BadParameter(str(exc)) from exc
    else:
        config = AppConfig()
    if corpus is not None:
        config.corpus_root = corpus
    return config


def _open_facade(config: AppConfig) -> QueryFacade:
    try:
        pipeline = CorpusPipeline(config)
    except CorpusRootError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    return QueryFacade(pipeline, wait_timeout=0)


def _not_ready() -> None:
    console.print("[yellow]Corpus not built yet. Run 'doccorpus rebuild' first.[/yellow]")


ConfigOption = typer.Option(None, "--config", "-c", help="TOML configuration file")
CorpusOption = typer.Option(None, "--corpus", help="Corpus root directory")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Verbose logging")


@app.command()
def rebuild(
    config_path: Optional[Path] = ConfigOption,
    corpus: Optional[Path] = CorpusOption,
    docs: List[str] = typer.Option([], "--docs", help="Documentation tree as SOURCE=DEST"),
    examples: List[Path] = typer.Option([], "--examples", help="Directory of example dirs"),
    changelogs: List[Path] = typer.Option([], "--changelogs", help="Package directory to scan"),
    verbose: bool = VerboseOption,
) -> None:
    """Prepare and publish a new corpus generation."""
    _setup_logging(verbose)
    config = _build_config(config_path, corpus)
    config.doc_roots.extend(_parse_source_root(value) for value in docs)
    config.example_roots.extend(path.resolve() for path in examples)
    config.changelog_roots.extend(path.resolve() for path in changelogs)

    facade = _open_facade(config)
    console.print(f"Rebuilding corpus in [bold]{facade.pipeline.store.root}[/bold]...")
    try:
        result = facade.rebuild()
    except PreparationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        facade.pipeline.close()

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Source")
    table.add_column("Destination")
    table.add_column("Files")
    table.add_column("Status")
    for outcome in result.roots:
        status = "[green]ok[/green]" if outcome.ok else f"[red]{outcome.error}[/red]"
        table.add_row(str(outcome.root), outcome.dest, str(outcome.files), status)
    if result.roots:
        console.print(table)

    console.print(
        f"Generation: {result.generation}, examples: {result.examples}, "
        f"changelogs: {result.changelogs}, warnings: {len(result.warnings)}"
    )
    for warning in result.warnings:
        console.print(f"[yellow]{warning}[/yellow]")


def _print_entry(entry: AnswerEntry) -> None:
    if entry.kind == "content":
        suffix = " [yellow](truncated)[/yellow]" if entry.truncated else ""
        console.rule(f"{entry.path}{suffix}")
        console.print(entry.text, markup=False, highlight=False)
    elif entry.kind == "listing":
        if entry.status == "fallback":
            console.print(f"[yellow]Not found; nearest directory is {entry.path}[/yellow]")
        elif entry.status == "miss":
            console.print(f"[yellow]No corpus area for {entry.path}[/yellow]")
        for name in entry.dirs:
            console.print(f"  {name}/", markup=False)
        for name in entry.files:
            console.print(f"  {name}", markup=False)
    else:
        _print_results(entry.results)


def _print_results(results: List[SearchResult]) -> None:
    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Path")
    table.add_column("Snippet")
    for result in results:
        table.add_row(str(result.score), result.path, result.snippet[:180])
    console.print(table)


@app.command()
def get(
    paths: List[str] = typer.Argument(..., help="Logical corpus paths"),
    keyword: List[str] = typer.Option([], "--keyword", "-k", help="Search keyword"),
    config_path: Optional[Path] = ConfigOption,
    corpus: Optional[Path] = CorpusOption,
    verbose: bool = VerboseOption,
) -> None:
    """Fetch documents or listings by path."""
    _setup_logging(verbose)
    facade = _open_facade(_build_config(config_path, corpus))
    try:
        entries = facade.answer(paths, keyword)
    except CorpusNotReady:
        _not_ready()
        return
    for entry in entries:
        _print_entry(entry)


@app.command()
def search(
    keywords: List[str] = typer.Argument(..., help="Keywords to match"),
    scope: Optional[str] = typer.Option(None, help="Limit search to a corpus directory"),
    config_path: Optional[Path] = ConfigOption,
    corpus: Optional[Path] = CorpusOption,
    verbose: bool = VerboseOption,
) -> None:
    """Rank corpus documents by keyword relevance."""
    _setup_logging(verbose)
    facade = _open_facade(_build_config(config_path, corpus))
    try:
        results = facade.search(keywords, scope=scope)
    except CorpusNotReady:
        _not_ready()
        return
    _print_results(results)


@app.command()
def changelog(
    package_name: str = typer.Argument(..., help="Package name, e.g. @scope/pkg"),
    config_path: Optional[Path] = ConfigOption,
    corpus: Optional[Path] = CorpusOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show the changelog of a package."""
    _setup_logging(verbose)
    facade = _open_facade(_build_config(config_path, corpus))
    try:
        document = facade.get_changelog(package_name)
    except CorpusNotReady:
        _not_ready()
        return
    if document is None:
        console.print(f"[yellow]No changelog for {package_name}.[/yellow]")
        raise typer.Exit(code=1)
    console.print(document.content, markup=False, highlight=False)


@app.command()
def changelogs(
    config_path: Optional[Path] = ConfigOption,
    corpus: Optional[Path] = CorpusOption,
    verbose: bool = VerboseOption,
) -> None:
    """List packages with a changelog."""
    _setup_logging(verbose)
    facade = _open_facade(_build_config(config_path, corpus))
    try:
        names = facade.list_changelogs()
    except CorpusNotReady:
        _not_ready()
        return
    for name in names:
        console.print(name, markup=False)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
    config_path: Optional[Path] = ConfigOption,
    corpus: Optional[Path] = CorpusOption,
    verbose: bool = VerboseOption,
) -> None:
    """Start the HTTP tool server."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    if config_path is not None:
        os.environ[CONFIG_ENV_VAR] = str(config_path.resolve())
    if corpus is not None:
        os.environ[CORPUS_ENV_VAR] = str(corpus.resolve())

    from doccorpus.web.app import app as web_app

    console.print(f"Starting tool server on http://{host}:{port}")
    log_level = "debug" if verbose else "info"
    uvicorn.run(web_app, host=host, port=port, reload=False, log_level=log_level)
