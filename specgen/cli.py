from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .config import AppConfig
from .errors import GenerationFailed
from .gherkin.writer import to_gherkin
from .models import GenerationWarning
from .pipeline import build_from_targets, generate as run_generate


app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


def _load_config(suffix: Optional[str], log_level: Optional[str]) -> AppConfig:
    load_dotenv(override=False)
    config = AppConfig()
    if suffix:
        config.output_suffix = suffix
    if log_level:
        config.log_level = log_level
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    return config


def _print_warnings(warnings: List[GenerationWarning]) -> None:
    if not warnings:
        return
    console.print(f"[yellow]{len(warnings)} warning(s)[/yellow]")
    for warning in warnings:
        console.print(f"  [yellow]{warning.kind.value}[/yellow] {escape(warning.message)}", highlight=False)


@app.command()
def generate(
    module: str = typer.Argument(..., help="Test module: dotted name, .py file or directory"),
    out_dir: str = typer.Argument(..., help="Directory to write specification documents"),
    suffix: Optional[str] = typer.Option(None, help="File suffix for generated documents (default .spec)"),
    log_level: Optional[str] = typer.Option(None, help="Logging level"),
):
    """Generate one Gherkin specification document per Feature."""
    cfg = _load_config(suffix, log_level)
    out_path = Path(out_dir).resolve()

    def _progress(i, total, feat):
        pct = int(i * 100 / max(1, total))
        console.print(f"[dim]Writing:[/dim] {i}/{total} ({pct}%) - {escape(feat.name)}")

    try:
        result = run_generate(module, out_path, config=cfg, progress_callback=_progress)
    except GenerationFailed as e:
        _print_warnings(e.warnings)
        console.print(f"[red]Generation failed:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    table = Table(title="Generated Specifications")
    table.add_column("Feature")
    table.add_column("Scenarios")
    table.add_column("File")
    scenarios = {feat.name: len(feat.scenarios) for feat in result.document.features}
    for unit in result.written:
        table.add_row(escape(unit.feature), str(scenarios.get(unit.feature, 0)), escape(unit.location))
    console.print(table)

    _print_warnings(result.warnings)
    console.print(f"Wrote [bold]{len(result.written)}[/bold] feature files to {out_path}")


@app.command()
def preview(
    module: str = typer.Argument(..., help="Test module: dotted name, .py file or directory"),
    log_level: Optional[str] = typer.Option(None, help="Logging level"),
):
    """Print the specification documents without writing any files."""
    cfg = _load_config(None, log_level)
    try:
        document, warnings = build_from_targets(module, config=cfg)
    except GenerationFailed as e:
        _print_warnings(e.warnings)
        console.print(f"[red]Generation failed:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)

    for feat in document.features:
        console.print(to_gherkin(feat), markup=False, highlight=False)
    _print_warnings(warnings)


if __name__ == "__main__":  # pragma: no cover
    app()
