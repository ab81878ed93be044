#!/usr/bin/env python3
"""
Score Reader: sheet music photo to ABC notation
Main CLI entry point.
"""

import asyncio
import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

import config
from config import validate_config, MAX_DIMENSION, CONTRAST_FACTOR, ENHANCE_CONTRAST
from score_reader import (
    ConditioningOptions,
    ScoreReaderError,
    build_engine,
    quick_quality_check,
    read_sheet_music,
    repair_abc,
)
from score_reader.conditioning import condition_image

app = typer.Typer(
    name="score-reader",
    help="Transcribe photographed or scanned sheet music to ABC notation with a vision LLM.",
    add_completion=False,
)
console = Console()


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _quality_table(quality: dict) -> Table:
    """Format a quality report dict as a two-column table."""
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Metric", style="dim")
    table.add_column("Value", justify="right")

    def score_color(score: float) -> str:
        if score >= 0.25:
            return "green"
        elif score >= 0.10:
            return "yellow"
        return "red"

    table.add_row("Size", f"{quality['width']}x{quality['height']}px")
    table.add_row("Contrast", f"[{score_color(quality['contrast_score'])}]{quality['contrast_score']:.3f}[/]")
    table.add_row("Sharpness", f"[{score_color(quality['sharpness_score'])}]{quality['sharpness_score']:.3f}[/]")
    table.add_row("Acceptable", "[green]✓ yes[/]" if quality["is_acceptable"] else "[red]✗ no[/]")
    return table


def _print_diagnostics(warnings: list[str], suggestions: list[str]):
    for warning in warnings:
        console.print(f"  [yellow]⚠ {warning}[/]")
    for suggestion in suggestions:
        console.print(f"  [dim]• {suggestion}[/]")


@app.command()
def transcribe(
    image_path: Path = typer.Argument(
        ...,
        help="Path to the sheet music photo or scan",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    output: Path = typer.Option(
        None,
        "--output", "-o",
        help="Write the ABC notation to this file (default: ./output/<image_name>.abc)",
    ),
    max_dimension: int = typer.Option(
        MAX_DIMENSION,
        "--max-dimension", "-m",
        help="Long-edge pixel cap before recognition",
        min=64,
    ),
    enhance: bool = typer.Option(
        ENHANCE_CONTRAST,
        "--enhance/--no-enhance",
        help="Stretch contrast on low-contrast images",
    ),
    contrast_factor: float = typer.Option(
        CONTRAST_FACTOR,
        "--contrast-factor", "-f",
        help="Contrast gain (1.0 = no change)",
        min=0.1,
        max=2.0,
    ),
    backend: str = typer.Option(
        None,
        "--backend", "-b",
        help="Recognition backend: 'gemini' or 'openai' (default from .env)",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the result as JSON instead of a formatted report",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose/--quiet", "-v/-q",
        help="Show detailed progress",
    ),
):
    """
    Transcribe a sheet music image to ABC notation.

    The image is resized and contrast-enhanced, then read in two passes
    (transcribe, verify) with one extra pass if required headers or notes
    are still missing.
    """
    _setup_logging(verbose)

    config_status = validate_config()
    if backend is None and not config_status["valid"]:
        console.print("[bold red]Configuration Error:[/]")
        for issue in config_status["issues"]:
            console.print(f"  • {issue}")
        console.print("\n[dim]Please check your .env file.[/]")
        raise typer.Exit(1)

    options = ConditioningOptions(
        max_dimension=max_dimension,
        enhance_contrast=enhance,
        contrast_factor=contrast_factor,
    )

    try:
        engine = build_engine(backend)
        with console.status("[bold green]Reading sheet music..."):
            reading = asyncio.run(read_sheet_music(image_path.read_bytes(), engine, options))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/]")
        raise typer.Exit(130)
    except ScoreReaderError as e:
        logging.getLogger(__name__).debug("Transcription failed: %s", e)
        console.print(f"\n[bold red]Error:[/] {e.user_message}")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"\n[bold red]Error:[/] {e}")
        raise typer.Exit(1)

    if as_json:
        result = reading.to_dict()
        result["usage"] = reading.session.usage.to_dict()
        console.print_json(json.dumps(result))
    else:
        console.print(Panel(reading.text, title="[bold]ABC Notation[/]", expand=False))
        console.print(
            f"[dim]Passes:[/] {reading.session.passes}"
            f"{' [yellow](retried)[/]' if reading.session.retried else ''}"
            f"  [dim]Tokens:[/] {reading.session.usage.total_tokens:,}"
            f"  [dim]Cost:[/] ${reading.session.usage.total_cost:.4f}"
        )
        for step in reading.conditioning.steps_applied:
            console.print(f"  [green]✓[/] {step}")
        for fix in reading.session.fixes:
            console.print(f"  [cyan]→[/] {fix}")
        _print_diagnostics(reading.conditioning.quality.warnings, reading.conditioning.quality.suggestions)

    output_path = output or config.OUTPUT_DIR / f"{image_path.stem}.abc"
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(reading.text + "\n", encoding="utf-8")
    console.print(f"\n[dim]Output saved to:[/] {output_path}")


@app.command()
def assess(
    image_path: Path = typer.Argument(
        ...,
        help="Path to the sheet music photo or scan",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    quick: bool = typer.Option(
        False,
        "--quick",
        help="Score a downsampled copy instead of running the full conditioning",
    ),
):
    """
    Report image quality without calling the recognition engine.
    """
    _setup_logging(False)

    try:
        if quick:
            quality = quick_quality_check(image_path.read_bytes())
            steps = []
        else:
            result = condition_image(image_path.read_bytes())
            quality = result.quality
            steps = result.steps_applied
    except ScoreReaderError as e:
        console.print(f"[bold red]Error:[/] {e.user_message}")
        raise typer.Exit(1)

    console.print(Panel.fit(_quality_table(quality.to_dict()), title="Image Quality"))
    for step in steps:
        console.print(f"  [green]✓[/] {step}")
    _print_diagnostics(quality.warnings, quality.suggestions)

    if not quality.is_acceptable:
        raise typer.Exit(2)


@app.command()
def repair(
    abc_path: Path = typer.Argument(
        ...,
        help="Path to an ABC notation file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    in_place: bool = typer.Option(
        False,
        "--in-place", "-i",
        help="Overwrite the file with the repaired notation",
    ),
):
    """
    Repair structural defects (missing headers, unclosed brackets) in an ABC file.
    """
    result = repair_abc(abc_path.read_text(encoding="utf-8"))

    if in_place:
        abc_path.write_text(result.text + "\n", encoding="utf-8")
    else:
        typer.echo(result.text)

    if result.fixes:
        console.print(f"\n[bold]{len(result.fixes)} fix(es) applied:[/]")
        for fix in result.fixes:
            console.print(f"  [cyan]→[/] {fix}")
    else:
        console.print("\n[green]✓ No structural problems found[/]")


@app.command()
def check():
    """
    Check configuration and dependencies.
    """
    console.print("[bold]Checking Score Reader Configuration...[/]\n")

    config_status = validate_config()

    if config_status["valid"]:
        console.print(f"[green]✓[/] Backend '{config_status['config']['backend']}' configured "
                      f"({config_status['config']['model']})")
    else:
        console.print("[red]✗[/] Configuration issues:")
        for issue in config_status["issues"]:
            console.print(f"    • {issue}")

    console.print("\n[bold]Dependencies:[/]")

    dependencies = [
        ("google-generativeai", "google.generativeai"),
        ("openai", "openai"),
        ("Pillow", "PIL"),
        ("numpy", "numpy"),
        ("rich", "rich"),
        ("typer", "typer"),
    ]

    all_ok = True
    for name, import_name in dependencies:
        try:
            __import__(import_name)
            console.print(f"  [green]✓[/] {name}")
        except ImportError:
            console.print(f"  [red]✗[/] {name} - not installed")
            all_ok = False

    if all_ok and config_status["valid"]:
        console.print("\n[bold green]All checks passed! Ready to read sheet music.[/]")
    else:
        console.print("\n[yellow]Some issues need attention.[/]")
        raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    console.print("[bold]Score Reader[/] - sheet music to ABC notation")
    console.print("[dim]Version 0.1.0[/]")


if __name__ == "__main__":
    app()
