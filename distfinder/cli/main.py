"""distfinder CLI - Main application entry point.

Commands
--------
    distfinder analyze INPUTS...   checksum distributions and write JSON indexes
    distfinder version             print the version
"""

from functools import wraps
from pathlib import Path
from typing import Any, Callable, List, Optional

import typer
from rich.table import Table

from distfinder import __version__
from distfinder.analysis.analyzer import DistributionAnalyzer
from distfinder.analysis.models import AnalysisResult
from distfinder.cache.sqlite import SQLiteCache
from distfinder.cli.console import ErrorRenderer, get_console, set_verbose_mode, tip
from distfinder.core.config import AnalyzerConfig
from distfinder.core.config_loaders import load_config
from distfinder.core.logging import configure_logging, get_logger
from distfinder.output.sink import JsonFileSink

logger = get_logger(__name__)


def safe_cli_command(
    operation_name: str,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator to wrap CLI commands with user-friendly error handling.

    Any exception is rendered as an error panel with its error code and
    fix suggestions, and the command exits with status 1.

    Args:
        operation_name: Human-readable operation name for error context
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except typer.Exit:
                raise
            except Exception as e:
                ErrorRenderer.render(
                    e,
                    context=f"While running {operation_name}",
                    show_traceback=kwargs.get("debug", False),
                )
                logger.error(f"[{operation_name}] {type(e).__name__}: {e}")
                raise typer.Exit(code=1)

        return wrapper

    return decorator


app = typer.Typer(
    name="distfinder",
    help="Find the builds that produced the files of a software distribution",
    add_completion=False,
    pretty_exceptions_enable=False,
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"distfinder {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """distfinder - trace distribution files back to their builds."""


def _build_config(
    config_file: Optional[Path],
    output_dir: Optional[Path],
    checksum_types: Optional[List[str]],
    disable_recursion: bool,
) -> AnalyzerConfig:
    """Load the config file and apply command line overrides on top."""
    config = load_config(config_file)
    data = config.to_dict()
    if checksum_types:
        data["checksum_types"] = checksum_types
    if disable_recursion:
        data["disable_recursion"] = True
    if output_dir is not None:
        data["output_directory"] = str(output_dir)
    return AnalyzerConfig.from_dict(data)


def _print_summary(result: AnalysisResult, sink: JsonFileSink) -> None:
    console = get_console()

    table = Table(title="Checksums")
    table.add_column("Algorithm", style="cyan")
    table.add_column("Checksums", justify="right")
    table.add_column("File")
    for checksum_type, index in result.checksums.items():
        table.add_row(str(checksum_type), str(len(index)), str(sink.checksum_file(checksum_type)))
    console.print(table)

    if result.file_errors:
        errors = Table(title="File errors", style="yellow")
        errors.add_column("File")
        errors.add_column("Error")
        for error in result.file_errors:
            errors.add_row(error.filename, error.message)
        console.print(errors)
        tip("Archives listed above were skipped; their siblings were still analyzed")


@app.command("analyze")
@safe_cli_command("analyze")
def analyze_command(
    inputs: List[str] = typer.Argument(..., help="Distribution files, directories or URLs"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory for the JSON output"),
    checksum_type: Optional[List[str]] = typer.Option(
        None, "--checksum-type", "-t", help="Checksum algorithm (repeatable): md5, sha1, sha256"
    ),
    disable_recursion: bool = typer.Option(
        False, "--disable-recursion", help="Only unwrap the top-level distribution archive"
    ),
    cache_db: Optional[Path] = typer.Option(None, "--cache-db", help="SQLite look-aside cache"),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging and tracebacks"),
) -> None:
    """Checksum every file in the given distributions."""
    if debug:
        configure_logging(level="DEBUG")
        set_verbose_mode(True)

    config = _build_config(config_file, output_dir, checksum_type, disable_recursion)
    cache = SQLiteCache(cache_db) if cache_db is not None else None

    result = DistributionAnalyzer(inputs, config, cache=cache).analyze()

    sink = JsonFileSink(config.output_directory)
    for algorithm, index in result.checksums.items():
        sink.checksums_completed(algorithm, index)

    _print_summary(result, sink)


@app.command("version")
def version_command() -> None:
    """Print the distfinder version."""
    typer.echo(f"distfinder {__version__}")


def cli_main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    cli_main()
