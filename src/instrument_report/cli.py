"""``instrument-report`` command line entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.markup import escape

from .converter import Converter, read_input
from .errors import ReportError
from .settings import ReportSettings, get_settings
from .ux import configure_logging, print_error, print_info, print_success, print_warning

USAGE = "usage: instrument-report <filename>"

app = typer.Typer(
    help="Convert raw Android instrumentation output into a JUnit XML report.",
    add_completion=False,
)


@app.command()
def convert(
    input_path: Optional[Path] = typer.Argument(
        None, help="Instrumentation log; the report is written next to it as <name>.xml"
    ),
    stylesheet: Optional[str] = typer.Option(
        None, "--stylesheet", help="Stylesheet referenced by the report's xml-stylesheet instruction"
    ),
    include_output: Optional[bool] = typer.Option(
        None,
        "--include-output/--no-include-output",
        help="Embed the instrumentation result stream as system-out",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Convert INPUT_PATH into <suite>.xml in the same directory.

    Examples:
        instrument-report results/MyTests.txt
        instrument-report results/MyTests.txt --stylesheet junit-noframes.xsl
    """
    if input_path is None:
        typer.echo(USAGE)
        raise typer.Exit(0)

    settings = get_settings()
    overrides = {}
    if stylesheet is not None:
        overrides["stylesheet"] = stylesheet
    if include_output is not None:
        overrides["include_run_output"] = include_output
    if overrides:
        try:
            settings = ReportSettings(**{**settings.model_dump(), **overrides})
        except ValidationError as exc:
            print_error(f"Invalid option: {escape(exc.errors()[0]['msg'])}")
            raise typer.Exit(1) from exc
    configure_logging("DEBUG" if verbose else settings.log_level)

    print_info(f"Converting [path]{input_path}[/path]", console_output=verbose)
    try:
        text = read_input(input_path)
    except OSError as exc:
        print_error(f"Unable to read {input_path}: {exc}")
        raise typer.Exit(1) from exc

    converter = Converter.for_input(input_path, settings=settings)
    try:
        output_path = converter.convert(text)
    except ReportError as exc:
        print_error(str(exc))
        raise typer.Exit(1) from exc

    if not text.strip():
        print_warning(f"{input_path} is empty; wrote a report without test cases")
    print_success(f"Report written to [path]{output_path}[/path]", soft_wrap=True)


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
