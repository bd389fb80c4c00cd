"""Console and logging helpers for the command line interface."""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Define a custom theme for consistent styling
CUSTOM_THEME = Theme(
    {
        "info": "bold cyan",
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
        "path": "bold blue",
    }
)

# Create console for terminal output
console = Console(theme=CUSTOM_THEME)
err_console = Console(theme=CUSTOM_THEME, stderr=True)

logger = logging.getLogger("instrument_report")


def configure_logging(level: str | int = logging.WARNING) -> None:
    """Route package logs through Rich on stderr at ``level``."""

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(console=err_console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)


def print_info(message: str, *args: Any, log: bool = True, console_output: bool = True, **kwargs: Any) -> None:
    """Print an informational message.

    Args:
        message: The message to print
        log: Whether to also emit it on the package logger
        console_output: Whether to print to console
    """
    if console_output:
        console.print(f"[info]INFO:[/info] {message}", *args, **kwargs)
    if log:
        logger.info(message)


def print_success(message: str, *args: Any, log: bool = True, console_output: bool = True, **kwargs: Any) -> None:
    """Print a success message."""
    if console_output:
        console.print(f"[success]SUCCESS:[/success] {message}", *args, **kwargs)
    if log:
        logger.info(f"SUCCESS: {message}")


def print_warning(message: str, *args: Any, log: bool = True, console_output: bool = True, **kwargs: Any) -> None:
    """Print a warning message."""
    if console_output:
        console.print(f"[warning]WARNING:[/warning] {message}", *args, **kwargs)
    if log:
        logger.warning(message)


def print_error(message: str, *args: Any, log: bool = True, console_output: bool = True, **kwargs: Any) -> None:
    """Print an error message."""
    if console_output:
        console.print(f"[error]ERROR:[/error] {message}", *args, **kwargs)
    if log:
        logger.error(message)
