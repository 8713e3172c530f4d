"""Console output helpers.

Provides consistent formatting for CLI output, including the error panel
shown when a command fails.
"""

from __future__ import annotations

import traceback
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from distfinder.core.exceptions import get_error_info, get_root_cause

_console: Console | None = None

# Set by the --debug flag
_verbose_mode: bool = False


def get_console() -> Console:
    """Get shared console instance (lazy-loaded)."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_verbose_mode(enabled: bool) -> None:
    """Enable or disable tracebacks in error output."""
    global _verbose_mode
    _verbose_mode = enabled


def is_verbose_mode() -> bool:
    return _verbose_mode


def tip(message: str) -> None:
    """Display a dim tip line."""
    get_console().print(f"  [dim]Tip: {message}[/dim]")


class ErrorRenderer:
    """Renders an exception as a panel with "Why" and "How to fix" sections.

    Example
    -------
        try:
            analyzer.analyze()
        except Exception as e:
            ErrorRenderer.render(e, context="While running analyze")
            raise typer.Exit(1)
    """

    @staticmethod
    def render(
        exc: BaseException,
        context: str = "",
        show_traceback: Optional[bool] = None,
    ) -> None:
        """Render an exception as an error panel.

        Args:
            exc: Exception to render
            context: Optional context line
            show_traceback: Override for verbose mode (None = use global setting)
        """
        error_info = get_error_info(exc)
        root_cause = get_root_cause(exc)
        root_message = str(root_cause) if root_cause is not exc else None

        content = ErrorRenderer._build_error_content(
            message=str(exc),
            context=context,
            why=error_info["why_it_happened"],
            how_to_fix=error_info["how_to_fix"],
            root_message=root_message,
        )
        get_console().print(
            Panel(
                content,
                title=f"[bold red]Error: {error_info['error_code']}[/bold red]",
                border_style="red",
                padding=(1, 2),
            )
        )

        should_show_traceback = show_traceback if show_traceback is not None else is_verbose_mode()
        if should_show_traceback:
            tb_text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            get_console().print(Text(tb_text, style="dim"))

    @staticmethod
    def _build_error_content(
        message: str,
        context: str,
        why: str,
        how_to_fix: List[str],
        root_message: Optional[str],
    ) -> Text:
        text = Text()

        if context:
            text.append(f"{context}\n\n", style="dim")

        text.append(message, style="bold red")
        text.append("\n\n")

        if root_message and root_message != message:
            text.append("Root cause: ", style="bold yellow")
            text.append(root_message, style="yellow")
            text.append("\n\n")

        text.append("Why it happened:\n", style="bold cyan")
        text.append(f"  {why}\n\n", style="cyan")

        text.append("How to fix:\n", style="bold green")
        for fix in how_to_fix:
            text.append(f"  - {fix}\n", style="green")

        return text
