"""Console output for the CLI.

Provides a Console class that wraps rich for consistent output.
All CLI output should go through this module.
"""

from typing import Any

from rich.console import Console as RichConsole
from rich.table import Table

from kscan.domain.report.model.value import Report


class Console:
    """CLI output manager wrapping rich."""

    def __init__(self, *, force_terminal: bool | None = None) -> None:
        self._console = RichConsole(force_terminal=force_terminal, stderr=False)
        self._err_console = RichConsole(force_terminal=force_terminal, stderr=True)

    # -------------------------------------------------------------------------
    # Status messages
    # -------------------------------------------------------------------------

    def success(self, message: str) -> None:
        self._console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        """Print an error message to stderr."""
        self._err_console.print(f"[red]✗[/red] {message}")

    def warning(self, message: str) -> None:
        self._console.print(f"[yellow]⚠[/yellow] {message}")

    def info(self, message: str) -> None:
        self._console.print(f"[dim]{message}[/dim]")

    # -------------------------------------------------------------------------
    # Structured output
    # -------------------------------------------------------------------------

    def table(
        self,
        rows: list[dict[str, Any]],
        columns: list[tuple[str, str]],  # (key, header)
        *,
        title: str | None = None,
    ) -> None:
        table = Table(title=title, show_header=True, header_style="bold")
        for _, header in columns:
            table.add_column(header)
        for row in rows:
            table.add_row(*(str(row.get(key, "")) for key, _ in columns))
        self._console.print(table)

    def reports(self, reports: list[Report], *, title: str | None = None) -> None:
        """Print one row per report with its result counts."""
        if not reports:
            self.warning("No reports found")
            return
        rows = []
        for report in reports:
            summary = report.data.summary
            rows.append(
                {
                    "name": report.name,
                    "namespace": report.namespace,
                    "pass": summary.pass_,
                    "fail": summary.fail,
                    "warn": summary.warn,
                    "error": summary.error,
                    "skip": summary.skip,
                }
            )
        self.table(
            rows,
            [
                ("name", "Report"),
                ("namespace", "Namespace"),
                ("pass", "Pass"),
                ("fail", "Fail"),
                ("warn", "Warn"),
                ("error", "Error"),
                ("skip", "Skip"),
            ],
            title=title,
        )

    def status(self, message: str):
        """Return a status context manager for long operations."""
        return self._console.status(message)


# Module-level default instance for convenience
_default: Console | None = None


def get_console() -> Console:
    """Get the default console instance."""
    global _default
    if _default is None:
        _default = Console()
    return _default
