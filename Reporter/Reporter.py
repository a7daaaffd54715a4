"""
Reporter/Reporter.py — Live console output and JSON report generation.

Provides the :class:`Reporter` that collects :class:`~Models.Issue` records,
groups repeated occurrences into variations, and produces the final summary
and report file.  Issues are serialised through their generic export
(:meth:`Issue.to_map`), so fields added by new modules reach the report
without any change here.
"""
from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from Models import Issue, Severity

logger = logging.getLogger(__name__)

# Single shared console instance (stdout)
console = Console()

_SEVERITY_STYLES: dict[str, str] = {
    Severity.HIGH.value: "bold red",
    Severity.MEDIUM.value: "bold yellow",
    Severity.LOW.value: "bold cyan",
    Severity.INFORMATIONAL.value: "dim",
}

# Fields that identify "the same issue" when grouping variations.
_VARIATION_KEY_FIELDS = ("module_name", "name", "url", "variable_name", "element")


class Reporter:
    """Collects issues and drives all user-visible output.

    Responsibilities:
    - Live rich-formatted issues to stdout as they are logged
    - Informational / error logging helpers
    - Grouping of repeated issues into variations
    - Final JSON report persistence
    - End-of-run summary table
    """

    def __init__(self, output_file: str) -> None:
        self.output_file: str = output_file
        self.issues: list[Issue] = []

    # ------------------------------------------------------------------
    # Display helpers
    # ------------------------------------------------------------------

    def print_banner(self) -> None:
        """Print the tool banner to the console."""
        console.print(
            Panel(
                "[bold red]Issue Reporter[/bold red]  |  vulnerability issue records to JSON\n"
                "[dim]Builds reports from scanner module payloads.[/dim]",
                expand=False,
                style="bold white on black",
            )
        )

    def log_issue(self, issue: Issue) -> None:
        """Record *issue* and print a highlighted one-liner to the console."""
        self.issues.append(issue)
        severity = str(issue.get("severity") or "?")
        style = _SEVERITY_STYLES.get(severity, "bold white")
        console.print(
            f"[{style}] {escape(severity.upper())} [/{style}] "
            f"{escape(str(issue.get('name') or '(unnamed)'))}  "
            f"[cyan]{escape(str(issue.get('url') or '-'))}[/cyan]  "
            f"var=[yellow]{escape(str(issue.get('variable_name') or '-'))}[/yellow]  "
            f"in=[green]{escape(str(issue.get('element') or '-'))}[/green]"
        )
        logger.debug("Issue fields: %r", issue.to_map())

    def log_info(self, message: str) -> None:
        """Print a standard informational message (supports Rich markup)."""
        console.print(f"[dim]\\[*][/dim] {message}")

    def log_error(self, message: str) -> None:
        """Print an error message (supports Rich markup)."""
        console.print(f"[bold red]\\[!][/bold red] {message}")

    def log_debug(self, message: str) -> None:
        """Emit a structured debug log (not printed to console)."""
        logger.debug(message)

    # ------------------------------------------------------------------
    # Variations
    # ------------------------------------------------------------------

    def aggregate_variations(self) -> list[Issue]:
        """Group logged issues that describe the same weakness.

        Issues sharing module, name, URL, variable and element are merged:
        the first one seen represents the group and its ``variations`` field
        receives the exported fields of every member.  Returns the
        representatives in first-seen order.
        """
        groups: dict[tuple, list[Issue]] = {}
        for issue in self.issues:
            key = tuple(repr(issue.get(f)) for f in _VARIATION_KEY_FIELDS)
            groups.setdefault(key, []).append(issue)

        representatives = []
        for members in groups.values():
            exports = [_without_variations(m) for m in members]
            head = members[0]
            head.set("variations", exports)
            representatives.append(head)

        logger.debug(
            "Grouped %d issues into %d unique issues",
            len(self.issues),
            len(representatives),
        )
        return representatives

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, group_variations: bool = False) -> None:
        """Serialise all issues to the JSON report file."""
        issues = self.aggregate_variations() if group_variations else self.issues
        data = [issue.to_map() for issue in issues]
        try:
            Path(self.output_file).write_text(json.dumps(data, indent=2, default=str))
            console.print(f"\n[green]\\[+][/green] Report saved: [bold]{self.output_file}[/bold]")
        except OSError as exc:
            console.print(f"[red]\\[!][/red] Failed to save report: {exc}")

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def severity_counts(self) -> Counter:
        """Return the number of logged issues per severity."""
        return Counter(
            severity if isinstance(severity, str) else None
            for severity in (issue.get("severity") for issue in self.issues)
        )

    def print_summary(self) -> None:
        """Print an end-of-run summary table."""
        table = Table(title="Issue Summary", box=box.ROUNDED, show_header=True)
        table.add_column("Severity", style="bold cyan", min_width=22)
        table.add_column("Issues", style="white", justify="right")

        counts = self.severity_counts()
        for severity in Severity:
            style = _SEVERITY_STYLES[severity.value]
            table.add_row(severity.value, f"[{style}]{counts.get(severity.value, 0)}[/{style}]")
        unrated = sum(n for s, n in counts.items() if s not in _SEVERITY_STYLES)
        if unrated:
            table.add_row("Unrated", str(unrated))

        if self.issues:
            count_str = f"[bold red]{len(self.issues)}[/bold red]"
        else:
            count_str = f"[bold green]{len(self.issues)}[/bold green]"
        table.add_row("Total", count_str)

        console.print()
        console.print(table)


def _without_variations(issue: Issue) -> dict:
    export = issue.to_map()
    export.pop("variations", None)
    return export
