"""
Reporting and output formatting for lint results.

Provides console output using the Rich library and a JSON export for
automation.
"""

import json
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .detector import DuplicateGroup, LintResult
from .error_handling import FlakeLockError


class DuplicateReporter:
    """Formats and displays duplicate input findings."""

    def __init__(self, console: Optional[Console] = None, quiet: bool = False):
        self.console = console or Console()
        self.quiet = quiet

    def print_results(self, result: LintResult) -> None:
        """
        Print lint results, one line per duplicate group.

        Args:
            result: The lint results to display
        """
        if not result.has_duplicates:
            self.console.print("✅ No duplicate inputs found.", style="green")
            return

        self.console.print(
            "The following flake uris contained duplicate entries in "
            f"{result.file_path}:",
            style="bold red",
            markup=False,
            soft_wrap=True,
        )
        for group in result.groups:
            self.console.print(
                f"  '{group.uri}': {', '.join(group.names)}",
                markup=False,
                highlight=False,
                soft_wrap=True,
            )

        if not self.quiet:
            self.console.print()
            self._print_summary(result)
            self._print_footer(result)

    def _print_summary(self, result: LintResult) -> None:
        """Print a table of duplicate groups."""
        table = Table(
            title="📊 Duplicate Inputs", box=box.ROUNDED, title_style="bold cyan"
        )
        table.add_column("Flake URI", style="bold", overflow="fold")
        table.add_column("Count", justify="center")
        table.add_column("Nodes", overflow="fold")

        # URIs and node names come from the lock file and are never markup.
        for group in result.groups:
            table.add_row(
                Text(group.uri),
                f"[bold yellow]{len(group.names)}[/bold yellow]",
                Text(", ".join(group.names)),
            )

        self.console.print(table)

    def _print_footer(self, result: LintResult) -> None:
        self.console.print(
            f"\n[dim]Checked {result.total_nodes} nodes in "
            f"{result.duration_ms / 1000:.2f} seconds[/dim]"
        )
        self.console.print(
            f"[bold red]❌ {len(result.groups)} duplicated flake uris "
            f"({result.duplicate_node_count} nodes). Consider adding "
            "'follows' to your flake inputs.[/bold red]"
        )


def _group_to_dict(group: DuplicateGroup, include_revision: bool) -> Dict[str, Any]:
    source = group.key._asdict()
    if not include_revision:
        # The revision was not compared, so it is not part of the source.
        del source["rev"]

    return {
        "uri": group.uri,
        "source": source,
        "nodes": list(group.names),
        "original": {node.name: node.original for node in group.nodes},
    }


def results_to_dict(result: LintResult) -> Dict[str, Any]:
    """Convert lint results to a JSON-serializable dictionary."""
    return {
        "file_path": result.file_path,
        "total_nodes": result.total_nodes,
        "lint_duration_ms": result.duration_ms,
        "include_revision": result.include_revision,
        "has_duplicates": result.has_duplicates,
        "duplicates": [
            _group_to_dict(group, result.include_revision) for group in result.groups
        ],
    }


def error_to_dict(file_path: str, error: FlakeLockError) -> Dict[str, Any]:
    """Describe a lock file that could not be linted."""
    return {
        "file_path": file_path,
        "error_type": type(error).__name__,
        "error": str(error),
    }


def batch_results_to_dict(entries: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Combine per-file entries into one document.

    Args:
        entries: ``results_to_dict`` or ``error_to_dict`` output, one per file

    Returns:
        Dict[str, Any]: Summary counts plus the entries in input order
    """
    return {
        "files_checked": len(entries),
        "files_with_duplicates": sum(
            1 for entry in entries if entry.get("has_duplicates")
        ),
        "failed_files": sum(1 for entry in entries if "error" in entry),
        "results": entries,
    }


def write_json(
    data: Dict[str, Any],
    output_file: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Print a JSON document to stdout or save it to ``output_file``.

    Raises:
        OSError: If ``output_file`` cannot be written
    """
    json_output = json.dumps(data, indent=2, ensure_ascii=False)

    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(json_output)
        (console or Console(stderr=True)).print(
            f"✅ Results saved to {output_file}", style="green", markup=False
        )
    else:
        print(json_output)


def output_json_results(
    result: LintResult,
    output_file: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """Export results as JSON."""
    write_json(results_to_dict(result), output_file, console)
