"""
Console output for wtool runs, using the Rich library.
"""

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from .updater import UpdateResult


class WorkspaceReporter:
    """Displays what a run added to the WORKSPACE file."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_update(self, result: UpdateResult) -> None:
        """
        Print the declarations added by a run.

        Args:
            result: The outcome of the run
        """
        table = Table(
            title=f"📦 Added to {result.workspace_path}",
            box=box.ROUNDED,
            title_style="bold cyan",
        )
        table.add_column("Name", style="bold")
        table.add_column("Import path")
        table.add_column("Commit", style="dim")

        for declaration in result.declarations:
            table.add_row(declaration.name, declaration.importpath, declaration.commit)

        self.console.print(table)
        count = len(result.declarations)
        noun = "repository" if count == 1 else "repositories"
        self.console.print(f"✅ Added {count} new Go {noun}", style="green")
