"""Rich-based console output for conversion runs"""

from rich.console import Console
from rich.table import Table
from rich.text import Text

console = Console()

def print_stage(message: str) -> None:
    """Print a pipeline stage line with a bold green checkmark."""
    console.print(Text("✓ ", style="bold green") + Text(message, style="bold"))

def print_warning(message: str) -> None:
    """Print a warning message in bold yellow."""
    console.print(Text("⚠ ", style="bold yellow") + Text(message, style="bold"))

def print_error(message: str) -> None:
    """Print an error message in bold red."""
    console.print(Text("✗ ", style="bold red") + Text(message, style="bold"))

def print_header(title: str, width: int = 80) -> None:
    """Print a decorative header."""
    separator = Text("=" * width, style="bold blue")
    console.print(separator)
    console.print(title.center(width).rstrip(), style="bold blue")
    console.print(separator)

def print_result_table(result) -> None:
    """Render a ConversionResult as one row per requested format."""
    table = Table(title=f"Session {result.session_id}", title_style="bold blue")
    table.add_column("Format", style="bold")
    table.add_column("Status")
    table.add_column("Artifact / error", overflow="fold")
    for fmt, path in result.artifacts.items():
        table.add_row(fmt, Text("ok", style="green"), str(path))
    for fmt, error in result.errors.items():
        table.add_row(fmt, Text("failed", style="bold red"), error.message)
    console.print(table)
