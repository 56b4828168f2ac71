"""
Rich progress displays for CLI operations.

All output goes to stderr to preserve stdout for the result path.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

# Console for stderr output (preserves stdout for machine output)
console = Console(stderr=True)

OPERATION_LABELS = {
    "edit": "Retouching image",
    "filter": "Applying filter",
    "adjustment": "Applying adjustment",
    "placement": "Placing object",
    "grid": "Composing scene",
    "expand": "Expanding canvas",
}


@contextmanager
def operation_progress(
    operation: str,
    transport: str | None = None,
    model: str | None = None,
) -> Iterator[None]:
    """
    Display a spinner while an edit request is in flight.

    Args:
        operation: Operation type (edit, filter, ...)
        transport: Transport the request goes through
        model: Image model name, shown for the direct transport
    """
    progress = Progress(
        SpinnerColumn(spinner_name="dots"),
        TextColumn("[green]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )

    desc_parts = [OPERATION_LABELS.get(operation, operation)]
    if model:
        model_display = model if len(model) <= 40 else f"{model[:37]}..."
        desc_parts.append(f"[dim]({model_display})[/dim]")
    if transport:
        desc_parts.append(f"• [dim cyan]via {transport}[/dim cyan]")

    with progress:
        task = progress.add_task(" ".join(desc_parts), total=None)
        yield
        progress.update(task, completed=True)


def print_success_result(
    output_path: Path,
    operation: str,
    size: tuple[int, int],
    elapsed: float | None = None,
    transport: str | None = None,
    prompt: str | None = None,
) -> None:
    """
    Print a rich formatted success panel.

    Args:
        output_path: Path where the image was saved
        operation: Operation type
        size: (width, height) of the saved image
        elapsed: Time taken (seconds); omitted for local operations
        transport: Transport used; omitted for local operations
        prompt: Instruction the user gave, if any
    """
    table = Table.grid(padding=(0, 2))
    table.add_column(style="cyan", justify="right", vertical="top")
    table.add_column(style="white")

    table.add_row("Saved to", f"[bold green]{output_path}[/bold green]")
    table.add_row("Operation", operation)
    table.add_row("Size", f"{size[0]}x{size[1]}")
    if transport:
        table.add_row("Transport", transport)
    if elapsed is not None:
        table.add_row("Time", f"{elapsed:.1f}s")
    if prompt:
        table.add_row("Prompt", f"[dim]{prompt}[/dim]")

    panel = Panel(
        table,
        title="[bold green]✓ Image Saved[/bold green]",
        border_style="green",
        padding=(1, 2),
    )

    console.print()
    console.print(panel)


def print_info(message: str) -> None:
    """Print an info message in cyan."""
    console.print(f"[cyan]ℹ[/cyan] {message}")


def print_warning(message: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def print_error(message: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]✗[/red] {message}")
