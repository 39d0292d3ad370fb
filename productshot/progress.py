"""Line-by-line progress output for the productshot CLI.

Prints one line per event instead of redrawing the terminal, so it reads the
same in a pipe or a log file. All output goes to stderr; stdout only carries
saved file paths.
"""

from pathlib import Path

from rich.console import Console

from .models import ResultItem, ResultStatus, Session
from .session import SessionEvent

_console = Console(stderr=True)

_RULE = "━" * 55


def print_header(source_names: list[str], style_name: str):
    """Print the run header with the uploaded images and chosen style."""
    _console.print()
    _console.print(_RULE, style="cyan")
    _console.print(" 📸 PRODUCTSHOT STUDIO", style="bold cyan")
    _console.print(_RULE, style="cyan")
    _console.print()
    _console.print(f" [dim]Images:[/dim] {', '.join(source_names)}")
    _console.print(f" [dim]Style:[/dim]  {style_name}")
    _console.print()


def print_analysis(session: Session):
    if session.analysis_error:
        _console.print(f" [yellow]⚠[/yellow]  {session.analysis_error}")
    elif session.product_description:
        _console.print(f" [green]✓[/green] Product: {session.product_description}")
    _console.print()


def print_item(position: int, item: ResultItem):
    """Print the state of one result item.

    Args:
        position: 1-based position within its batch
        item: The item as currently stored
    """
    if item.status is ResultStatus.COMPLETED:
        indicator = "[green]✓[/green]"
    elif item.status is ResultStatus.FAILED:
        indicator = "[red]✗[/red]"
    else:
        indicator = "[yellow]⏳[/yellow]"

    prompt = item.prompt or ""
    display_prompt = prompt[:60] + "..." if len(prompt) > 60 else prompt
    _console.print(f" {indicator} #{position} {item.style_label:<18} [dim]{display_prompt}[/dim]")


def print_suggestions(suggestions: list[str]):
    if not suggestions:
        _console.print(" [dim]No suggestions available.[/dim]")
        return
    _console.print(" [bold]Ideas for improvement:[/bold]")
    for suggestion in suggestions:
        _console.print(f"   • {suggestion}")
    _console.print()


def print_error(message: str):
    _console.print()
    _console.print(_RULE, style="red")
    _console.print(" ❌ ERROR", style="bold red")
    _console.print(_RULE, style="red")
    _console.print()
    _console.print(f" {message}", style="red")
    _console.print()


def print_result(saved: list[Path], total: int):
    """Print the final summary of saved images."""
    style = "green" if saved else "yellow"
    title = " ✨ GENERATION COMPLETE" if saved else " ⚠️  NO IMAGES GENERATED"

    _console.print()
    _console.print(_RULE, style=style)
    _console.print(title, style=f"bold {style}")
    _console.print(_RULE, style=style)
    _console.print()
    _console.print(f" {len(saved)}/{total} images saved")
    for path in saved:
        _console.print(f" [dim]📁[/dim] {path}")
    _console.print()


class ProgressPrinter:
    """Session listener that prints each item once it settles."""

    def __init__(self):
        self._printed: set[tuple[str, int]] = set()

    def __call__(self, event: SessionEvent, session: Session):
        if event in (SessionEvent.ANALYSIS_COMPLETED, SessionEvent.ANALYSIS_FAILED):
            print_analysis(session)
        elif event is SessionEvent.ITEMS_ADDED:
            batch = list(session.batches.values())[-1]
            _console.print(f" [dim]Generating {len(batch.item_ids)} variations ({batch.id})[/dim]")
        elif event is SessionEvent.ITEM_SETTLED:
            for batch in session.batches.values():
                for position, item_id in enumerate(batch.item_ids, start=1):
                    item = session.find_result(item_id)
                    if item is None or item.is_pending or (item.id, item.attempt) in self._printed:
                        continue
                    self._printed.add((item.id, item.attempt))
                    print_item(position, item)


def print_provider_stats(stats: dict):
    """Print per-provider call counts and failovers (verbose runs)."""
    _console.print(" [bold]Provider usage:[/bold]")
    for provider, calls in sorted(stats["calls"].items()):
        failed = stats["failures"].get(provider, 0)
        _console.print(f"   {provider:<8} {calls} calls, {failed} failed")
    for failover in stats["failovers"]:
        _console.print(f"   [yellow]↪[/yellow] {failover['operation']}: {failover['from']} → {failover['to']}")
    _console.print()
