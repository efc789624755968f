from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table


def _format_optional(value: Optional[float]) -> str:
    return f"{value:.1f}" if value is not None else "-"


def print_walkthrough(
    results: Sequence[Mapping[str, Any]], console: Optional[Console] = None
) -> None:
    """
    Render walkthrough step results as a rich table.

    Steps are listed in execution order with the store round trips each one
    needed, which is the cost of maintaining indexes by hand.
    """
    console = console or Console()

    if not results:
        console.print("[yellow]No results to display.[/yellow]")
        return

    total_trips = sum(r.get("round_trips", 0) for r in results)
    table = Table(
        title="Secondary Index Walkthrough",
        box=box.ROUNDED,
        caption=f"{total_trips} store round trips in total",
    )

    table.add_column("Step", style="cyan", no_wrap=True)
    table.add_column("What happens", style="white")
    table.add_column("Round trips", justify="right", style="magenta")
    table.add_column("Records", justify="right", style="blue")
    table.add_column("Duration (ms)", justify="right", style="green")
    table.add_column("RSS delta (KiB)", justify="right", style="yellow")
    table.add_column("Detail", style="dim")

    for res in results:
        records = res.get("records")
        table.add_row(
            res.get("step", "?"),
            res.get("description", ""),
            str(res.get("round_trips", 0)),
            str(records) if records is not None else "-",
            f"{res.get('duration_ms', 0.0):.3f}",
            _format_optional(res.get("rss_delta_kb")),
            res.get("detail", ""),
        )

    console.print(table)


def print_records(
    rows: Iterable[tuple],
    columns: List[str],
    title: str,
    console: Optional[Console] = None,
) -> None:
    """
    Render (key, field-values...) rows, e.g. the result of a lookup.
    """
    console = console or Console()
    table = Table(title=title, box=box.SIMPLE_HEAVY)
    table.add_column("Key", style="cyan", no_wrap=True)
    for column in columns:
        table.add_column(column)
    count = 0
    for row in rows:
        table.add_row(*(str(cell) for cell in row))
        count += 1
    if not count:
        console.print(f"[yellow]{title}: no records.[/yellow]")
        return
    console.print(table)


__all__ = ["print_walkthrough", "print_records"]
