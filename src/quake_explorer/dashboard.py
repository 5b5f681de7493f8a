"""Live terminal view of the guided tour."""

from __future__ import annotations

import asyncio

from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table

from quake_explorer.animation import run_clock
from quake_explorer.explorer import Explorer
from quake_explorer.tour import TourOutcome, TourState

console = Console()

_CLOSING = {
    TourOutcome.COMPLETED: "[green]Tour complete.[/]",
    TourOutcome.ENDED: "[yellow]Tour ended.[/]",
    TourOutcome.ABORTED: "[red]Tour stopped after an error; see the log for details.[/]",
}


def _mag_color(mag: float | None) -> str:
    if mag is None:
        return "dim"
    if mag >= 8.0:
        return "red"
    if mag >= 7.0:
        return "yellow"
    return "green"


def _fmt(value: float | None, digits: int = 1) -> str:
    return "—" if value is None else f"{value:.{digits}f}"


def _build_status(explorer: Explorer) -> Panel:
    tour = explorer.tour
    s = tour.session
    total = len(tour.script)
    state = "[yellow]PAUSED[/]" if tour.state == TourState.PAUSED else "[green]RUNNING[/]"
    heading = f"Step {s.step_index + 1}/{total}  {state}" if s.running else "Tour idle"

    caption = s.caption or "[dim]In flight…[/]"
    bar = ProgressBar(total=100, completed=s.progress, width=60)
    t = explorer.controller.transform
    view = f"[dim]zoom {t.k:.1f}×  region {explorer.controller.region.label}[/]"
    return Panel(Group(caption, bar, view), title=heading, border_style="blue")


def _build_target(explorer: Explorer) -> Table:
    s = explorer.tour.session
    table = Table(title="Highlighted event", expand=True)
    table.add_column("Mag", style="bold", width=6, justify="center")
    table.add_column("Place")
    table.add_column("Year", width=6)
    table.add_column("Depth (km)", justify="right", width=12)
    table.add_column("Significance", justify="right", width=13)
    table.add_column("Off target (km)", justify="right", width=16)

    event = s.target
    if event is not None:
        color = _mag_color(event.mag)
        table.add_row(
            f"[{color}]{_fmt(event.mag)}[/]",
            event.place or "Unknown",
            str(event.year or "—"),
            _fmt(event.depth),
            _fmt(event.sig, 0),
            _fmt(s.target_offset_km, 0),
        )
        if event.tsunami:
            table.caption = "[blue]Tsunami recorded[/]"
    return table


async def _run(explorer: Explorer, refresh_per_second: float) -> None:
    layout = Layout()
    layout.split_column(
        Layout(name="status", size=6),
        Layout(name="target"),
    )
    stop = asyncio.Event()
    clock = asyncio.create_task(run_clock(explorer.scheduler, stop))

    try:
        with Live(layout, console=console, refresh_per_second=refresh_per_second, screen=False):
            while explorer.tour.session.running:
                layout["status"].update(_build_status(explorer))
                layout["target"].update(_build_target(explorer))
                await asyncio.sleep(1.0 / refresh_per_second)
    finally:
        stop.set()
        await clock


def run_tour_view(explorer: Explorer, refresh_per_second: float = 10.0) -> None:
    """Play the guided tour in the terminal until it ends or Ctrl-C."""
    if not explorer.start_tour():
        console.print("[red]Tour could not start.[/]")
        return
    try:
        asyncio.run(_run(explorer, refresh_per_second))
    except KeyboardInterrupt:
        explorer.end_tour()
        console.print()
    console.print(_CLOSING.get(explorer.tour.outcome, _CLOSING[TourOutcome.ENDED]))
