"""CLI entrypoint for quake-explorer."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from quake_explorer.config import ExplorerConfig, FeedConfig
from quake_explorer.loader import CatalogError, load_boundary_set, load_catalog
from quake_explorer.models import METRIC_LABELS
from quake_explorer.scales import ScaleSet, observed_extent
from quake_explorer.timeline import Granularity, bucket_by_time, has_valid_time

console = Console()


def _load(catalog: str | None):
    config = ExplorerConfig.from_env()
    if catalog:
        config.catalog_path = catalog
    try:
        events = load_catalog(config.catalog_path)
    except CatalogError as exc:
        raise click.ClickException(str(exc)) from exc
    return config, events


@click.group()
@click.option("--log-level", default="WARNING",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]), help="Logging level.")
def cli(log_level: str):
    """Quake Explorer — interactive earthquake and tsunami map explorer."""
    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@cli.command()
@click.option("--catalog", default=None, help="Catalog file (CSV or USGS GeoJSON).")
@click.option("--granularity", default="year", type=click.Choice([g.value for g in Granularity]))
def buckets(catalog: str | None, granularity: str):
    """List the time buckets of a catalog."""
    _, events = _load(catalog)
    result = bucket_by_time(events, granularity)
    usable = sum(1 for e in events if has_valid_time(e, Granularity(granularity)))

    table = Table(title=f"Time buckets ({granularity})")
    table.add_column("#", justify="right", width=4)
    table.add_column("Bucket")
    table.add_column("Events", justify="right")
    table.add_column("Tsunami", justify="right")

    for i, bucket in enumerate(result):
        tsunamis = sum(1 for e in bucket.members if e.tsunami)
        table.add_row(str(i), bucket.label, str(len(bucket)), str(tsunamis))

    console.print(table)
    console.print(f"{usable} of {len(events)} events have a usable {granularity}.")


@cli.command()
@click.option("--catalog", default=None, help="Catalog file (CSV or USGS GeoJSON).")
def summary(catalog: str | None):
    """Show catalog size and the radius scale domains."""
    _, events = _load(catalog)
    scales = ScaleSet.from_catalog(events)

    table = Table(title=f"Catalog: {len(events)} events")
    table.add_column("Metric")
    table.add_column("Observed", justify="right")
    table.add_column("Scale domain", justify="right")

    for metric, domain in scales.domains.items():
        lo, hi = observed_extent(events, metric)
        observed = "—" if lo is None else f"{lo:g} – {hi:g}"
        table.add_row(METRIC_LABELS[metric], observed, f"{domain[0]:g} – {domain[1]:g}")

    console.print(table)
    tsunamis = sum(1 for e in events if e.tsunami)
    console.print(f"Tsunami events: [bold]{tsunamis}[/]")


@cli.command()
@click.option("--catalog", default=None, help="Catalog file (CSV or USGS GeoJSON).")
def tour(catalog: str | None):
    """Play the guided tour in the terminal."""
    from quake_explorer.dashboard import run_tour_view
    from quake_explorer.explorer import Explorer

    config, events = _load(catalog)
    boundaries = load_boundary_set(config.boundary_paths())
    run_tour_view(Explorer(events, boundaries, config))


@cli.command()
@click.option("--start", "start", required=True, type=click.DateTime(), help="Start time (UTC).")
@click.option("--end", "end", default=None, type=click.DateTime(), help="End time (UTC), default now.")
@click.option("--min-mag", default=5.0, help="Minimum magnitude filter.")
@click.option("--out", default="data/catalog.geojson", help="Output GeoJSON path.")
def fetch(start: datetime, end: datetime | None, min_mag: float, out: str):
    """Download a catalog from the USGS FDSN event service."""
    from quake_explorer.clients.fdsn_client import download_catalog
    from quake_explorer.parsers import USGSGeoJSONParser

    start = start.replace(tzinfo=timezone.utc)
    end = (end or datetime.now(timezone.utc)).replace(tzinfo=timezone.utc)
    try:
        raw = asyncio.run(download_catalog(FeedConfig.from_env(), start, end, min_mag))
    except RuntimeError as exc:
        raise click.ClickException(str(exc)) from exc

    path = Path(out)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(raw, encoding="utf-8")
    count = len(USGSGeoJSONParser().parse(raw))
    click.echo(f"Saved {count} event(s) to {path}")


@cli.command("web")
@click.option("--port", default=8501, help="Streamlit port.")
def web(port: int):
    """Launch the Streamlit map explorer."""
    import subprocess
    import sys
    app = Path(__file__).with_name("dashboard_web.py")
    subprocess.run([
        sys.executable, "-m", "streamlit", "run",
        str(app),
        "--server.port", str(port),
        "--theme.base", "dark",
        "--server.headless", "true",
    ])
