"""Catalog and boundary loading.

Everything that touches the filesystem lives here; the rest of the package
receives finished, validated records and GeoJSON feature collections.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Iterable

import geopandas as gpd

from quake_explorer.models import QuakeRecord
from quake_explorer.parsers import PARSER_MAP
from quake_explorer.parsers.base import CatalogParser, ValidationError

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when a catalog or boundary file cannot be read."""


def assign_unique_ids(records: Iterable[QuakeRecord]) -> list[QuakeRecord]:
    """Suffix repeated content ids with #2, #3, ... in catalog order."""
    seen: dict[str, int] = {}
    out: list[QuakeRecord] = []
    for record in records:
        count = seen.get(record.event_id, 0) + 1
        seen[record.event_id] = count
        if count > 1:
            record = dataclasses.replace(record, event_id=f"{record.event_id}#{count}")
        out.append(record)
    return out


def finalize_records(records: Iterable[QuakeRecord]) -> list[QuakeRecord]:
    """Drop records failing validation and make ids unique."""
    valid: list[QuakeRecord] = []
    for record in records:
        try:
            valid.append(CatalogParser.ensure_valid(record))
        except ValidationError as exc:
            logger.warning("Dropping %s: %s", record.event_id, "; ".join(exc.errors))
    return assign_unique_ids(valid)


def load_catalog(path: str | Path) -> list[QuakeRecord]:
    path = Path(path)
    parser = PARSER_MAP.get(path.suffix.lower())
    if parser is None:
        raise CatalogError(f"no parser for '{path.suffix}' files ({path})")
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"cannot read catalog {path}: {exc}") from exc

    try:
        records = parser.parse(raw)
    except ValueError as exc:
        raise CatalogError(f"cannot parse catalog {path}: {exc}") from exc

    records = finalize_records(records)
    logger.info("Loaded %d event(s) from %s", len(records), path)
    return records


# ── Boundaries ───────────────────────────────────────────────────────────


def read_boundaries(path: str | Path) -> gpd.GeoDataFrame:
    """Read a GeoJSON or TopoJSON boundary file into WGS84."""
    path = Path(path)
    if not path.is_file():
        raise CatalogError(f"cannot read boundaries {path}: no such file")
    try:
        gdf = gpd.read_file(path)
    except (OSError, ValueError, RuntimeError) as exc:
        raise CatalogError(f"cannot read boundaries {path}: {exc}") from exc

    if gdf.crs is not None and gdf.crs.to_epsg() != 4326:
        logger.info("Reprojecting %s from %s to EPSG:4326", path.name, gdf.crs)
        gdf = gdf.to_crs("EPSG:4326")
    return gdf


def load_boundaries(path: str | Path) -> dict:
    """Read a boundary file as a GeoJSON FeatureCollection mapping."""
    gdf = read_boundaries(path)
    logger.info("Loaded %d boundary feature(s) from %s", len(gdf), path)
    return gdf.__geo_interface__


def load_boundary_set(paths: dict[str, str]) -> dict[str, dict]:
    """Load every named boundary file; missing ones are logged and skipped."""
    boundaries: dict[str, dict] = {}
    for name, path in paths.items():
        try:
            boundaries[name] = load_boundaries(path)
        except CatalogError as exc:
            logger.warning("Boundary '%s' unavailable: %s", name, exc)
    return boundaries
