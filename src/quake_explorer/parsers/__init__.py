"""Parsers for converting raw catalog files to QuakeRecord."""

from quake_explorer.parsers.usgs_geojson import USGSGeoJSONParser
from quake_explorer.parsers.csv_catalog import CSVCatalogParser

PARSER_MAP = {
    ".csv": CSVCatalogParser(),
    ".geojson": USGSGeoJSONParser(),
    ".json": USGSGeoJSONParser(),
}

__all__ = ["PARSER_MAP", "USGSGeoJSONParser", "CSVCatalogParser"]
