# ============================================================================
# CLAUDE CONTEXT - GEOJSON ASSEMBLER
# ============================================================================
# STATUS: Standalone Module - Row to GeoJSON Feature mapping
# PURPOSE: Build GeoJSON Features from ST_AsGeoJSON rows; collapse decision point warnings
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: slugify, row_to_feature, aggregate_warnings, assemble_layer
# DEPENDENCIES: json, logging
# PATTERNS: Pure transforms (no I/O)
# ============================================================================

"""
GeoJSON Assembler

Maps rows returned by a layer query (geometry already serialized by
ST_AsGeoJSON) to GeoJSON Features.

Decision points arrive as one row per warning. aggregate_warnings()
collapses them to one Point feature per coordinate pair, with the warnings
grouped by category and serialized to a JSON string property:

    {"concern": ["..."], "managing-risk": ["..."]}
"""

import json
import logging
from typing import Any, Dict, List, Mapping

from .exceptions import GeometryDecodeError, WarningAggregationError
from .layers import DECISION_POINTS_TABLE
from .models import Feature

logger = logging.getLogger(__name__)

WARNING_CATEGORIES = ("concern", "managing-risk")
COORDINATE_SEPARATOR = ", "


def slugify(value: Any) -> str:
    """'Rescue Cache' -> 'rescue-cache'"""
    return str(value).lower().replace(" ", "-")


def _decode_geometry(payload: Any, table: str, field: str) -> Dict[str, Any]:
    """Parse an ST_AsGeoJSON payload; anything that isn't a JSON object is fatal."""
    if isinstance(payload, dict):
        return payload
    try:
        geometry = json.loads(payload)
    except (TypeError, ValueError) as e:
        logger.error(f"{field} from '{table}' is not GeoJSON (is the layer querying ST_AsKML?): {e}")
        raise GeometryDecodeError(f"{field} from '{table}' is not GeoJSON", table=table) from e
    if not isinstance(geometry, dict):
        raise GeometryDecodeError(f"{field} from '{table}' is not a GeoJSON object", table=table)
    return geometry


def row_to_feature(row: Mapping[str, Any], table: str) -> Feature:
    """
    Map one database row to a Feature.

    Args:
        row: Column-keyed row with a 'geometry' column (GeoJSON text)
        table: Layer the row came from; injected into properties

    Returns:
        Feature with the remaining columns as properties

    Raises:
        GeometryDecodeError: If the geometry is not GeoJSON
    """
    properties = dict(row)
    properties.pop("table", None)

    geometry = _decode_geometry(properties.pop("geometry", None), table, "geometry")

    bounding_box = None
    if "bounding_box" in properties:
        bounding_box = _decode_geometry(properties.pop("bounding_box"), table, "bounding_box")

    if properties.get("type") is not None:
        properties["type"] = slugify(properties["type"])

    properties["table"] = table

    return Feature(
        geometry=geometry,
        properties=properties,
        boundingBox=bounding_box
    )


def coordinate_key(feature: Feature) -> str:
    """Canonical key for a point feature: '<x>, <y>'."""
    coordinates = feature.geometry.get("coordinates")
    if feature.geometry.get("type") != "Point" or not isinstance(coordinates, list):
        raise WarningAggregationError(
            f"Decision point has no point coordinates: {feature.geometry}",
            table=DECISION_POINTS_TABLE
        )
    return COORDINATE_SEPARATOR.join(str(c) for c in coordinates)


def _merge_warning(accumulator: Dict[str, Any], feature: Feature) -> None:
    """Append one row's warning to its bucket and merge its other properties."""
    properties = dict(feature.properties)
    category = properties.pop("type", None)
    warning = properties.pop("warning", None)

    if category not in WARNING_CATEGORIES:
        raise WarningAggregationError(
            f"Unknown warning category '{category}' for warning {warning!r}",
            table=DECISION_POINTS_TABLE
        )

    accumulator["warnings"][category].append(warning)
    accumulator["properties"].update(properties)


def aggregate_warnings(features: List[Feature]) -> List[Feature]:
    """
    Collapse per-warning decision point features into one feature per point.

    Rows with an unknown category or without point coordinates are logged and
    skipped; they do not affect other rows.

    Returns:
        One Point feature per distinct coordinate key, in first-seen order
    """
    groups: Dict[str, Dict[str, Any]] = {}

    for feature in features:
        try:
            key = coordinate_key(feature)
            group = groups.setdefault(key, {
                "warnings": {category: [] for category in WARNING_CATEGORIES},
                "properties": {}
            })
            _merge_warning(group, feature)
        except WarningAggregationError as e:
            logger.warning(f"Skipping decision point warning row: {e}")

    aggregated = []
    for key, group in groups.items():
        properties = dict(group["properties"])
        properties["warnings"] = json.dumps(group["warnings"], ensure_ascii=False)
        properties["table"] = DECISION_POINTS_TABLE
        aggregated.append(Feature(
            geometry={
                "type": "Point",
                "coordinates": [float(c) for c in key.split(COORDINATE_SEPARATOR)]
            },
            properties=properties
        ))

    logger.debug(f"Aggregated {len(features)} warning rows into {len(aggregated)} decision points")
    return aggregated


def assemble_layer(table: str, rows: List[Mapping[str, Any]]) -> List[Feature]:
    """
    Map a layer's rows to Features, aggregating decision point warnings.

    Raises:
        GeometryDecodeError: If any row's geometry is not GeoJSON
    """
    features = [row_to_feature(row, table) for row in rows]
    if table == DECISION_POINTS_TABLE:
        features = aggregate_warnings(features)
    return features
