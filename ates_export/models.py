# ============================================================================
# CLAUDE CONTEXT - ATES EXPORT MODELS
# ============================================================================
# STATUS: Standalone Models - Layer specifications and GeoJSON documents
# PURPOSE: Immutable value objects flowing through the export pipeline
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: OutputFormat, Language, LayerSpec, JoinedLayerSpec, CompiledQuery,
#          Feature, FeatureCollection, LAYER_NAMES, resolve_display_name
# INTERFACES: Pydantic BaseModel (frozen), dataclass
# PYDANTIC_MODELS: LayerSpec, JoinedLayerSpec, Feature, FeatureCollection
# DEPENDENCIES: pydantic, psycopg.sql, dataclasses, enum
# SCOPE: Data model only - no database or serialization behavior
# PATTERNS: Data Transfer Objects (DTOs)
# ============================================================================

"""
ATES Export Models

Value objects for the export pipeline. Everything here is created fresh per
export request and discarded after serialization.

References:
- GeoJSON RFC 7946: https://tools.ietf.org/html/rfc7946
- OGC KML 2.2: https://www.ogc.org/standard/kml/

Date: 17 OCT 2026
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

from psycopg import sql
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ConfigurationError


class OutputFormat(str, Enum):
    """Document format; selects the PostGIS geometry serializer."""
    GEOJSON = "GeoJSON"
    KML = "KML"

    @property
    def geometry_function(self) -> str:
        return "ST_AsKML" if self is OutputFormat.KML else "ST_AsGeoJSON"


class Language(str, Enum):
    """Supported display languages."""
    EN = "en"
    FR = "fr"


# Display names for every top-level layer, per language.
# Read-only: shared by every request in the process.
LAYER_NAMES: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "en": MappingProxyType({
        "areas_vw": "Area",
        "points_of_interest": "Points of interest",
        "access_roads": "Access road",
        "avalanche_paths": "Avalanche path",
        "decision_points": "Decision point",
        "zones": "Zone",
    }),
    "fr": MappingProxyType({
        "areas_vw": "Régions",
        "points_of_interest": "Points d'intérêt",
        "access_roads": "Routes d'accès",
        "avalanche_paths": "Couloirs d’avalanche",
        "decision_points": "point de décision",
        "zones": "Zone",
    }),
})


def resolve_display_name(
    table: str,
    language: "Language",
    names: Mapping[str, Mapping[str, str]] = LAYER_NAMES
) -> str:
    """
    Look up the human-readable layer name.

    Raises:
        ConfigurationError: If the language or table is missing from the table
    """
    try:
        return names[Language(language).value][table]
    except KeyError:
        raise ConfigurationError(
            f"No display name for table '{table}' in language '{Language(language).value}'",
            table=table
        )


class LayerSpec(BaseModel):
    """
    One queryable layer: a table, its columns and its area filter.

    All SQL fragments held here (table, columns, filter_template) are trusted
    constants from the layer catalog, never request input.
    """
    model_config = ConfigDict(frozen=True)

    table: str = Field(
        description="Source relation"
    )
    columns: Tuple[str, ...] = Field(
        description="Non-geometry columns, in select order"
    )
    filter_template: str = Field(
        description="Predicate with one positional placeholder, e.g. 'area_id = %s'"
    )
    output_format: OutputFormat = Field(
        default=OutputFormat.GEOJSON,
        description="Selects ST_AsGeoJSON or ST_AsKML"
    )
    language: Language = Field(
        default=Language.EN,
        description="Display name language"
    )
    include_bounding_box: bool = Field(
        default=False,
        description="Also select ST_Envelope of the geometry"
    )
    geometry_column: Optional[str] = Field(
        default="geom",
        description="Geometry column, or None for attribute-only layers"
    )
    joined_warnings_layer: Optional["LayerSpec"] = Field(
        default=None,
        description="One-to-many warnings relation (decision points only)"
    )

    @field_validator("filter_template")
    @classmethod
    def validate_single_placeholder(cls, v: str) -> str:
        """The area id is the only bound parameter."""
        if v.count("%s") != 1:
            raise ValueError(f"filter_template must contain exactly one %s placeholder: {v!r}")
        return v

    @property
    def display_name(self) -> str:
        return resolve_display_name(self.table, self.language)


class JoinedLayerSpec(BaseModel):
    """
    Two layers queried as one join (decision points + their warnings).

    Produces one row per warning, each carrying the parent point's geometry.
    """
    model_config = ConfigDict(frozen=True)

    primary: LayerSpec
    secondary: LayerSpec
    join_on: str = Field(
        description="Trusted ON predicate"
    )
    filter_template: str = Field(
        description="Predicate on the primary table with one %s placeholder"
    )

    @property
    def table(self) -> str:
        return self.primary.table

    @property
    def display_name(self) -> str:
        return self.primary.display_name

    @property
    def output_format(self) -> OutputFormat:
        return self.primary.output_format


@dataclass(frozen=True)
class CompiledQuery:
    """The only artifact handed to the row fetcher."""
    table: str
    display_name: str
    sql: sql.Composable
    params: Tuple[Any, ...]


class Feature(BaseModel):
    """GeoJSON Feature. boundingBox is a foreign member holding the envelope geometry."""
    model_config = ConfigDict(frozen=True)

    type: Literal["Feature"] = "Feature"
    geometry: Dict[str, Any]
    properties: Dict[str, Any]
    boundingBox: Optional[Dict[str, Any]] = None

    def to_geojson(self) -> Dict[str, Any]:
        feature = {
            "type": self.type,
            "geometry": self.geometry,
            "properties": self.properties
        }
        if self.boundingBox is not None:
            feature["boundingBox"] = self.boundingBox
        return feature


class FeatureCollection(BaseModel):
    """GeoJSON FeatureCollection in layer order, then row order."""
    model_config = ConfigDict(frozen=True)

    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[Feature]

    def to_geojson(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "features": [f.to_geojson() for f in self.features]
        }
