"""
Layer catalog - the fixed set of layers exported for an area.

The GeoJSON and KML exports select different columns from the same tables:
GeoJSON carries ids for downstream joins, KML only what a placemark shows.
"""

from typing import List, Union

from .models import JoinedLayerSpec, Language, LayerSpec, OutputFormat, resolve_display_name

AREA_TABLE = "areas_vw"
POINTS_OF_INTEREST_TABLE = "points_of_interest"
ACCESS_ROADS_TABLE = "access_roads"
AVALANCHE_PATHS_TABLE = "avalanche_paths"
DECISION_POINTS_TABLE = "decision_points"
DECISION_POINT_WARNINGS_TABLE = "decision_points_warnings"
ZONES_TABLE = "zones"

AREA_FILTER = "id = %s"
AREA_ID_FILTER = "area_id = %s"
WARNINGS_JOIN_ON = "decision_points_warnings.decision_point_id = decision_points.id"
DECISION_POINTS_FILTER = "decision_points.area_id = %s"

GEOJSON_COLUMNS = {
    AREA_TABLE: ("id", "name"),
    POINTS_OF_INTEREST_TABLE: ("id", "area_id", "name", "type", "comments"),
    ACCESS_ROADS_TABLE: ("id", "area_id", "description"),
    AVALANCHE_PATHS_TABLE: ("id", "area_id", "name"),
    DECISION_POINTS_TABLE: ("id", "name", "area_id", "comments"),
    ZONES_TABLE: ("id", "area_id", "class_code", "comments"),
}

KML_COLUMNS = {
    AREA_TABLE: ("name",),
    POINTS_OF_INTEREST_TABLE: ("name", "type", "comments"),
    ACCESS_ROADS_TABLE: ("description",),
    AVALANCHE_PATHS_TABLE: ("name",),
    DECISION_POINTS_TABLE: ("name", "comments"),
    ZONES_TABLE: ("class_code", "comments"),
}

WARNING_COLUMNS = ("warning", "type")

# Layers that also select ST_Envelope(geom), per format
BOUNDING_BOX_TABLES = {
    OutputFormat.GEOJSON: {AREA_TABLE, ZONES_TABLE},
    OutputFormat.KML: set(),
}

LAYER_ORDER = (
    AREA_TABLE,
    POINTS_OF_INTEREST_TABLE,
    ACCESS_ROADS_TABLE,
    AVALANCHE_PATHS_TABLE,
    DECISION_POINTS_TABLE,
    ZONES_TABLE,
)


def decision_points_layer(output_format: OutputFormat, language: Language) -> JoinedLayerSpec:
    """Decision points joined to their warnings, one row per warning."""
    columns = GEOJSON_COLUMNS if output_format is OutputFormat.GEOJSON else KML_COLUMNS
    warnings = LayerSpec(
        table=DECISION_POINT_WARNINGS_TABLE,
        columns=WARNING_COLUMNS,
        filter_template="decision_point_id = %s",
        output_format=output_format,
        language=language,
        geometry_column=None
    )
    primary = LayerSpec(
        table=DECISION_POINTS_TABLE,
        columns=columns[DECISION_POINTS_TABLE],
        filter_template=AREA_ID_FILTER,
        output_format=output_format,
        language=language,
        joined_warnings_layer=warnings
    )
    return JoinedLayerSpec(
        primary=primary,
        secondary=warnings,
        join_on=WARNINGS_JOIN_ON,
        filter_template=DECISION_POINTS_FILTER
    )


def build_layers(
    output_format: OutputFormat,
    language: Language = Language.EN
) -> List[Union[LayerSpec, JoinedLayerSpec]]:
    """
    Build every layer for one export, in document order.

    Display names are resolved here so a locale gap fails before any
    query is issued.

    Raises:
        ConfigurationError: If a layer has no display name for the language
    """
    output_format = OutputFormat(output_format)
    language = Language(language)
    columns = GEOJSON_COLUMNS if output_format is OutputFormat.GEOJSON else KML_COLUMNS

    layers: List[Union[LayerSpec, JoinedLayerSpec]] = []
    for table in LAYER_ORDER:
        if table == DECISION_POINTS_TABLE:
            layer = decision_points_layer(output_format, language)
        else:
            layer = LayerSpec(
                table=table,
                columns=columns[table],
                filter_template=AREA_FILTER if table == AREA_TABLE else AREA_ID_FILTER,
                output_format=output_format,
                language=language,
                include_bounding_box=table in BOUNDING_BOX_TABLES[output_format]
            )
        resolve_display_name(layer.table, language)
        layers.append(layer)

    return layers
