# ============================================================================
# CLAUDE CONTEXT - ATES QUERY COMPILER
# ============================================================================
# STATUS: Standalone Module - SQL composition for layer specifications
# PURPOSE: Turn LayerSpec / JoinedLayerSpec into parameterized PostGIS queries
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: compile_layer, compile_joined_layer, compile_any, parse_output_format
# DEPENDENCIES: psycopg.sql
# VALIDATION: SQL injection prevention via psycopg.sql composition
# PATTERNS: Query Builder, SQL Composition
# ============================================================================

"""
Query Compiler - LayerSpec to SQL

Safety:
- Identifiers via sql.Identifier(), never string concatenation
- Predicate templates come only from the fixed layer catalog
- The area id is always bound as a positional %s parameter

Query shapes:
    SELECT <cols> FROM <table> WHERE <filter>
    SELECT <xf>(<geom>) AS geometry, <cols> FROM <table> WHERE <filter>
    SELECT <xf>(<geom>) AS geometry, <xf>(ST_Envelope(<geom>)) AS bounding_box, <cols> ...

where <xf> is ST_AsGeoJSON or ST_AsKML depending on the output format.
"""

import logging
from typing import List, Union

from psycopg import sql

from .exceptions import ConfigurationError
from .models import CompiledQuery, JoinedLayerSpec, LayerSpec, OutputFormat

logger = logging.getLogger(__name__)


def parse_output_format(value: Union[str, OutputFormat]) -> OutputFormat:
    """
    Parse an output format name.

    Unknown formats are a configuration error rather than a silent
    fallback to GeoJSON.
    """
    if isinstance(value, OutputFormat):
        return value
    for fmt in OutputFormat:
        if fmt.value.lower() == str(value).lower():
            return fmt
    raise ConfigurationError(f"Unsupported output format '{value}'")


def _geometry_expressions(
    output_format: OutputFormat,
    geom_col: sql.Composable,
    include_bounding_box: bool
) -> List[sql.Composable]:
    """Geometry (and optional envelope) select terms, in select order."""
    xform = sql.SQL(output_format.geometry_function)
    terms = [
        sql.SQL("{xform}({geom}) AS geometry").format(xform=xform, geom=geom_col)
    ]
    if include_bounding_box:
        terms.append(
            sql.SQL("{xform}(ST_Envelope({geom})) AS bounding_box").format(xform=xform, geom=geom_col)
        )
    return terms


def compile_layer(layer: LayerSpec, area_id: int) -> CompiledQuery:
    """
    Compile a single-table layer.

    Args:
        layer: Layer specification from the catalog
        area_id: Area identifier, bound as the only parameter

    Returns:
        CompiledQuery with display name, SQL and parameters
    """
    columns = [sql.Identifier(c) for c in layer.columns]

    if layer.geometry_column is None:
        select_terms = columns
    else:
        select_terms = _geometry_expressions(
            layer.output_format,
            sql.Identifier(layer.geometry_column),
            layer.include_bounding_box
        ) + columns

    query = sql.SQL("SELECT {terms} FROM {table} WHERE {where}").format(
        terms=sql.SQL(", ").join(select_terms),
        table=sql.Identifier(layer.table),
        where=sql.SQL(layer.filter_template)
    )

    logger.debug(f"Compiled query for '{layer.table}' ({layer.output_format.value})")

    return CompiledQuery(
        table=layer.table,
        display_name=layer.display_name,
        sql=query,
        params=(area_id,)
    )


def compile_joined_layer(joined: JoinedLayerSpec, area_id: int) -> CompiledQuery:
    """
    Compile a two-table join into a single query.

    The geometry transform is selected once, from whichever side defines a
    geometry column; both sides' columns are qualified by their table.
    """
    primary, secondary = joined.primary, joined.secondary

    if primary.geometry_column is not None:
        geom_side = primary
    elif secondary.geometry_column is not None:
        geom_side = secondary
    else:
        geom_side = None

    select_terms: List[sql.Composable] = []
    if geom_side is not None:
        select_terms.extend(_geometry_expressions(
            primary.output_format,
            sql.Identifier(geom_side.table, geom_side.geometry_column),
            primary.include_bounding_box
        ))

    for layer in (primary, secondary):
        select_terms.extend(sql.Identifier(layer.table, c) for c in layer.columns)

    query = sql.SQL(
        "SELECT {terms} FROM {primary} JOIN {secondary} ON {join_on} WHERE {where}"
    ).format(
        terms=sql.SQL(", ").join(select_terms),
        primary=sql.Identifier(primary.table),
        secondary=sql.Identifier(secondary.table),
        join_on=sql.SQL(joined.join_on),
        where=sql.SQL(joined.filter_template)
    )

    logger.debug(f"Compiled join query '{primary.table}' + '{secondary.table}'")

    return CompiledQuery(
        table=primary.table,
        display_name=joined.display_name,
        sql=query,
        params=(area_id,)
    )


def compile_any(layer: Union[LayerSpec, JoinedLayerSpec], area_id: int) -> CompiledQuery:
    if isinstance(layer, JoinedLayerSpec):
        return compile_joined_layer(layer, area_id)
    return compile_layer(layer, area_id)
