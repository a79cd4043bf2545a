"""Tests for the layer catalog and SQL compilation."""

from __future__ import annotations

import pydantic
import pytest

from ates_export.exceptions import ConfigurationError
from ates_export.layers import LAYER_ORDER, build_layers
from ates_export.models import (
    JoinedLayerSpec,
    Language,
    LayerSpec,
    OutputFormat,
    resolve_display_name,
)
from ates_export.query import compile_any, compile_joined_layer, compile_layer, parse_output_format


def _layer(layers, table):
    return next(layer for layer in layers if layer.table == table)


class TestParseOutputFormat:

    def test_case_insensitive(self) -> None:
        assert parse_output_format("kml") is OutputFormat.KML
        assert parse_output_format("GEOJSON") is OutputFormat.GEOJSON

    def test_unknown_format_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_output_format("shapefile")


class TestLayerCatalog:

    def test_layers_in_document_order(self) -> None:
        layers = build_layers(OutputFormat.GEOJSON)
        assert tuple(layer.table for layer in layers) == LAYER_ORDER

    def test_decision_points_are_joined(self) -> None:
        layers = build_layers(OutputFormat.KML)
        assert isinstance(_layer(layers, "decision_points"), JoinedLayerSpec)

    def test_french_display_names(self) -> None:
        layers = build_layers(OutputFormat.KML, Language.FR)
        assert _layer(layers, "access_roads").display_name == "Routes d'accès"

    def test_missing_display_name_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            resolve_display_name("zones", Language.FR, names={"fr": {}})

    def test_filter_needs_exactly_one_placeholder(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            LayerSpec(table="zones", columns=("id",), filter_template="area_id = %s AND id = %s")


class TestCompileLayer:

    def test_bounding_box_layer_selects_geometry_then_envelope(self) -> None:
        area = _layer(build_layers(OutputFormat.GEOJSON), "areas_vw")
        query = compile_layer(area, 357)

        assert query.sql.as_string(None) == (
            'SELECT ST_AsGeoJSON("geom") AS geometry, '
            'ST_AsGeoJSON(ST_Envelope("geom")) AS bounding_box, '
            '"id", "name" FROM "areas_vw" WHERE id = %s'
        )
        assert query.params == (357,)
        assert query.display_name == "Area"

    def test_kml_layer_selects_one_geometry_term(self) -> None:
        pois = _layer(build_layers(OutputFormat.KML), "points_of_interest")
        text = compile_layer(pois, 357).sql.as_string(None)

        assert text == (
            'SELECT ST_AsKML("geom") AS geometry, "name", "type", "comments" '
            'FROM "points_of_interest" WHERE area_id = %s'
        )
        assert "ST_Envelope" not in text

    def test_layer_without_geometry(self) -> None:
        layer = LayerSpec(
            table="zones",
            columns=("id", "class_code"),
            filter_template="area_id = %s",
            geometry_column=None
        )
        assert compile_layer(layer, 1).sql.as_string(None) == (
            'SELECT "id", "class_code" FROM "zones" WHERE area_id = %s'
        )

    def test_area_id_is_never_inlined(self) -> None:
        for layer in build_layers(OutputFormat.GEOJSON):
            query = compile_any(layer, 98765)
            assert "98765" not in query.sql.as_string(None)
            assert query.params == (98765,)


class TestCompileJoinedLayer:

    def test_join_qualifies_columns_and_geometry(self) -> None:
        joined = _layer(build_layers(OutputFormat.GEOJSON), "decision_points")
        query = compile_joined_layer(joined, 357)

        assert query.sql.as_string(None) == (
            'SELECT ST_AsGeoJSON("decision_points"."geom") AS geometry, '
            '"decision_points"."id", "decision_points"."name", '
            '"decision_points"."area_id", "decision_points"."comments", '
            '"decision_points_warnings"."warning", "decision_points_warnings"."type" '
            'FROM "decision_points" JOIN "decision_points_warnings" '
            'ON decision_points_warnings.decision_point_id = decision_points.id '
            'WHERE decision_points.area_id = %s'
        )
        assert query.table == "decision_points"
        assert query.params == (357,)

    def test_kml_join_uses_kml_transform(self) -> None:
        joined = _layer(build_layers(OutputFormat.KML), "decision_points")
        text = compile_any(joined, 357).sql.as_string(None)
        assert text.startswith('SELECT ST_AsKML("decision_points"."geom") AS geometry')
