"""Tests for the GeoJSON assembler and warning aggregation."""

from __future__ import annotations

import json

import pytest

from ates_export.document import build_feature_collection, serialize_geojson
from ates_export.exceptions import GeometryDecodeError
from ates_export.geojson import aggregate_warnings, assemble_layer, row_to_feature, slugify

from conftest import AREA_POLYGON, geojson_point, kml_point


def _warning_row(x, y, warning, category, name="Col"):
    return {
        "geometry": geojson_point(x, y),
        "id": 7,
        "name": name,
        "area_id": 357,
        "comments": None,
        "warning": warning,
        "type": category,
    }


class TestRowToFeature:

    def test_geometry_parsed_and_table_injected(self) -> None:
        feature = row_to_feature({"geometry": geojson_point(1.0, 2.0), "id": 3, "name": "Hut"}, "points_of_interest")

        assert feature.geometry == {"type": "Point", "coordinates": [1.0, 2.0]}
        assert feature.properties == {"id": 3, "name": "Hut", "table": "points_of_interest"}
        assert feature.boundingBox is None
        assert "boundingBox" not in feature.to_geojson()

    def test_bounding_box_hoisted(self) -> None:
        row = {"geometry": json.dumps(AREA_POLYGON), "bounding_box": json.dumps(AREA_POLYGON), "id": 357}
        feature = row_to_feature(row, "areas_vw")

        assert feature.boundingBox == AREA_POLYGON
        assert "bounding_box" not in feature.properties

    def test_type_is_slugged(self) -> None:
        feature = row_to_feature({"geometry": geojson_point(0, 0), "type": "Rescue Cache"}, "points_of_interest")
        assert feature.properties["type"] == "rescue-cache"

    def test_none_properties_are_kept(self) -> None:
        feature = row_to_feature({"geometry": geojson_point(0, 0), "comments": None}, "access_roads")
        assert feature.to_geojson()["properties"]["comments"] is None

    def test_kml_payload_is_a_decode_error(self) -> None:
        with pytest.raises(GeometryDecodeError) as exc_info:
            row_to_feature({"geometry": kml_point(0, 0)}, "points_of_interest")
        assert exc_info.value.table == "points_of_interest"

    def test_slugify(self) -> None:
        assert slugify("Managing risk") == "managing-risk"
        assert slugify("Rescue  Cache") == "rescue--cache"


class TestAggregateWarnings:

    def test_two_categories_one_point(self) -> None:
        features = assemble_layer("decision_points", [
            _warning_row(-117.25, 51.31, "Cornices overhead", "Concern"),
            _warning_row(-117.25, 51.31, "Cross one at a time", "Managing risk"),
        ])

        assert len(features) == 1
        point = features[0]
        assert point.geometry == {"type": "Point", "coordinates": [-117.25, 51.31]}
        assert json.loads(point.properties["warnings"]) == {
            "concern": ["Cornices overhead"],
            "managing-risk": ["Cross one at a time"],
        }
        assert point.properties["table"] == "decision_points"
        assert "warning" not in point.properties
        assert "type" not in point.properties

    def test_one_feature_per_distinct_coordinate(self) -> None:
        rows = [
            _warning_row(1.0, 1.0, "a", "Concern"),
            _warning_row(2.0, 2.0, "b", "Concern"),
            _warning_row(1.0, 1.0, "c", "Concern"),
            _warning_row(3.0, 3.0, "d", "Managing risk"),
        ]
        features = assemble_layer("decision_points", rows)

        assert [f.geometry["coordinates"] for f in features] == [[1.0, 1.0], [2.0, 2.0], [3.0, 3.0]]
        counts = [len(json.loads(f.properties["warnings"])["concern"]) for f in features]
        assert counts == [2, 1, 0]

    def test_unknown_category_dropped_point_kept(self) -> None:
        features = assemble_layer("decision_points", [
            _warning_row(1.0, 1.0, "a", "Concern"),
            _warning_row(1.0, 1.0, "mystery", "Advisory"),
            _warning_row(5.0, 5.0, "only bad", "Advisory"),
        ])

        assert len(features) == 2
        assert json.loads(features[0].properties["warnings"]) == {"concern": ["a"], "managing-risk": []}
        assert json.loads(features[1].properties["warnings"]) == {"concern": [], "managing-risk": []}

    def test_non_point_rows_skipped(self) -> None:
        row = _warning_row(1.0, 1.0, "a", "Concern")
        row["geometry"] = json.dumps(AREA_POLYGON)
        features = assemble_layer("decision_points", [row])
        assert features == []

    def test_warning_text_not_ascii_escaped(self) -> None:
        features = assemble_layer("decision_points", [_warning_row(1.0, 1.0, "Corniches à éviter", "Concern")])
        assert "Corniches à éviter" in features[0].properties["warnings"]

    def test_empty_input(self) -> None:
        assert aggregate_warnings([]) == []


class TestFeatureCollection:

    def test_serialization_round_trip(self, geojson_rows) -> None:
        collection = build_feature_collection(
            assemble_layer(table, rows) for table, rows in geojson_rows.items()
        )
        decoded = json.loads(serialize_geojson(collection))

        assert decoded["type"] == "FeatureCollection"
        assert len(decoded["features"]) == len(collection.features)
        for original, parsed in zip(collection.features, decoded["features"]):
            assert parsed["geometry"]["type"] == original.geometry["type"]
            assert set(parsed["properties"]) == set(original.properties)

    def test_assembly_is_deterministic(self, geojson_rows) -> None:
        def render():
            return serialize_geojson(build_feature_collection(
                assemble_layer(table, rows) for table, rows in geojson_rows.items()
            ))
        assert render() == render()
