"""Shared pytest fixtures for the ATES export test suite.

No database is needed: FakeFetcher implements the RowFetcher interface and
returns canned rows per table, matched against the composed SQL text.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

import pytest

from ates_export.config import ExportConfig
from ates_export.exceptions import QueryExecutionError
from ates_export.service import ExportService

AREA_ID = 357

AREA_POLYGON = {
    "type": "Polygon",
    "coordinates": [[[-117.5, 51.2], [-117.1, 51.2], [-117.1, 51.4], [-117.5, 51.4], [-117.5, 51.2]]],
}
AREA_ENVELOPE = AREA_POLYGON

KML_AREA_POLYGON = (
    "<Polygon><outerBoundaryIs><LinearRing><coordinates>"
    "-117.5,51.2 -117.1,51.2 -117.1,51.4 -117.5,51.4 -117.5,51.2"
    "</coordinates></LinearRing></outerBoundaryIs></Polygon>"
)


def kml_point(x: float, y: float) -> str:
    return f"<Point><coordinates>{x},{y}</coordinates></Point>"


def geojson_point(x: float, y: float) -> str:
    return json.dumps({"type": "Point", "coordinates": [x, y]})


# ---------------------------------------------------------------------------
# Fake row fetcher
# ---------------------------------------------------------------------------


class FakeFetcher:
    """Canned rows per table; optionally fails for one table."""

    def __init__(self, rows: Dict[str, List[Dict[str, Any]]], fail_on: Optional[str] = None):
        self.rows = rows
        self.fail_on = fail_on
        self.calls: List[tuple] = []

    @staticmethod
    def table_of(query) -> str:
        text = query.as_string(None)
        return text.split(" FROM ", 1)[1].split()[0].strip('"')

    def execute(self, query, params: Sequence[Any]) -> List[Dict[str, Any]]:
        table = self.table_of(query)
        self.calls.append((table, tuple(params)))
        if table == self.fail_on:
            raise QueryExecutionError("connection reset by peer")
        return [dict(row) for row in self.rows.get(table, [])]


# ---------------------------------------------------------------------------
# Canned rows
# ---------------------------------------------------------------------------


@pytest.fixture()
def geojson_rows() -> Dict[str, List[Dict[str, Any]]]:
    """Area 357: one area row, a Cabin and a Lake, nothing else."""
    return {
        "areas_vw": [{
            "geometry": json.dumps(AREA_POLYGON),
            "bounding_box": json.dumps(AREA_ENVELOPE),
            "id": AREA_ID,
            "name": "Sunshine Ridge",
        }],
        "points_of_interest": [
            {"geometry": geojson_point(-117.3, 51.3), "id": 1, "area_id": AREA_ID,
             "name": "Ridge Hut", "type": "Cabin", "comments": None},
            {"geometry": geojson_point(-117.2, 51.25), "id": 2, "area_id": AREA_ID,
             "name": "Tarn", "type": "Lake", "comments": "Frozen until June"},
        ],
    }


@pytest.fixture()
def kml_rows() -> Dict[str, List[Dict[str, Any]]]:
    """Area 357 in KML: area, one Cabin, one decision point with two warnings, one zone."""
    return {
        "areas_vw": [{"geometry": KML_AREA_POLYGON, "name": "Sunshine Ridge"}],
        "points_of_interest": [
            {"geometry": kml_point(-117.3, 51.3), "name": "Ridge Hut", "type": "Cabin", "comments": None},
        ],
        "decision_points": [
            {"geometry": kml_point(-117.25, 51.31), "name": "Col", "comments": "Regroup here",
             "warning": "Cornices overhead", "type": "Concern"},
            {"geometry": kml_point(-117.25, 51.31), "name": "Col", "comments": "Regroup here",
             "warning": "Cross one at a time", "type": "Managing risk"},
        ],
        "zones": [
            {"geometry": KML_AREA_POLYGON, "class_code": 2, "comments": None},
        ],
    }


@pytest.fixture()
def export_config(tmp_path) -> ExportConfig:
    return ExportConfig(
        icon_dir="files",
        icon_root=str(tmp_path),
        icon_size=11,
        default_language="en",
        query_timeout_seconds=5,
        max_workers=3,
        line_width=3,
    )


@pytest.fixture()
def make_service(export_config):
    """Build an ExportService over canned rows."""
    def _make(rows, fail_on: Optional[str] = None):
        fetcher = FakeFetcher(rows, fail_on=fail_on)
        return ExportService(config=export_config, fetcher=fetcher), fetcher
    return _make
