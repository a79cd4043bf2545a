# ============================================================================
# CLAUDE CONTEXT - KML ASSEMBLER
# ============================================================================
# STATUS: Standalone Module - Row to KML Placemark mapping
# PURPOSE: Build Placemarks from ST_AsKML rows, resolve styles, render decision point warnings
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: prepare_row, build_placemark, aggregate_warnings, warnings_popup,
#          assemble_layer, assemble_document
# DEPENDENCIES: html, logging
# SOURCE: Layer rows (repository), StyleCatalog (styles.py)
# PATTERNS: Pure transforms (no I/O)
# ============================================================================

"""
KML Assembler

Each row's ST_AsKML fragment is reparsed into the serializer structure
(kml_geometry.py), then turned into a Placemark: an ordered list of entries

    geometry, name?, description?, ExtendedData?, styleUrl

Decision points arrive as one row per warning. They are kept as raw rows
until aggregate_warnings() has collapsed them to one row per point, whose
description is an HTML table of the point's warnings.
"""

import html
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .exceptions import WarningAggregationError
from .kml_geometry import normalize_geometry, parse_kml_geometry, point_coordinates
from .layers import AREA_TABLE, DECISION_POINTS_TABLE
from .styles import StyleCatalog
from .document import build_folder, build_kml_document

logger = logging.getLogger(__name__)

CONCERN = "Concern"
MANAGING_RISK = "Managing risk"
WARNING_CATEGORIES = (CONCERN, MANAGING_RISK)

# CSS class of the bullet glyph, per category
WARNING_BULLETS = {
    CONCERN: "red-x",
    MANAGING_RISK: "green-check",
}
BULLET_GLYPH = "\u2717"  # ✗

POPUP_STYLE = (
    '<meta http-equiv="Content-Type" content="text/html; charset=utf-8">'
    '<style type="text/css"><!--'
    '.orange-table {border: 1px solid black; background-color: #FFC000; font-size:9.0pt; padding: 10px 0; width: 333px;} '
    '.orange-table td, th { padding: 2px 10px; } '
    '.orange-table th { font-weight: bold; border-top: 1px solid black; text-align: left; } '
    '.orange-table th.first { border: none; } '
    '.green-check { color:#008A00; font-size:larger; display: block; float: left; padding-right: 4px; } '
    '.red-x { color: red; font-size: larger; display: block; float: left; padding-right: 4px; } '
    '--></style>'
)

DESCRIPTION_SEPARATOR = "\n"


def _present(value: Any) -> bool:
    return value is not None and value != ""


# ============================================================================
# ROWS
# ============================================================================

def prepare_row(row: Mapping[str, Any], table: str) -> Dict[str, Any]:
    """
    Tag a row with its layer and reparse its geometry.

    Unrecognized geometry is logged by normalize_geometry() and leaves the
    row without geometry.
    """
    prepared = dict(row)
    prepared["table"] = table
    prepared["geometry"] = normalize_geometry(parse_kml_geometry(row.get("geometry")))
    if prepared["geometry"] is None:
        logger.warning(f"Row from '{table}' exported without geometry")
    return prepared


def _extend_data(placemark: List[Dict[str, Any]], name: str, value: Any) -> None:
    """Add a <Data> entry, reusing the placemark's ExtendedData block if there is one."""
    data = {"Data": [{"_attr": {"name": name}}, {"value": value}]}
    for entry in placemark:
        if "ExtendedData" in entry:
            entry["ExtendedData"].append(data)
            return
    placemark.append({"ExtendedData": [data]})


def build_placemark(row: Mapping[str, Any], styles: StyleCatalog) -> List[Dict[str, Any]]:
    """
    Build one Placemark.

    Style precedence: class_code, then type, then the table's own style.

    Raises:
        StyleResolutionError: If no style matches
    """
    table = row["table"]
    placemark: List[Dict[str, Any]] = []

    if row.get("geometry"):
        placemark.append(row["geometry"])

    if _present(row.get("name")):
        placemark.append({"name": row["name"]})

    lines = [row[key] for key in ("comments", "description", "type") if _present(row.get(key))]
    if lines:
        placemark.append({"description": DESCRIPTION_SEPARATOR.join(str(line) for line in lines)})

    category = None
    if _present(row.get("type")):
        category = row["type"]

    if _present(row.get("warnings")):
        _extend_data(placemark, "warnings", row["warnings"])

    if _present(row.get("class_code")):
        _extend_data(placemark, "class_code", row["class_code"])
        category = row["class_code"]

    placemark.append({"styleUrl": styles.style_url(table, category)})
    return placemark


# ============================================================================
# DECISION POINT WARNINGS
# ============================================================================

def _checklist(bullet: str, warnings: Sequence[Any]) -> str:
    rows = []
    for warning in warnings:
        text = html.escape(str(warning).replace("\\'", "'"), quote=False)
        rows.append(f'<tr><td><span class="{bullet}">{BULLET_GLYPH}</span>{text}</td></tr>')
    return "".join(rows)


def warnings_table(warnings: Mapping[str, Sequence[Any]]) -> str:
    concerns = _checklist(WARNING_BULLETS[CONCERN], warnings.get(CONCERN, []))
    risks = _checklist(WARNING_BULLETS[MANAGING_RISK], warnings.get(MANAGING_RISK, []))
    return (
        '<table class="orange-table"><tbody>'
        f'<tr><th class="first">{CONCERN}</th></tr>{concerns}'
        f'<tr><th>{MANAGING_RISK}</th></tr>{risks}'
        '</tbody></table>'
    )


def warnings_popup(warnings: Mapping[str, Sequence[Any]], comments: Optional[Any] = None) -> str:
    """Self-contained HTML (style block, escaped comments, table) for a KML description."""
    note = f"<p>{html.escape(str(comments), quote=False)}</p>" if _present(comments) else ""
    return POPUP_STYLE + note + warnings_table(warnings)


def aggregate_warnings(rows: Sequence[Mapping[str, Any]], default_name: str = "") -> List[Dict[str, Any]]:
    """
    Collapse per-warning decision point rows into one row per point.

    The key is the normalized Point coordinate string. Scalar columns come from
    the first row seen for a point. Rows without a point or with an unknown
    category are logged and skipped.
    """
    groups: Dict[str, Dict[str, Any]] = {}

    for row in rows:
        try:
            key = point_coordinates(row.get("geometry"))
            if key is None:
                raise WarningAggregationError(
                    "Decision point warning row has no point geometry",
                    table=DECISION_POINTS_TABLE
                )

            group = groups.get(key)
            if group is None:
                group = groups[key] = {
                    "warnings": {category: [] for category in WARNING_CATEGORIES},
                    "properties": {
                        k: v for k, v in row.items() if k not in ("geometry", "type", "warning")
                    }
                }

            category = row.get("type")
            if category not in WARNING_CATEGORIES:
                raise WarningAggregationError(
                    f"Unknown warning category '{category}' for warning {row.get('warning')!r}",
                    table=DECISION_POINTS_TABLE
                )
            group["warnings"][category].append(row.get("warning"))
        except WarningAggregationError as e:
            logger.warning(f"Skipping decision point warning row: {e}")

    aggregated = []
    for key, group in groups.items():
        properties = group["properties"]
        aggregated.append({
            "table": DECISION_POINTS_TABLE,
            "geometry": {"Point": [{"coordinates": key}]},
            "name": properties.get("name") if _present(properties.get("name")) else default_name,
            "description": warnings_popup(group["warnings"], properties.get("comments")),
        })

    logger.debug(f"Aggregated {len(rows)} warning rows into {len(aggregated)} decision points")
    return aggregated


# ============================================================================
# LAYERS AND DOCUMENT
# ============================================================================

def assemble_layer(
    table: str,
    rows: Sequence[Mapping[str, Any]],
    styles: StyleCatalog,
    display_name: str = ""
) -> List[List[Dict[str, Any]]]:
    """Map a layer's rows to Placemarks; decision points go through aggregation first."""
    prepared = [prepare_row(row, table) for row in rows]
    if table == DECISION_POINTS_TABLE:
        prepared = aggregate_warnings(prepared, default_name=display_name)
    return [build_placemark(row, styles) for row in prepared]


def area_name(rows: Sequence[Mapping[str, Any]], fallback: str) -> str:
    """The area layer returns a single row; its name names the document."""
    if rows and _present(rows[0].get("name")):
        return str(rows[0]["name"])
    logger.warning(f"Area layer returned no name; using '{fallback}'")
    return fallback


def assemble_document(
    layers: Sequence[Tuple[str, str, Sequence[Mapping[str, Any]]]],
    styles: StyleCatalog,
    fallback_name: str = ""
) -> List[Dict[str, Any]]:
    """
    Build the full KML structure.

    Args:
        layers: (table, display name, rows) per layer, in document order
        styles: Style catalog for this export
        fallback_name: Document name when the area layer has no row

    Returns:
        Structure for document.serialize_kml()
    """
    name: Optional[str] = None
    folders = []
    for table, display_name, rows in layers:
        if table == AREA_TABLE:
            name = area_name(rows, fallback_name)
        placemarks = assemble_layer(table, rows, styles, display_name)
        folders.append(build_folder(display_name, placemarks))

    return build_kml_document(name if name is not None else fallback_name, folders, styles.header_styles())
