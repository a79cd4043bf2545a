"""
KML geometry reparse.

ST_AsKML returns an un-namespaced XML fragment, e.g.

    <Point><coordinates>-117.27,51.30</coordinates></Point>

parse_kml_geometry() reads it into a small tagged union; normalize_geometry()
turns that into the nested list/dict structure consumed by the KML
serializer in document.py:

    {"Point": [{"coordinates": "-117.27,51.30"}]}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from lxml import etree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KmlPoint:
    coordinates: str


@dataclass(frozen=True)
class KmlLineString:
    coordinates: str


@dataclass(frozen=True)
class KmlPolygon:
    outer: str
    inner: Tuple[str, ...] = ()


@dataclass(frozen=True)
class KmlMultiGeometry:
    members: Tuple["KmlGeometry", ...] = ()


@dataclass(frozen=True)
class UnrecognizedGeometry:
    tag: str
    reason: str = ""


KmlGeometry = Union[KmlPoint, KmlLineString, KmlPolygon, KmlMultiGeometry, UnrecognizedGeometry]


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def _coordinates(element: etree._Element, path: str) -> Optional[str]:
    node = element.find(path)
    if node is None or node.text is None:
        return None
    return node.text.strip()


def _ring(boundary: etree._Element) -> Optional[str]:
    return _coordinates(boundary, "LinearRing/coordinates")


def _read_element(element: etree._Element) -> KmlGeometry:
    tag = _local_name(element)

    if tag in ("Point", "LineString"):
        coordinates = _coordinates(element, "coordinates")
        if coordinates is None:
            return UnrecognizedGeometry(tag, "missing coordinates")
        return KmlPoint(coordinates) if tag == "Point" else KmlLineString(coordinates)

    if tag == "Polygon":
        outer_boundary = element.find("outerBoundaryIs")
        outer = _ring(outer_boundary) if outer_boundary is not None else None
        if outer is None:
            return UnrecognizedGeometry(tag, "missing outer boundary")
        inner = tuple(
            ring for ring in (_ring(b) for b in element.findall("innerBoundaryIs"))
            if ring is not None
        )
        return KmlPolygon(outer, inner)

    if tag == "MultiGeometry":
        return KmlMultiGeometry(tuple(_read_element(child) for child in element
                                      if isinstance(child.tag, str)))

    return UnrecognizedGeometry(tag)


def parse_kml_geometry(fragment: Union[str, bytes, None]) -> KmlGeometry:
    """Parse an ST_AsKML fragment. Never raises; bad input is UnrecognizedGeometry."""
    if not fragment:
        return UnrecognizedGeometry("", "empty geometry")

    if isinstance(fragment, str):
        fragment = fragment.encode("utf-8")

    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)
    try:
        root = etree.fromstring(fragment, parser=parser)
    except etree.XMLSyntaxError as e:
        return UnrecognizedGeometry("", f"unparseable fragment: {e}")

    return _read_element(root)


def _linear_ring(coordinates: str) -> Dict[str, Any]:
    return {"LinearRing": [{"coordinates": coordinates}]}


def normalize_geometry(geometry: KmlGeometry) -> Optional[Dict[str, Any]]:
    """
    Convert a parsed geometry to the serializer structure.

    Returns None (after logging) for geometry kinds the exporter does not map.
    """
    if isinstance(geometry, KmlPoint):
        return {"Point": [{"coordinates": geometry.coordinates}]}

    if isinstance(geometry, KmlLineString):
        return {"LineString": [{"coordinates": geometry.coordinates}]}

    if isinstance(geometry, KmlPolygon):
        polygon: List[Dict[str, Any]] = [
            {"outerBoundaryIs": [_linear_ring(geometry.outer)]}
        ]
        if geometry.inner:
            polygon.append({"innerBoundaryIs": [_linear_ring(ring) for ring in geometry.inner]})
        return {"Polygon": polygon}

    if isinstance(geometry, KmlMultiGeometry):
        members = [m for m in (normalize_geometry(g) for g in geometry.members) if m is not None]
        if not members:
            logger.error("MultiGeometry has no recognized members")
            return None
        return {"MultiGeometry": members}

    if isinstance(geometry, UnrecognizedGeometry):
        logger.error(f"Unrecognized KML geometry <{geometry.tag}> {geometry.reason}".rstrip())
        return None

    raise TypeError(f"Not a KML geometry: {geometry!r}")


def point_coordinates(normalized: Optional[Dict[str, Any]]) -> Optional[str]:
    """Coordinate string of a normalized Point, or None for anything else."""
    if not normalized or "Point" not in normalized:
        return None
    return normalized["Point"][0]["coordinates"]
