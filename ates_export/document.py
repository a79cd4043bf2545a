# ============================================================================
# CLAUDE CONTEXT - DOCUMENT BUILDER
# ============================================================================
# STATUS: Standalone Module - Output document envelopes
# PURPOSE: Wrap per-layer features/placemarks into a FeatureCollection or KML Document
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: build_feature_collection, build_folder, build_kml_document, serialize_kml,
#          KML_NAMESPACE, GX_NAMESPACE
# DEPENDENCIES: lxml, json
# SOURCE: Assembled features (geojson.py) and placemarks (kml.py)
# PATTERNS: Builder
# ============================================================================

"""
Document Builder

GeoJSON: per-layer Feature lists are flattened, in layer order, into one
FeatureCollection.

KML: the assemblers produce a nested structure (dicts keyed by element
name, lists of children, {"_attr": {...}} for attributes) that
serialize_kml() turns into an lxml tree:

    [{"kml": [{"Document": [{"name": "Area 51"}, {"Style": [...]}, {"Folder": [...]}]}]}]
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Sequence

from lxml import etree

from .models import Feature, FeatureCollection

logger = logging.getLogger(__name__)

KML_NAMESPACE = "http://www.opengis.net/kml/2.2"
GX_NAMESPACE = "http://www.google.com/kml/ext/2.2"
NSMAP = {None: KML_NAMESPACE, "gx": GX_NAMESPACE}

ATTRIBUTES_KEY = "_attr"


# ============================================================================
# GEOJSON
# ============================================================================

def build_feature_collection(per_layer_features: Iterable[Sequence[Feature]]) -> FeatureCollection:
    features: List[Feature] = []
    for layer_features in per_layer_features:
        features.extend(layer_features)
    return FeatureCollection(features=features)


def serialize_geojson(collection: FeatureCollection) -> str:
    return json.dumps(collection.to_geojson(), ensure_ascii=False, default=str)


# ============================================================================
# KML
# ============================================================================

def build_folder(name: str, placemarks: Iterable[List[Dict[str, Any]]]) -> Dict[str, Any]:
    """One <Folder> per layer: name first, then its placemarks."""
    children: List[Dict[str, Any]] = [{"name": name}]
    children.extend({"Placemark": placemark} for placemark in placemarks)
    return {"Folder": children}


def build_kml_document(
    name: str,
    folders: Sequence[Dict[str, Any]],
    styles: Sequence[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """
    Root <kml> element holding one <Document>.

    Args:
        name: Document name (the area's name)
        folders: Output of build_folder(), one per layer
        styles: StyleCatalog.header_styles()
    """
    document: List[Dict[str, Any]] = [{"name": name}]
    document.extend(styles)
    document.extend(folders)
    return [{"kml": [{"Document": document}]}]


def _qualified(tag: str) -> str:
    if ":" in tag:
        prefix, local = tag.split(":", 1)
        namespace = NSMAP.get(prefix)
        if namespace is None:
            raise ValueError(f"Unknown namespace prefix '{prefix}' in <{tag}>")
        return f"{{{namespace}}}{local}"
    return f"{{{KML_NAMESPACE}}}{tag}"


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def _append(parent: etree._Element, node: Dict[str, Any]) -> None:
    for tag, value in node.items():
        if tag == ATTRIBUTES_KEY:
            for attr, attr_value in value.items():
                parent.set(attr, _text(attr_value))
            continue

        element = etree.SubElement(parent, _qualified(tag))
        if isinstance(value, list):
            for child in value:
                _append(element, child)
        elif isinstance(value, dict):
            _append(element, value)
        elif value is not None:
            element.text = _text(value)


def to_element(tree: List[Dict[str, Any]]) -> etree._Element:
    """Build the lxml tree for the output of build_kml_document()."""
    if len(tree) != 1 or "kml" not in tree[0]:
        raise ValueError("KML structure must have a single <kml> root")

    root = etree.Element(_qualified("kml"), nsmap=NSMAP)
    for child in tree[0]["kml"]:
        _append(root, child)
    return root


def serialize_kml(tree: List[Dict[str, Any]]) -> bytes:
    root = to_element(tree)
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", pretty_print=True)


def document_name(tree: List[Dict[str, Any]]) -> str:
    """Name of the <Document>, used for the download file name."""
    for child in tree[0]["kml"]:
        if "Document" in child:
            for entry in child["Document"]:
                if "name" in entry:
                    return str(entry["name"])
    return ""
