# ============================================================================
# CLAUDE CONTEXT - KML STYLE CATALOG
# ============================================================================
# STATUS: Standalone Module - Static KML styling
# PURPOSE: Style ids per layer/category and the <Style> blocks for the KML header
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: StyleCatalog, STYLE_URLS, reverse_color, normalize_icon_size, VALID_ICON_SIZES
# DEPENDENCIES: types, typing
# SCOPE: KML output only
# PATTERNS: Static lookup table, read-only after construction
# ============================================================================

"""
KML Style Catalog

Colors are written here in the usual RRGGBBAA order. KML wants AABBGGRR,
so every color value is reversed when a <Style> block is emitted.

Style ids:
    zones               class_code 1..3 -> green / blue / black
    points_of_interest  type ('Cabin', 'Rescue Cache', ...) -> per-type icon
    everything else     one style per table

Icons live in '<icon_dir>-<icon_size>/new-<icon>-<icon_size>.png'; the KMZ
writer ships that directory next to doc.kml.
"""

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from .exceptions import StyleResolutionError

VALID_ICON_SIZES = (11, 15)
DEFAULT_ICON_SIZE = 11
DEFAULT_LINE_WIDTH = 3  # pixels
ICON_EXTENSION = "png"

POI_COLOR = "000000ff"
FULL_TRANSPARENT = "00000000"
DECISION_POINT_COLOR = "ffc107ff"

StyleEntry = Union[str, Mapping[Any, str]]

STYLE_URLS: Mapping[str, StyleEntry] = MappingProxyType({
    "zones": MappingProxyType({
        1: "zone_green_style",
        2: "zone_blue_style",
        3: "zone_black_style",
    }),
    "areas_vw": "area_styles",
    "access_roads": "access_road_styles",
    "avalanche_paths": "avalanche_path_styles",
    "decision_points": "decision_point_styles",
    "points_of_interest": MappingProxyType({
        "Other": "point_of_interest_other_styles",
        "Parking": "point_of_interest_parking_styles",
        "Rescue Cache": "point_of_interest_rescue_cache_styles",
        "Cabin": "point_of_interest_cabin_styles",
        "Destination": "point_of_interest_destination_styles",
        "Lake": "point_of_interest_lake_styles",
        "Mountain": "point_of_interest_mountain_styles",
    }),
})

# Icon file stem per point of interest type
POI_ICONS = {
    "Other": "marker",
    "Parking": "parking",
    "Rescue Cache": "blood-bank",
    "Cabin": "shelter",
    "Destination": "attraction",
    "Lake": "water",
    "Mountain": "mountain",
}

ZONE_COLORS = {
    1: "55ff0088",  # green
    2: "0000ff88",  # blue
    3: "00000088",  # black
}


def reverse_color(color: str) -> str:
    """RRGGBBAA -> AABBGGRR"""
    return color[::-1]


def is_color_key(key: str) -> bool:
    """'color', 'gx:outerColor', ..."""
    return key.split(":")[-1].lower().endswith("color")


def normalize_icon_size(icon_size: Any) -> int:
    """11 or 15; anything else falls back to 11."""
    try:
        size = int(icon_size)
    except (TypeError, ValueError):
        return DEFAULT_ICON_SIZE
    return size if size in VALID_ICON_SIZES else DEFAULT_ICON_SIZE


class StyleCatalog:
    """
    Static styling for one KML export.

    The icon directory and size only change the icon hrefs; style ids are the
    same for every export.
    """

    def __init__(
        self,
        icon_dir: str = "files",
        icon_size: int = DEFAULT_ICON_SIZE,
        line_width: int = DEFAULT_LINE_WIDTH,
        style_urls: Mapping[str, StyleEntry] = STYLE_URLS
    ):
        self.icon_dir = icon_dir
        self.icon_size = normalize_icon_size(icon_size)
        self.line_width = line_width
        self.style_urls = style_urls

    @property
    def icon_directory(self) -> str:
        return f"{self.icon_dir}-{self.icon_size}"

    # ========================================================================
    # STYLE URL RESOLUTION
    # ========================================================================

    def resolve(self, table: str, category: Optional[Any] = None) -> str:
        """
        Resolve the style id for a placemark.

        Args:
            table: Source layer
            category: class_code or type, for layers styled per category

        Returns:
            Style id (without '#')

        Raises:
            StyleResolutionError: If the table or category has no style
        """
        entry = self.style_urls.get(table)
        if entry is None:
            raise StyleResolutionError(f"No style for table '{table}'", table=table)

        if isinstance(entry, str):
            return entry

        if category is None:
            raise StyleResolutionError(
                f"Table '{table}' is styled per category but the row has none",
                table=table
            )

        style = entry.get(category)
        if style is None and isinstance(category, str) and category.strip().isdigit():
            style = entry.get(int(category))
        if style is None:
            raise StyleResolutionError(f"No style for '{table}' category {category!r}", table=table)
        return style

    def style_url(self, table: str, category: Optional[Any] = None) -> str:
        return f"#{self.resolve(table, category)}"

    # ========================================================================
    # <Style> BLOCKS
    # ========================================================================

    def icon(self, name: str) -> Dict[str, Any]:
        href = f"{self.icon_directory}/new-{name}-{self.icon_size}.{ICON_EXTENSION}"
        return {"Icon": [{"href": href}]}

    def new_style(self, style_id: str, style_type: str, stylings: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Build one <Style> block.

        Args:
            style_id: Value of the id attribute
            style_type: 'LineStyle', 'PolyStyle' or 'IconStyle'
            stylings: Child entries; color values in RRGGBBAA order
        """
        defaults: List[Dict[str, Any]] = []
        if style_type == "LineStyle":
            defaults.append({"width": self.line_width})
        elif style_type not in ("PolyStyle", "IconStyle"):
            raise ValueError(f"Unknown style type '{style_type}'")

        recolored = []
        for styling in stylings:
            recolored.append({
                key: reverse_color(value) if is_color_key(key) else value
                for key, value in styling.items()
            })

        return {
            "Style": [
                {"_attr": {"id": style_id}},
                {style_type: defaults + recolored}
            ]
        }

    def header_styles(self) -> List[Dict[str, Any]]:
        """Every <Style> block, flattened in catalog order."""
        urls = self.style_urls
        styles = [
            self.new_style(urls["zones"][code], "PolyStyle", [{"color": color}])
            for code, color in ZONE_COLORS.items()
        ]
        styles.append(self.new_style(urls["areas_vw"], "PolyStyle", [
            {"color": FULL_TRANSPARENT}
        ]))
        styles.append(self.new_style(urls["access_roads"], "LineStyle", [
            {"color": "ffff00ff"},  # yellow
            {"gx:outerColor": "ff00ff00"},  # green
            {"gx:outerWidth": self.line_width + 5},
        ]))
        styles.append(self.new_style(urls["avalanche_paths"], "LineStyle", [
            {"color": "ff0000ff"}
        ]))
        styles.append(self.new_style(urls["decision_points"], "IconStyle", [
            {"color": DECISION_POINT_COLOR},
            self.icon("decision-point-icon"),
        ]))
        for poi_type, icon in POI_ICONS.items():
            styles.append(self.new_style(urls["points_of_interest"][poi_type], "IconStyle", [
                {"color": POI_COLOR},
                self.icon(icon),
            ]))
        return styles
