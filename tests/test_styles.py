"""Tests for the KML style catalog."""

from __future__ import annotations

import pytest

from ates_export.exceptions import ConfigurationError, StyleResolutionError
from ates_export.styles import StyleCatalog, normalize_icon_size, reverse_color


def _style_body(style):
    """(id, style type, children) of a <Style> entry."""
    attributes, body = style["Style"]
    style_type, children = next(iter(body.items()))
    return attributes["_attr"]["id"], style_type, children


class TestResolve:

    def test_rescue_cache(self) -> None:
        assert StyleCatalog().resolve("points_of_interest", "Rescue Cache") == "point_of_interest_rescue_cache_styles"

    def test_zone_class_code_as_string(self) -> None:
        assert StyleCatalog().style_url("zones", "2") == "#zone_blue_style"

    def test_flat_entry_ignores_category(self) -> None:
        assert StyleCatalog().resolve("avalanche_paths", "anything") == "avalanche_path_styles"

    @pytest.mark.parametrize("table,category", [
        ("zones", 4),
        ("zones", None),
        ("points_of_interest", "Volcano"),
        ("glaciers", None),
    ])
    def test_miss_raises(self, table, category) -> None:
        with pytest.raises(StyleResolutionError) as exc_info:
            StyleCatalog().resolve(table, category)
        assert isinstance(exc_info.value, ConfigurationError)


class TestStyleBlocks:

    def test_reverse_color(self) -> None:
        assert reverse_color("aabbccdd") == "ddccbbaa"

    @pytest.mark.parametrize("style_type", ["LineStyle", "PolyStyle", "IconStyle"])
    def test_colors_emitted_reversed(self, style_type) -> None:
        style = StyleCatalog().new_style("s", style_type, [{"color": "aabbccdd"}])
        _, emitted_type, children = _style_body(style)

        assert emitted_type == style_type
        assert {"color": "ddccbbaa"} in children

    def test_line_style_width_first(self) -> None:
        style = StyleCatalog(line_width=5).new_style("s", "LineStyle", [{"gx:outerColor": "11223344"}])
        _, _, children = _style_body(style)
        assert children == [{"width": 5}, {"gx:outerColor": "44332211"}]

    def test_unknown_style_type(self) -> None:
        with pytest.raises(ValueError):
            StyleCatalog().new_style("s", "LabelStyle", [])

    def test_icon_href(self) -> None:
        catalog = StyleCatalog(icon_dir="icons", icon_size=15)
        assert catalog.icon_directory == "icons-15"
        assert catalog.icon("shelter") == {"Icon": [{"href": "icons-15/new-shelter-15.png"}]}

    def test_header_covers_every_style_url(self) -> None:
        catalog = StyleCatalog()
        ids = {_style_body(style)[0] for style in catalog.header_styles()}
        for entry in catalog.style_urls.values():
            expected = {entry} if isinstance(entry, str) else set(entry.values())
            assert expected <= ids


class TestIconSize:

    @pytest.mark.parametrize("value,expected", [(11, 11), ("15", 15), (12, 11), (None, 11), ("big", 11)])
    def test_normalize(self, value, expected) -> None:
        assert normalize_icon_size(value) == expected
