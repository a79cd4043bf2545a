# ============================================================================
# CLAUDE CONTEXT - ATES EXPORT MODULE
# ============================================================================
# STATUS: Standalone Module - ATES terrain export
# PURPOSE: Export one ATES area (PostGIS) as GeoJSON, KML or KMZ
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: ExportService, ExportConfig, get_export_config, get_export_triggers
# DEPENDENCIES: psycopg, pydantic, lxml, azure-functions
# ENTRY_POINTS: from ates_export import get_export_triggers
# ============================================================================

"""
ATES Export - Standalone Module

Architecture:
    ates_export/
    ├── config.py        # Environment-based export settings
    ├── exceptions.py    # Error taxonomy with HTTP mapping
    ├── models.py        # LayerSpec, CompiledQuery, Feature models
    ├── layers.py        # Fixed layer catalog
    ├── query.py         # LayerSpec -> psycopg.sql
    ├── repository.py    # PostGIS access (psycopg)
    ├── geojson.py       # GeoJSON assembler
    ├── kml_geometry.py  # ST_AsKML fragment reparse
    ├── kml.py           # KML assembler
    ├── styles.py        # KML style catalog
    ├── document.py      # FeatureCollection / KML document builder
    ├── kmz.py           # KMZ packaging
    ├── service.py       # Export orchestration
    └── triggers.py      # Azure Functions HTTP handler
"""

from .config import ExportConfig, get_export_config
from .service import ExportService
from .triggers import get_export_triggers

__version__ = "1.0.0"
__all__ = [
    "ExportConfig",
    "ExportService",
    "get_export_config",
    "get_export_triggers"
]
