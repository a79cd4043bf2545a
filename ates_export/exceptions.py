# ============================================================================
# CLAUDE CONTEXT - ATES EXPORT EXCEPTIONS
# ============================================================================
# STATUS: Standalone Module - Error taxonomy for the export pipeline
# PURPOSE: Distinguishable error types for configuration, query, geometry and aggregation failures
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: ExportError, ConfigurationError, StyleResolutionError, QueryExecutionError,
#          GeometryDecodeError, WarningAggregationError
# DEPENDENCIES: typing
# PATTERNS: Exception hierarchy with HTTP mapping
# ============================================================================

"""
ATES Export Exceptions

Error taxonomy used across the export pipeline:

- ConfigurationError: fatal, raised before any query runs (unknown locale,
  unknown output format, unresolved style lookup)
- QueryExecutionError: fatal for the whole export (database failure on any layer)
- GeometryDecodeError: fatal on the GeoJSON path (geometry payload is not JSON)
- WarningAggregationError: per-row, caught and logged by the assemblers

Each error carries an error_type and status_code so the trigger layer can
turn it into a JSON error body without inspecting the message.
"""

from typing import Any, Dict, Optional


class ExportError(Exception):
    """Base class for all export pipeline errors."""

    error_type = "ExportError"
    status_code = 500

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.table = table

    def to_dict(self) -> Dict[str, Any]:
        """Error body for HTTP responses."""
        body = {
            "code": self.error_type,
            "description": self.message
        }
        if self.table:
            body["table"] = self.table
        return body


class ConfigurationError(ExportError):
    """Static configuration does not cover the request (locale, format, layer)."""

    error_type = "ConfigurationError"


class StyleResolutionError(ConfigurationError):
    """A placemark could not be matched to a style in the style catalog."""

    error_type = "StyleResolutionError"


class QueryExecutionError(ExportError):
    """A layer query failed; the export is aborted."""

    error_type = "QueryExecutionError"
    status_code = 502


class GeometryDecodeError(ExportError):
    """Geometry payload could not be decoded as GeoJSON."""

    error_type = "GeometryDecodeError"


class WarningAggregationError(ExportError):
    """A decision point warning row could not be merged into its point."""

    error_type = "WarningAggregationError"
