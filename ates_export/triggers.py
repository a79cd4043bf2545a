# ============================================================================
# CLAUDE CONTEXT - ATES EXPORT TRIGGERS
# ============================================================================
# STATUS: Standalone HTTP Triggers - ATES export endpoint
# PURPOSE: Azure Functions HTTP trigger wrapping ExportService
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: get_export_triggers (returns list of trigger configurations)
# INTERFACES: Azure Functions HttpRequest/HttpResponse
# DEPENDENCIES: azure.functions, json, util_logger
# SOURCE: HTTP requests from map clients and download links
# SCOPE: Parameter parsing and response formatting only
# PATTERNS: Trigger Pattern, Factory Pattern (get_export_triggers)
# ENTRY_POINTS: Function App route registration via get_export_triggers()
# ============================================================================

"""
ATES Export HTTP Trigger

    GET /api/ates/{lang}/{area_id}/{output_format}?icon_size=15&icon_dir=files

output_format is one of geojson, kml, kmz. KML and KMZ responses are sent
as attachments named after the area.

Integration:
    In function_app.py:

    from ates_export import get_export_triggers

    for trigger in get_export_triggers():
        app.route(
            route=trigger['route'],
            methods=trigger['methods'],
            auth_level=func.AuthLevel.ANONYMOUS
        )(trigger['handler'])
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import azure.functions as func

from util_logger import ComponentType, LoggerFactory

from .exceptions import ConfigurationError, ExportError
from .models import OutputFormat
from .query import parse_output_format
from .service import ExportService

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "ATESExportTrigger")

GEOJSON_MIMETYPE = "application/geo+json"
KML_MIMETYPE = "application/vnd.google-earth.kml+xml"
KMZ_MIMETYPE = "application/vnd.google-earth.kmz"

# KMZ is packaged KML; every other route format must name an OutputFormat
KMZ_FORMAT = "kmz"


def get_export_triggers() -> List[Dict[str, Any]]:
    """
    Trigger configurations for function_app.py.

    Returns:
        List of dicts with keys route, methods, handler
    """
    return [
        {
            'route': 'ates/{lang}/{area_id}/{output_format}',
            'methods': ['GET'],
            'handler': ATESExportTrigger().handle
        }
    ]


def _attachment(name: str, extension: str) -> Dict[str, str]:
    filename = (name or "export").replace('"', "'")
    return {"Content-Disposition": f'attachment; filename="{filename}.{extension}"'}


class ATESExportTrigger:
    """
    Export trigger.

    The service is created on first request so that importing the module
    (route registration) never touches configuration.
    """

    def __init__(self, service_factory: Callable[[], ExportService] = ExportService):
        self._service_factory = service_factory
        self._service: Optional[ExportService] = None

    @property
    def service(self) -> ExportService:
        if self._service is None:
            self._service = self._service_factory()
        return self._service

    def _parse_route(self, req: func.HttpRequest) -> Tuple[str, int, OutputFormat, bool]:
        """
        Returns:
            (lang, area_id, output format, packaged as KMZ)

        Raises:
            ValueError: Bad area id or unsupported format
        """
        lang = req.route_params.get('lang')
        raw_area_id = req.route_params.get('area_id')
        raw_format = req.route_params.get('output_format') or ""

        try:
            area_id = int(raw_area_id)
        except (TypeError, ValueError):
            raise ValueError(f"area_id must be an integer, got '{raw_area_id}'")

        packaged = raw_format.lower() == KMZ_FORMAT
        try:
            output_format = OutputFormat.KML if packaged else parse_output_format(raw_format)
        except ConfigurationError as e:
            raise ValueError(f"{e}; expected one of geojson, kml, kmz")

        return lang, area_id, output_format, packaged

    def _error_response(
        self,
        message: str,
        status_code: int = 400,
        error_type: str = "BadRequest"
    ) -> func.HttpResponse:
        error_body = {
            "code": error_type,
            "description": message
        }
        return func.HttpResponse(
            body=json.dumps(error_body, indent=2),
            status_code=status_code,
            mimetype="application/json"
        )

    def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        """
        Handle an export request.

        Args:
            req: Azure Functions HTTP request

        Returns:
            GeoJSON, KML or KMZ body; JSON error body on failure
        """
        try:
            lang, area_id, output_format, packaged = self._parse_route(req)
        except ValueError as e:
            logger.warning(f"Rejected export request: {e}")
            return self._error_response(str(e))

        icon_size = req.params.get('icon_size')
        icon_dir = req.params.get('icon_dir')

        logger.info(
            f"Export requested: area {area_id}, {lang}, "
            f"{KMZ_FORMAT if packaged else output_format.value}"
        )

        try:
            if output_format is OutputFormat.GEOJSON:
                body = self.service.export_geojson_text(area_id, lang)
                return func.HttpResponse(body=body, status_code=200, mimetype=GEOJSON_MIMETYPE)

            if not packaged:
                name, body = self.service.export_kml(area_id, lang, icon_size, icon_dir)
                return func.HttpResponse(
                    body=body,
                    status_code=200,
                    mimetype=KML_MIMETYPE,
                    headers=_attachment(name, "kml")
                )

            name, archive = self.service.export_kmz(area_id, lang, icon_size, icon_dir)
            return func.HttpResponse(
                body=archive.read(),
                status_code=200,
                mimetype=KMZ_MIMETYPE,
                headers=_attachment(name, "kmz")
            )

        except ExportError as e:
            logger.error(f"Export failed ({e.error_type}): {e}")
            return func.HttpResponse(
                body=json.dumps(e.to_dict(), indent=2),
                status_code=e.status_code,
                mimetype="application/json"
            )
        except Exception as e:
            logger.error(f"Unexpected export error: {e}")
            return self._error_response(
                message=f"Internal server error: {str(e)}",
                status_code=500,
                error_type="InternalServerError"
            )
