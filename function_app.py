# ============================================================================
# CLAUDE CONTEXT - AZURE FUNCTIONS ENTRY POINT
# ============================================================================
# STATUS: Core Infrastructure - Function App Entry Point
# PURPOSE: Main entry point for Azure Functions runtime with the ATES export endpoint
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: app (FunctionApp instance)
# DEPENDENCIES: azure-functions, ates_export
# ============================================================================

"""
Azure Functions Entry Point for the ATES export app.

Endpoints:
    - GET /api/ates/{lang}/{area_id}/{output_format} - GeoJSON, KML or KMZ

Deployment:
    - Local: func start
    - Azure: func azure functionapp publish <app-name> --python --build remote
"""

import azure.functions as func
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Azure Function App
app = func.FunctionApp()

# ============================================================================
# ATES Export - 1 Endpoint
# ============================================================================

try:
    from ates_export import get_export_triggers

    logger.info("Registering ATES export endpoint...")

    triggers = get_export_triggers()

    @app.route(route="ates/{lang}/{area_id}/{output_format}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
    def ates_export(req: func.HttpRequest) -> func.HttpResponse:
        return triggers[0]['handler'](req)

    logger.info("✅ ATES export registered successfully")

except ImportError as e:
    logger.warning(f"⚠️ ATES export module not available: {e}")
    logger.warning("ATES export will not be available")

# ============================================================================
# Application Startup
# ============================================================================

logger.info("="*60)
logger.info("Function App initialized successfully")
logger.info("Available endpoints:")
logger.info("  - GET /api/ates/{lang}/{area_id}/{geojson|kml|kmz} - Area export")
logger.info("="*60)
