# ============================================================================
# CLAUDE CONTEXT - ATES EXPORT SERVICE
# ============================================================================
# STATUS: Standalone Service - Export orchestration
# PURPOSE: Compile layer queries, run them concurrently, assemble and serialize documents
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: ExportService
# INTERFACES: RowFetcher (repository.py)
# DEPENDENCIES: concurrent.futures, util_logger
# SOURCE: Repository layer (ATESRepository or any RowFetcher)
# SCOPE: One area, one language, one output format per call
# PATTERNS: Service Layer, Fan-out / fan-in
# ENTRY_POINTS: service = ExportService(); name, kml = service.export_kml(357, "en")
# ============================================================================

"""
ATES Export Service - Orchestration Layer

Every export follows the same shape:

    build_layers -> compile_any (per layer) -> _fetch_all (thread pool)
        -> assemble (GeoJSON or KML) -> serialize (-> KMZ)

All layer queries of one export run in parallel, each on its own
connection. The join is all-or-nothing: the first failed query cancels
whatever has not started yet and its error propagates; no partial document
is ever assembled.

Date: 17 OCT 2026
"""

from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, BinaryIO, Dict, List, Optional, Sequence, Tuple

from util_logger import ComponentType, LoggerFactory, log_exceptions

from . import geojson, kml
from .config import ExportConfig, get_export_config
from .document import (
    build_feature_collection,
    document_name,
    serialize_geojson,
    serialize_kml,
)
from .exceptions import ExportError, QueryExecutionError
from .kmz import write_kmz
from .layers import build_layers
from .models import CompiledQuery, FeatureCollection, Language, OutputFormat
from .query import compile_any
from .repository import ATESRepository, RowFetcher
from .styles import StyleCatalog

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "ExportService")


class ExportService:
    """
    Export orchestration for the ATES layers of one area.

    Args:
        config: Export settings (singleton if not provided)
        fetcher: Row source; defaults to ATESRepository on the root config's database
    """

    def __init__(
        self,
        config: Optional[ExportConfig] = None,
        fetcher: Optional[RowFetcher] = None
    ):
        self.config = config or get_export_config()
        self.fetcher = fetcher or ATESRepository(
            query_timeout_seconds=self.config.query_timeout_seconds
        )
        logger.info(f"ExportService initialized (max_workers: {self.config.max_workers})")

    # ========================================================================
    # QUERY FAN-OUT
    # ========================================================================

    def _compile(self, output_format: OutputFormat, language: Language, area_id: int) -> List[CompiledQuery]:
        return [compile_any(layer, area_id) for layer in build_layers(output_format, language)]

    def _run_query(self, query: CompiledQuery) -> List[Dict[str, Any]]:
        try:
            return list(self.fetcher.execute(query.sql, query.params))
        except ExportError as e:
            if e.table is None:
                e.table = query.table
            raise
        except Exception as e:
            raise QueryExecutionError(f"Layer query failed: {e}", table=query.table) from e

    def _fetch_all(self, queries: Sequence[CompiledQuery]) -> List[List[Dict[str, Any]]]:
        """
        Run every query concurrently and return the row lists in query order.

        Raises:
            QueryExecutionError: The first failure; pending queries are cancelled
        """
        if not queries:
            return []

        workers = max(1, min(self.config.max_workers, len(queries)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ates-layer") as pool:
            futures = [pool.submit(self._run_query, query) for query in queries]
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)

            for future in futures:
                if future in done and future.exception() is not None:
                    for other in pending:
                        other.cancel()
                    logger.error(f"Aborting export: query for '{future.exception().table}' failed")
                    raise future.exception()

        return [future.result() for future in futures]

    def _style_catalog(self, icon_size: Optional[Any], icon_dir: Optional[str]) -> StyleCatalog:
        return StyleCatalog(
            icon_dir=self.config.normalize_icon_dir(icon_dir),
            icon_size=icon_size if icon_size is not None else self.config.icon_size,
            line_width=self.config.line_width
        )

    # ========================================================================
    # EXPORTS
    # ========================================================================

    @log_exceptions(ComponentType.SERVICE, "ExportService")
    def export_geojson(self, area_id: int, language: Optional[str] = None) -> FeatureCollection:
        """
        Export an area as a GeoJSON FeatureCollection.

        Raises:
            ConfigurationError: Missing display name for the language
            QueryExecutionError: Any layer query failed
            GeometryDecodeError: A geometry payload is not GeoJSON
        """
        lang = self.config.normalize_language(language)
        log = LoggerFactory.create_with_context(
            ComponentType.SERVICE, "ExportService",
            area_id=area_id, language=lang.value, output_format=OutputFormat.GEOJSON.value
        )

        queries = self._compile(OutputFormat.GEOJSON, lang, area_id)
        log.info(f"Running {len(queries)} layer queries")
        results = self._fetch_all(queries)

        collection = build_feature_collection(
            geojson.assemble_layer(query.table, rows)
            for query, rows in zip(queries, results)
        )
        log.info(f"GeoJSON export complete ({len(collection.features)} features)")
        return collection

    def export_geojson_text(self, area_id: int, language: Optional[str] = None) -> str:
        return serialize_geojson(self.export_geojson(area_id, language))

    @log_exceptions(ComponentType.SERVICE, "ExportService")
    def export_kml(
        self,
        area_id: int,
        language: Optional[str] = None,
        icon_size: Optional[Any] = None,
        icon_dir: Optional[str] = None
    ) -> Tuple[str, bytes]:
        """
        Export an area as a KML document.

        Returns:
            (document name, serialized KML)

        Raises:
            ConfigurationError: Missing display name or unresolved style
            QueryExecutionError: Any layer query failed
        """
        lang = self.config.normalize_language(language)
        styles = self._style_catalog(icon_size, icon_dir)
        log = LoggerFactory.create_with_context(
            ComponentType.SERVICE, "ExportService",
            area_id=area_id, language=lang.value, output_format=OutputFormat.KML.value
        )

        queries = self._compile(OutputFormat.KML, lang, area_id)
        log.info(f"Running {len(queries)} layer queries (icons: {styles.icon_directory})")
        results = self._fetch_all(queries)

        tree = kml.assemble_document(
            [(query.table, query.display_name, rows) for query, rows in zip(queries, results)],
            styles,
            fallback_name=str(area_id)
        )
        name = document_name(tree)
        body = serialize_kml(tree)
        log.info(f"KML export complete ('{name}', {len(body)} bytes)")
        return name, body

    def export_kmz(
        self,
        area_id: int,
        language: Optional[str] = None,
        icon_size: Optional[Any] = None,
        icon_dir: Optional[str] = None,
        output: Optional[BinaryIO] = None
    ) -> Tuple[str, BinaryIO]:
        """
        Export an area as KMZ: the KML document plus its icon directory.

        Returns:
            (document name, archive stream positioned at the start)
        """
        name, body = self.export_kml(area_id, language, icon_size, icon_dir)
        styles = self._style_catalog(icon_size, icon_dir)
        archive = write_kmz(
            body,
            icon_directory=styles.icon_directory,
            output=output,
            icon_root=self.config.icon_root
        )
        logger.info(f"KMZ export complete for area {area_id}")
        return name, archive
