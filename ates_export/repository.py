# ============================================================================
# CLAUDE CONTEXT - ATES REPOSITORY
# ============================================================================
# STATUS: Standalone Repository - PostGIS row access
# PURPOSE: Execute compiled layer queries and return dict rows
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: RowFetcher, ATESRepository
# INTERFACES: RowFetcher (Protocol)
# DEPENDENCIES: psycopg, psycopg.sql
# SOURCE: PostgreSQL/PostGIS database (ATES schema)
# SCOPE: Read-only layer queries for one area
# VALIDATION: Queries arrive pre-composed from query.py; no SQL is built here
# PATTERNS: Repository Pattern
# ENTRY_POINTS: repo = ATESRepository(); rows = repo.execute(query.sql, query.params)
# ============================================================================

"""
ATES Repository - PostGIS Direct Access

Thread Safety:
- Each execute() opens and closes its own connection
- Safe to call from the export service's worker threads
"""

from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Protocol, Sequence

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from util_logger import ComponentType, LoggerFactory

from .exceptions import QueryExecutionError

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "ATESRepository")


class RowFetcher(Protocol):
    """Anything that can run a composed query and return column-keyed rows."""

    def execute(self, query: sql.Composable, params: Sequence[Any]) -> List[Dict[str, Any]]:
        ...


class ATESRepository:
    """
    psycopg implementation of RowFetcher.

    Args:
        connection_string: Fixed libpq connection string. When not given it is
            resolved from the root config for every connection, so managed
            identity tokens are fetched fresh
        query_timeout_seconds: statement_timeout applied to every query
    """

    def __init__(
        self,
        connection_string: Optional[str] = None,
        query_timeout_seconds: int = 30
    ):
        self._connection_string = connection_string
        self.query_timeout_seconds = query_timeout_seconds

    @property
    def connection_string(self) -> str:
        if self._connection_string is not None:
            return self._connection_string
        from config import get_postgres_connection_string
        return get_postgres_connection_string()

    @contextmanager
    def _get_connection(self):
        """
        Context manager for PostgreSQL connections.

        Yields:
            psycopg connection with dict_row factory
        """
        conn = None
        try:
            conn = psycopg.connect(self.connection_string, row_factory=dict_row)
            yield conn
        except psycopg.Error as e:
            logger.error(f"Database connection error: {e}")
            raise
        finally:
            if conn:
                conn.close()

    def execute(self, query: sql.Composable, params: Sequence[Any]) -> List[Dict[str, Any]]:
        """
        Run one layer query.

        Raises:
            QueryExecutionError: On any database error (original chained)
        """
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        sql.SQL("SET statement_timeout = {}").format(
                            sql.Literal(f"{self.query_timeout_seconds}s")
                        )
                    )
                    logger.debug(f"Executing: {query.as_string(conn)} params={tuple(params)}")
                    cur.execute(query, tuple(params))
                    rows = cur.fetchall()
        except psycopg.Error as e:
            raise QueryExecutionError(f"Layer query failed: {e}") from e

        logger.debug(f"Fetched {len(rows)} rows")
        return rows
