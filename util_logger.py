# ============================================================================
# CLAUDE CONTEXT - LOGGING
# ============================================================================
# STATUS: Shared - used by every ates_export layer
# PURPOSE: JSON-only structured logging for Azure Functions with Application Insights
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: ComponentType, LogLevel, LogContext, LoggerFactory, log_exceptions
# INTERFACES: Dataclass models, enums, factory, JSON formatter, exception decorator
# DEPENDENCIES: enum, dataclasses, typing, datetime, logging, threading, json, traceback (stdlib only!)
# SOURCE: Export pipeline layers define component types
# PATTERNS: JSON-only output, Azure Functions integration, Exception decorator pattern
# ENTRY_POINTS: LoggerFactory.create_logger(), @log_exceptions decorator
# ============================================================================

"""
Structured logger for the ATES export pipeline.

Every log line is a single JSON object. Loggers created through
LoggerFactory attach the component and, when given, the export context
(area, language, format, request id) as customDimensions so Application
Insights can filter one export's lines out of a busy Function App.

Example:
    context = LogContext(area_id=357, language="en", output_format="KML")
    logger = LoggerFactory.create_logger(ComponentType.SERVICE, "ExportService", context)
    logger.info("Export started")
"""

from enum import Enum
from typing import Optional, Dict, Any, Union
from datetime import datetime, timezone
from dataclasses import dataclass
import logging
import os
import sys
import threading
import json
import traceback
from functools import wraps


# ============================================================================
# COMPONENT TYPES
# ============================================================================

class ComponentType(Enum):
    """Layers of the export pipeline."""
    TRIGGER = "trigger"        # HTTP entry point
    SERVICE = "service"        # Export orchestration
    REPOSITORY = "repository"  # PostGIS access


# ============================================================================
# LOG LEVELS
# ============================================================================

class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level constant."""
        return getattr(logging, self.value)

    @classmethod
    def from_string(cls, level: str) -> 'LogLevel':
        """Create from string, case-insensitive."""
        return cls[level.upper()]


# ============================================================================
# LOG CONTEXT - Correlation for one export
# ============================================================================

@dataclass
class LogContext:
    """Correlation fields for a single export request."""
    area_id: Optional[int] = None
    language: Optional[str] = None
    output_format: Optional[str] = None
    request_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            k: v for k, v in {
                'area_id': self.area_id,
                'language': self.language,
                'output_format': self.output_format,
                'request_id': self.request_id
            }.items() if v is not None
        }


@dataclass
class ComponentConfig:
    """Per-component logger settings."""
    component_type: ComponentType
    log_level: LogLevel = LogLevel.INFO


# ============================================================================
# JSON FORMATTER
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging in Azure Functions.

    Outputs logs in a format that Application Insights can automatically parse.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if hasattr(record, 'custom_dimensions'):
            log_obj['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str, ensure_ascii=False)


# ============================================================================
# LOGGER FACTORY
# ============================================================================

class ContextAdapter(logging.LoggerAdapter):
    """
    Adds one export's LogContext to every record.

    The underlying component logger is shared by all requests; the context
    lives only on the adapter, so concurrent exports never see each other's
    fields.
    """

    def process(self, msg, kwargs):
        extra = dict(kwargs.get('extra') or {})
        custom_dims = dict(self.extra)
        custom_dims.update(extra.get('custom_dimensions', {}))
        extra['custom_dimensions'] = custom_dims
        kwargs['extra'] = extra
        return msg, kwargs


LoggerLike = Union[logging.Logger, ContextAdapter]


class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "ATESRepository")
        logger.debug("Executing layer query")
    """

    default_level = LogLevel.DEBUG if os.getenv('DEBUG_LOGGING', '').lower() == 'true' else LogLevel.INFO

    DEFAULT_CONFIGS = {
        ComponentType.TRIGGER: ComponentConfig(ComponentType.TRIGGER, default_level),
        ComponentType.SERVICE: ComponentConfig(ComponentType.SERVICE, default_level),
        ComponentType.REPOSITORY: ComponentConfig(ComponentType.REPOSITORY, default_level),
    }

    _configured = set()
    _lock = threading.Lock()

    @classmethod
    def _configure(cls, logger: logging.Logger, component_type: ComponentType,
                   name: str, config: ComponentConfig) -> None:
        if isinstance(config.log_level, str):
            log_level = LogLevel.from_string(config.log_level).to_python_level()
        else:
            log_level = config.log_level.to_python_level()
        logger.setLevel(log_level)

        # Remove existing handlers to avoid duplicates
        logger.handlers.clear()

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

        # Allow propagation to Azure's root logger for Application Insights
        logger.propagate = True

        original_log = logger._log

        def log_with_component(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
            """Wrapper to inject the component as custom dimensions."""
            if extra is None:
                extra = {}

            custom_dims = {
                'component_type': component_type.value,
                'component_name': name
            }
            if 'custom_dimensions' in extra:
                custom_dims.update(extra['custom_dimensions'])

            extra['custom_dimensions'] = custom_dims

            original_log(level, msg, args, exc_info=exc_info, extra=extra,
                         stack_info=stack_info, stacklevel=stacklevel)

        logger._log = log_with_component

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        context: Optional[LogContext] = None,
        config: Optional[ComponentConfig] = None
    ) -> LoggerLike:
        """
        Create a logger for a specific component.

        The component logger is configured once per process; later calls
        return the same logger.

        Args:
            component_type: Type of component
            name: Component name (e.g., "ExportService")
            context: Optional export context; returns a ContextAdapter when given
            config: Optional custom configuration (applied on first creation)

        Returns:
            Configured Python logger, or an adapter carrying the context
        """
        logger_name = f"{component_type.value}.{name}"
        logger = logging.getLogger(logger_name)

        with cls._lock:
            if logger_name not in cls._configured:
                if config is None:
                    config = cls.DEFAULT_CONFIGS.get(
                        component_type,
                        ComponentConfig(component_type=component_type)
                    )
                cls._configure(logger, component_type, name, config)
                cls._configured.add(logger_name)

        if context is not None:
            return ContextAdapter(logger, context.to_dict())
        return logger

    @classmethod
    def create_with_context(
        cls,
        component_type: ComponentType,
        name: str,
        area_id: Optional[int] = None,
        language: Optional[str] = None,
        output_format: Optional[str] = None,
        request_id: Optional[str] = None
    ) -> LoggerLike:
        """Convenience wrapper building the LogContext from export fields."""
        context = LogContext(
            area_id=area_id,
            language=language,
            output_format=output_format,
            request_id=request_id
        )
        return cls.create_logger(
            component_type=component_type,
            name=name,
            context=context
        )


# ============================================================================
# EXCEPTION DECORATOR
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None):
    """
    Decorator to log exceptions with full context, then re-raise.

    Usage:
        @log_exceptions(ComponentType.SERVICE, "ExportService")
        def export_kml(self, area_id, language):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if logger:
                log = logger
            elif component_type and component_name:
                log = LoggerFactory.create_logger(component_type, component_name)
            else:
                log = LoggerFactory.create_logger(
                    ComponentType.SERVICE,
                    func.__module__ or "unknown"
                )

            try:
                return func(*args, **kwargs)
            except Exception as e:
                log.error(
                    f"Exception in {func.__name__}",
                    exc_info=True,
                    extra={
                        'custom_dimensions': {
                            'function_name': func.__name__,
                            'function_module': func.__module__,
                            'exception_type': type(e).__name__,
                            'exception_message': str(e),
                            'function_args': str(args)[:500],
                            'function_kwargs': str(kwargs)[:500],
                            'traceback': traceback.format_exc()
                        }
                    }
                )
                raise
        return wrapper
    return decorator
