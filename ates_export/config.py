# ============================================================================
# CLAUDE CONTEXT - ATES EXPORT CONFIGURATION
# ============================================================================
# STATUS: Standalone Configuration - ATES export
# PURPOSE: Environment-based settings for the export pipeline
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: ExportConfig, get_export_config
# INTERFACES: Pydantic BaseModel
# PYDANTIC_MODELS: ExportConfig
# DEPENDENCIES: pydantic, os
# SOURCE: Environment variables (database settings live in the root config.py)
# PATTERNS: Settings Pattern, Singleton via cached function
# ============================================================================

"""
ATES Export Configuration

Environment Variables (all optional):
    - ATES_ICON_DIR: Icon directory prefix (default: "files")
    - ATES_ICON_ROOT: Directory containing the icon directories (default: ".")
    - ATES_ICON_SIZE: Icon size, 11 or 15 (default: 11)
    - ATES_DEFAULT_LANGUAGE: "en" or "fr" (default: "en")
    - ATES_QUERY_TIMEOUT: Statement timeout in seconds (default: 30)
    - ATES_MAX_WORKERS: Concurrent layer queries (default: 6)
    - ATES_LINE_WIDTH: KML line width in pixels (default: 3)

Date: 17 OCT 2026
"""

import os
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Language
from .styles import DEFAULT_ICON_SIZE, VALID_ICON_SIZES

# One directory name under icon_root; no separators or dot segments
ICON_DIR_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


class ExportConfig(BaseModel):
    """Configuration for the ATES export pipeline."""
    model_config = ConfigDict(validate_default=True)

    icon_dir: str = Field(
        default_factory=lambda: os.getenv("ATES_ICON_DIR", "files"),
        description="Icon directory prefix; the KMZ ships '<icon_dir>-<icon_size>'"
    )
    icon_root: str = Field(
        default_factory=lambda: os.getenv("ATES_ICON_ROOT", "."),
        description="Filesystem directory holding the icon directories"
    )
    icon_size: int = Field(
        default_factory=lambda: int(os.getenv("ATES_ICON_SIZE", str(DEFAULT_ICON_SIZE))),
        description="Default icon size (11 or 15)"
    )
    default_language: Language = Field(
        default_factory=lambda: os.getenv("ATES_DEFAULT_LANGUAGE", "en"),
        description="Language used when a request does not name one"
    )
    query_timeout_seconds: int = Field(
        default_factory=lambda: int(os.getenv("ATES_QUERY_TIMEOUT", "30")),
        ge=1,
        le=300,
        description="Maximum query execution time in seconds"
    )
    max_workers: int = Field(
        default_factory=lambda: int(os.getenv("ATES_MAX_WORKERS", "6")),
        ge=1,
        le=32,
        description="Layer queries run concurrently per export"
    )
    line_width: int = Field(
        default_factory=lambda: int(os.getenv("ATES_LINE_WIDTH", "3")),
        ge=1,
        description="KML LineStyle width in pixels"
    )

    @field_validator("icon_dir")
    @classmethod
    def validate_icon_dir(cls, v: str) -> str:
        if not ICON_DIR_PATTERN.fullmatch(v):
            raise ValueError(f"icon_dir must be a plain directory name, got {v!r}")
        return v

    @field_validator("icon_size")
    @classmethod
    def validate_icon_size(cls, v: int) -> int:
        if v not in VALID_ICON_SIZES:
            raise ValueError(f"icon_size must be one of {VALID_ICON_SIZES}, got {v}")
        return v

    def normalize_language(self, language: Optional[str]) -> Language:
        """Request language, falling back to the default for anything unsupported."""
        try:
            return Language(language)
        except ValueError:
            return self.default_language

    def normalize_icon_dir(self, icon_dir: Optional[str]) -> str:
        """Request icon directory, falling back to the default for anything but a plain name."""
        if icon_dir and ICON_DIR_PATTERN.fullmatch(icon_dir):
            return icon_dir
        return self.icon_dir


_config_cache: Optional[ExportConfig] = None


def get_export_config() -> ExportConfig:
    """
    Get singleton export configuration instance.

    Raises:
        pydantic.ValidationError: If an environment variable is out of range
    """
    global _config_cache

    if _config_cache is None:
        _config_cache = ExportConfig()

    return _config_cache
