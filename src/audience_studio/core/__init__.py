"""Core module - configuration, logging, errors, connections."""

from audience_studio.core.config import Settings, get_settings
from audience_studio.core.errors import (
    CatalogLoadError,
    CompilationError,
    EmptyLoadError,
    EngineError,
    NotLoadedError,
    StudioError,
    ValidationError,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Errors
    "CatalogLoadError",
    "CompilationError",
    "EmptyLoadError",
    "EngineError",
    "NotLoadedError",
    "StudioError",
    "ValidationError",
]
