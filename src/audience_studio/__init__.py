"""Audience Studio query layer.

Loads externally hosted tabular files into DuckDB and serves filtered,
paginated previews over them.
"""

__version__ = "0.1.0"

from audience_studio.core.errors import (
    CompilationError,
    EmptyLoadError,
    EngineError,
    NotLoadedError,
    StudioError,
    ValidationError,
)
from audience_studio.studio import AudienceStudio, open_studio

__all__ = [
    "AudienceStudio",
    "CompilationError",
    "EmptyLoadError",
    "EngineError",
    "NotLoadedError",
    "StudioError",
    "ValidationError",
    "__version__",
    "open_studio",
]
