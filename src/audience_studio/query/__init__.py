"""Query service: filtered, paginated previews and counts."""

from audience_studio.query.models import (
    DEFAULT_PREVIEW_LIMIT,
    MAX_PREVIEW_LIMIT,
    PreviewOptions,
    PreviewResult,
)
from audience_studio.query.service import QueryService, clamp_limit, clamp_offset

__all__ = [
    "DEFAULT_PREVIEW_LIMIT",
    "MAX_PREVIEW_LIMIT",
    "PreviewOptions",
    "PreviewResult",
    "QueryService",
    "clamp_limit",
    "clamp_offset",
]
