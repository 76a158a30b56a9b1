"""Staging: load remote tabular files into DuckDB and project them into a view."""

from audience_studio.staging.loader import DataLoader, build_load_sql
from audience_studio.staging.models import (
    Generation,
    LoadOptions,
    LoadResult,
    LoadStatus,
    SourceFormat,
    StagedColumn,
    StagingStats,
    ViewStats,
    field_type_for,
    source_hash,
)
from audience_studio.staging.session import StudioSession

__all__ = [
    "DataLoader",
    "Generation",
    "LoadOptions",
    "LoadResult",
    "LoadStatus",
    "SourceFormat",
    "StagedColumn",
    "StagingStats",
    "StudioSession",
    "ViewStats",
    "build_load_sql",
    "field_type_for",
    "source_hash",
]
