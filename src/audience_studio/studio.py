"""AudienceStudio: the load/preview/count contract exposed to request handlers."""

from __future__ import annotations

from collections.abc import Generator, Mapping
from contextlib import contextmanager
from typing import Any

from audience_studio.catalog import FieldCatalog, FieldDefinition, FieldGroup, FieldType, get_catalog
from audience_studio.core.config import Settings, get_settings
from audience_studio.query import PreviewOptions, PreviewResult, QueryService
from audience_studio.staging import DataLoader, LoadOptions, LoadResult, StudioSession


class AudienceStudio:
    """Data loader and query service sharing one session.

    Usage:
        with open_studio() as studio:
            studio.load_and_project({"url": "s3://bucket/audience.csv", "format": "csv"})
            page = studio.preview({"limit": 50, "filter_tree": {"field": "age", "op": ">", "value": 30}})
    """

    def __init__(self, session: StudioSession, catalog: FieldCatalog | None = None):
        self.session = session
        self.catalog = catalog or get_catalog()
        self.loader = DataLoader(session, self.catalog)
        self.queries = QueryService(session, self.catalog)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> AudienceStudio:
        settings = settings or get_settings()
        return cls(StudioSession.from_settings(settings), get_catalog(settings.catalog_version))

    def load_and_project(self, options: LoadOptions | Mapping[str, Any]) -> LoadResult:
        return self.loader.load_and_project(options)

    def ensure_loaded(self, options: LoadOptions | Mapping[str, Any]) -> LoadResult:
        return self.loader.ensure_loaded(options)

    def preview(self, options: PreviewOptions | Mapping[str, Any] | None = None) -> PreviewResult:
        return self.queries.preview(options)

    def count(self, filter_tree: Any = None) -> int:
        return self.queries.count(filter_tree)

    def fields(
        self,
        group: FieldGroup | str | None = None,
        field_type: FieldType | str | None = None,
    ) -> list[FieldDefinition]:
        """Catalog fields, optionally narrowed by group and type."""
        return self.catalog.matching(group, field_type)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> AudienceStudio:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


@contextmanager
def open_studio(settings: Settings | None = None) -> Generator[AudienceStudio]:
    """Open a studio on a fresh connection and close it afterwards."""
    studio = AudienceStudio.from_settings(settings)
    try:
        yield studio
    finally:
        studio.close()
