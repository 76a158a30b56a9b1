"""Data loader: remote file -> staging table -> projected view.

The loader never fetches files itself; it hands the URL to DuckDB's
URL-aware table functions. The projected view is a schema-permissive
passthrough of whatever columns the file turned out to have; catalog
typing happens later, when filters resolve field names.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

import duckdb

from audience_studio.catalog import FieldCatalog, get_catalog
from audience_studio.core.connections import is_remote_url
from audience_studio.core.errors import EmptyLoadError, EngineError, NotLoadedError, ValidationError
from audience_studio.core.logging import get_logger, log_context
from audience_studio.core.sql import quote_identifier, quote_string
from audience_studio.filters.resolver import FieldResolver
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
)
from audience_studio.staging.session import StudioSession

logger = get_logger(__name__)

_TABLE_FUNCTIONS = {
    SourceFormat.CSV: "read_csv_auto",
    SourceFormat.PARQUET: "read_parquet",
    SourceFormat.JSON: "read_json_auto",
}


def build_load_sql(table_name: str, options: LoadOptions) -> str:
    """CREATE TABLE statement reading the source file with the format's table function."""
    function = _TABLE_FUNCTIONS[options.format]
    return (
        f"CREATE TABLE {quote_identifier(table_name)} AS "
        f"SELECT * FROM {function}({quote_string(options.url)})"
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class DataLoader:
    """Loads source files into a session's staging generations.

    Args:
        session: Session owning the connection and generations
        catalog: Field catalog used to report catalog coverage
    """

    def __init__(self, session: StudioSession, catalog: FieldCatalog | None = None):
        self._session = session
        self._catalog = catalog or get_catalog()
        self._staged: tuple[StagingStats, LoadOptions] | None = None

    @property
    def catalog(self) -> FieldCatalog:
        return self._catalog

    def load(self, options: LoadOptions | Mapping[str, Any]) -> StagingStats:
        """Materialize the source file into a new staging table.

        Raises:
            ValidationError: If options are malformed
            EngineError: If DuckDB fails to read the file
        """
        options = LoadOptions.coerce(options)
        session = self._session

        with session.load_lock:
            generation = session.next_generation()
            table_name = session.staging_name(generation)

            with log_context(
                source_hash=options.source_hash,
                format=options.format.value,
                tracking_id=options.tracking_id,
                generation=generation,
            ):
                logger.info("data_load_started")
                if is_remote_url(options.url):
                    session.manager.ensure_httpfs()

                start = time.perf_counter()
                try:
                    with session.manager.duckdb_write() as conn:
                        conn.execute(f"DROP TABLE IF EXISTS {quote_identifier(table_name)}")
                        conn.execute(build_load_sql(table_name, options))
                        row = conn.execute(
                            f"SELECT COUNT(*) FROM {quote_identifier(table_name)}"
                        ).fetchone()
                except duckdb.Error as e:
                    logger.error("data_load_failed", error=str(e), duration_ms=_elapsed_ms(start))
                    self._abandon(generation)
                    raise EngineError("data load", str(e)) from e

                stats = StagingStats(
                    generation=generation,
                    table_name=table_name,
                    loaded_rows=int(row[0]) if row else 0,
                    duration_ms=_elapsed_ms(start),
                )
                self._staged = (stats, options)
                logger.info(
                    "data_load_completed",
                    loaded_rows=stats.loaded_rows,
                    duration_ms=stats.duration_ms,
                )
                return stats

    def build_view(
        self,
        options: LoadOptions | Mapping[str, Any],
        generation: int | None = None,
    ) -> ViewStats:
        """Project the most recently staged table into a view and publish it.

        Raises:
            NotLoadedError: If no staged table is waiting for a view
            ValidationError: If options do not match the staged source
            EmptyLoadError: If the staging table has no discoverable columns
            EngineError: If DuckDB fails to build the view
        """
        options = LoadOptions.coerce(options)
        session = self._session

        with session.load_lock:
            if self._staged is None:
                raise NotLoadedError("No staged table to build a view from; call load() first")
            staged, staged_options = self._staged
            if generation is not None and generation != staged.generation:
                raise NotLoadedError(f"Generation {generation} is not the staged generation")
            if staged_options.source_key != options.source_key:
                raise ValidationError("View options do not match the staged source")

            view_name = session.view_name(staged.generation)
            with log_context(
                source_hash=options.source_hash,
                format=options.format.value,
                tracking_id=options.tracking_id,
                generation=staged.generation,
            ):
                logger.info("view_build_started")
                start = time.perf_counter()
                try:
                    columns = self._discover_columns(staged.table_name)
                    select_list = ",\n  ".join(quote_identifier(c.name) for c in columns)
                    with session.manager.duckdb_write() as conn:
                        conn.execute(
                            f"CREATE OR REPLACE VIEW {quote_identifier(view_name)} AS\n"
                            f"SELECT\n  {select_list}\n"
                            f"FROM {quote_identifier(staged.table_name)}"
                        )
                        row = conn.execute(
                            f"SELECT COUNT(*) FROM {quote_identifier(view_name)}"
                        ).fetchone()
                except EmptyLoadError as e:
                    logger.error("view_build_failed", error=str(e), duration_ms=_elapsed_ms(start))
                    self._abandon(staged.generation)
                    raise
                except duckdb.Error as e:
                    logger.error("view_build_failed", error=str(e), duration_ms=_elapsed_ms(start))
                    self._abandon(staged.generation)
                    raise EngineError("view build", str(e)) from e

                view_rows = int(row[0]) if row else 0
                session.publish(
                    Generation(
                        generation=staged.generation,
                        source_key=options.source_key,
                        source_hash=options.source_hash,
                        staging_table=staged.table_name,
                        view_name=view_name,
                        columns=tuple(columns),
                        loaded_rows=staged.loaded_rows,
                        view_rows=view_rows,
                    )
                )
                self._staged = None

                stats = ViewStats(
                    generation=staged.generation,
                    view_name=view_name,
                    view_rows=view_rows,
                    duration_ms=_elapsed_ms(start),
                    columns=columns,
                )
                logger.info(
                    "view_build_completed",
                    view_rows=view_rows,
                    columns_used=len(columns),
                    duration_ms=stats.duration_ms,
                )
                return stats

    def load_and_project(self, options: LoadOptions | Mapping[str, Any]) -> LoadResult:
        """Load a source and publish its projected view.

        Engine and empty-load failures are reported in the result rather
        than raised; malformed options raise ValidationError.
        """
        options = LoadOptions.coerce(options)
        start = time.perf_counter()

        with self._session.load_lock:
            try:
                staging = self.load(options)
                view = self.build_view(options, staging.generation)
            except (EmptyLoadError, EngineError) as e:
                result = LoadResult(
                    status=LoadStatus.ERROR,
                    catalog=self._catalog.version,
                    duration_ms=_elapsed_ms(start),
                    source_hash=options.source_hash,
                    error=str(e),
                )
                logger.error(
                    "load_and_project_failed",
                    source_hash=options.source_hash,
                    error=result.error,
                    duration_ms=result.duration_ms,
                )
                return result

        resolver = FieldResolver(
            self._catalog,
            {c.name: c.field_type for c in view.columns},
            {c.name: c.column_type for c in view.columns},
        )
        result = LoadResult(
            status=LoadStatus.OK,
            loaded_rows=staging.loaded_rows,
            view_rows=view.view_rows,
            catalog=self._catalog.version,
            catalog_fields=len(resolver.catalog_matches()),
            duration_ms=_elapsed_ms(start),
            source_hash=options.source_hash,
            generation=view.generation,
        )
        logger.info(
            "load_and_project_completed",
            source_hash=result.source_hash,
            generation=result.generation,
            loaded_rows=result.loaded_rows,
            view_rows=result.view_rows,
            catalog_fields=result.catalog_fields,
            duration_ms=result.duration_ms,
        )
        return result

    def ensure_loaded(self, options: LoadOptions | Mapping[str, Any]) -> LoadResult:
        """Load a source unless the current generation came from the same url and format."""
        options = LoadOptions.coerce(options)

        with self._session.load_lock:
            current = self._session.current
            if current is None or current.source_key != options.source_key:
                return self.load_and_project(options)

        resolver = FieldResolver(self._catalog, current.column_types, current.sql_types)
        logger.debug("load_skipped", source_hash=current.source_hash, generation=current.generation)
        return LoadResult(
            status=LoadStatus.OK,
            loaded_rows=current.loaded_rows,
            view_rows=current.view_rows,
            catalog=self._catalog.version,
            catalog_fields=len(resolver.catalog_matches()),
            duration_ms=0,
            source_hash=current.source_hash,
            generation=current.generation,
            reused=True,
        )

    def _discover_columns(self, table_name: str) -> list[StagedColumn]:
        """Introspect the staging table by sampling one row.

        Raises:
            EmptyLoadError: If no columns can be discovered
        """
        table = quote_identifier(table_name)
        with self._session.manager.duckdb_cursor() as cursor:
            sample = cursor.execute(f"SELECT * FROM {table} LIMIT 1")
            names = [d[0] for d in sample.description or []]
            first_row = sample.fetchone()
            types = {row[0]: row[1] for row in cursor.execute(f"DESCRIBE {table}").fetchall()}

        if first_row is None or not names:
            raise EmptyLoadError(f"No columns found in staging table {table_name}")

        logger.info("columns_discovered", columns=names, count=len(names))
        return [
            StagedColumn(
                name=name,
                column_type=str(types.get(name, "VARCHAR")),
                field_type=field_type_for(str(types.get(name, "VARCHAR"))),
            )
            for name in names
        ]

    def _abandon(self, generation: int) -> None:
        """Clean up after a failed step: drop the generation and stop serving stale data."""
        self._staged = None
        self._session.discard(generation)
        self._session.invalidate()
