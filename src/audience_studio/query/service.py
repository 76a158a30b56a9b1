"""Query service: bounded previews and counts over the projected view.

Every query binds to one published generation, compiles the filter
against that generation's columns and executes with bound parameters.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import duckdb

from audience_studio.catalog import FieldCatalog, get_catalog
from audience_studio.core.errors import EngineError
from audience_studio.core.logging import get_logger
from audience_studio.core.sql import quote_identifier
from audience_studio.filters.compiler import CompiledPredicate, FilterCompiler
from audience_studio.filters.resolver import FieldResolver
from audience_studio.query.models import MAX_PREVIEW_LIMIT, PreviewOptions, PreviewResult
from audience_studio.staging.models import Generation
from audience_studio.staging.session import StudioSession

logger = get_logger(__name__)


def clamp_limit(limit: int) -> int:
    return max(0, min(MAX_PREVIEW_LIMIT, limit))


def clamp_offset(offset: int) -> int:
    return max(0, offset)


class QueryService:
    """Read-only queries against a session's current generation."""

    def __init__(self, session: StudioSession, catalog: FieldCatalog | None = None):
        self._session = session
        self._catalog = catalog or get_catalog()

    def resolver(self, generation: Generation | None = None) -> FieldResolver:
        """Field resolver for a generation (default: the current one)."""
        generation = generation or self._session.require_current()
        return FieldResolver(self._catalog, generation.column_types, generation.sql_types)

    def compile(self, filter_tree: Any, generation: Generation | None = None) -> CompiledPredicate:
        """Compile a filter against a generation's resolvable fields."""
        resolver = self.resolver(generation)
        return FilterCompiler(resolver.expr_map, resolver.type_map).compile(filter_tree)

    def preview(self, options: PreviewOptions | Mapping[str, Any] | None = None) -> PreviewResult:
        """Fetch one page of rows.

        Raises:
            ValidationError: If options are malformed
            NotLoadedError: If no generation is published
            EngineError: If the query fails
        """
        options = PreviewOptions.coerce(options)
        generation = self._session.require_current()
        predicate = self.compile(options.filter_tree, generation)
        limit = clamp_limit(options.limit)
        offset = clamp_offset(options.offset)

        if options.select:
            select_clause = ", ".join(quote_identifier(column) for column in options.select)
        else:
            select_clause = "*"

        sql = (
            f"SELECT {select_clause}\n"
            f"FROM {quote_identifier(generation.view_name)}\n"
            f"WHERE {predicate.sql}\n"
            f"LIMIT {limit}\n"
            f"OFFSET {offset}"
        )

        try:
            with self._session.manager.duckdb_cursor() as cursor:
                result = cursor.execute(sql, list(predicate.params))
                columns = [d[0] for d in result.description or []]
                rows = [dict(zip(columns, row, strict=True)) for row in result.fetchall()]
        except duckdb.Error as e:
            logger.error("preview_query_failed", generation=generation.generation, error=str(e))
            raise EngineError("preview query", str(e)) from e

        return PreviewResult(
            rows=rows,
            limit=limit,
            offset=offset,
            generation=generation.generation,
        )

    def count(self, filter_tree: Any = None) -> int:
        """Count rows matching a filter (all rows when no filter is given).

        Raises:
            ValidationError: If the filter is malformed
            NotLoadedError: If no generation is published
            EngineError: If the query fails
        """
        generation = self._session.require_current()
        predicate = self.compile(filter_tree, generation)
        sql = (
            f"SELECT COUNT(*) AS count FROM {quote_identifier(generation.view_name)} "
            f"WHERE {predicate.sql}"
        )
        logger.info(
            "count_query_started",
            generation=generation.generation,
            has_filter=filter_tree is not None,
            rejected_rules=len(predicate.rejected),
        )

        try:
            with self._session.manager.duckdb_cursor() as cursor:
                row = cursor.execute(sql, list(predicate.params)).fetchone()
        except duckdb.Error as e:
            logger.error("count_query_failed", generation=generation.generation, error=str(e))
            raise EngineError("count query", str(e)) from e

        total = int(row[0]) if row else 0
        logger.info("count_query_completed", generation=generation.generation, total_rows=total)
        return total
