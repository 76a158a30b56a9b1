"""Field name resolution for filters.

Fallback order for a field key:
1. catalog hit whose raw columns all exist in the loaded view
2. raw passthrough of a discovered view column
3. unknown: the compiler fails the rule closed

String fields always resolve to a VARCHAR expression: when the raw
column has another engine type (a zip code sniffed as BIGINT, a UUID)
the expression is wrapped in a cast so text operators stay valid.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from audience_studio.catalog import FieldCatalog, FieldType
from audience_studio.core.sql import quote_identifier

_TEXT_TYPE = re.compile(r"^(VARCHAR|TEXT|STRING|CHAR|BPCHAR)(\(\d+\))?$")


def is_text_type(column_type: str) -> bool:
    """Whether a DuckDB column type is already VARCHAR."""
    return bool(_TEXT_TYPE.match(column_type.strip().upper()))


class ResolutionSource(str, Enum):
    CATALOG = "catalog"
    PASSTHROUGH = "passthrough"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ResolvedField:
    key: str
    source: ResolutionSource
    expr: str | None = None
    field_type: FieldType | None = None

    @property
    def known(self) -> bool:
        return self.source != ResolutionSource.UNKNOWN


class FieldResolver:
    """Resolves field keys against a catalog and the loaded view's columns.

    Args:
        catalog: Field catalog
        available_columns: Discovered view columns and their field types.
            None means the schema is not known yet, so catalog hits are
            trusted without a column check and nothing passes through.
        column_types: Discovered DuckDB type per column. Columns without
            an entry are assumed to be VARCHAR.
    """

    def __init__(
        self,
        catalog: FieldCatalog,
        available_columns: Mapping[str, FieldType] | None = None,
        column_types: Mapping[str, str] | None = None,
    ):
        self.catalog = catalog
        self.available_columns = dict(available_columns) if available_columns is not None else None
        self.column_types = dict(column_types or {})
        self._expr_map: dict[str, str] = {}
        self._type_map: dict[str, FieldType] = {}
        self._catalog_keys: set[str] = set()

        for definition in catalog:
            if self._catalog_field_available(definition.columns):
                self._catalog_keys.add(definition.key)
                self._expr_map[definition.key] = self._typed_expr(
                    definition.read_expr, definition.type, definition.columns
                )
                self._type_map[definition.key] = definition.type

        for name, field_type in (self.available_columns or {}).items():
            if name not in self._expr_map:
                self._expr_map[name] = self._typed_expr(quote_identifier(name), field_type, (name,))
                self._type_map[name] = field_type

    def _catalog_field_available(self, columns: tuple[str, ...]) -> bool:
        if self.available_columns is None:
            return True
        return all(column in self.available_columns for column in columns)

    def _typed_expr(self, expr: str, field_type: FieldType, columns: Iterable[str]) -> str:
        if field_type != FieldType.STRING:
            return expr
        if all(is_text_type(self.column_types.get(column, "VARCHAR")) for column in columns):
            return expr
        return f"CAST({expr} AS VARCHAR)"

    def resolve(self, key: str) -> ResolvedField:
        expr = self._expr_map.get(key)
        if expr is None:
            return ResolvedField(key=key, source=ResolutionSource.UNKNOWN)
        if key in self._catalog_keys:
            source = ResolutionSource.CATALOG
        else:
            source = ResolutionSource.PASSTHROUGH
        return ResolvedField(key=key, source=source, expr=expr, field_type=self._type_map[key])

    @property
    def expr_map(self) -> dict[str, str]:
        """Key -> expression for every resolvable field."""
        return dict(self._expr_map)

    @property
    def type_map(self) -> dict[str, FieldType]:
        """Key -> field type for every resolvable field."""
        return dict(self._type_map)

    def catalog_matches(self) -> list[str]:
        """Catalog keys that resolve through the catalog."""
        return [d.key for d in self.catalog if d.key in self._catalog_keys]
