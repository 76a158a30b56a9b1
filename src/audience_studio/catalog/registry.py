"""Versioned, immutable field catalog.

Catalog data lives in YAML files next to this module
(versions/<version>.yaml). A catalog is loaded once per version and never
mutated; the key->expression and key->type maps are built at
construction for constant-time lookup during filter compilation.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from audience_studio.catalog.models import FieldDefinition, FieldGroup, FieldType
from audience_studio.core.errors import CatalogLoadError
from audience_studio.core.sql import quote_identifier

VERSIONS_DIR = Path(__file__).parent / "versions"


class FieldCatalog:
    """Registry of known fields for one catalog version."""

    def __init__(self, version: str, fields: Iterable[FieldDefinition]):
        self.version = version
        self._fields = tuple(fields)

        by_key: dict[str, FieldDefinition] = {}
        for definition in self._fields:
            if definition.key in by_key:
                raise ValueError(f"Duplicate field key in catalog {version}: {definition.key}")
            by_key[definition.key] = definition

        self._by_key = MappingProxyType(by_key)
        self._expr_map = MappingProxyType({f.key: f.read_expr for f in self._fields})
        self._type_map = MappingProxyType({f.key: f.type for f in self._fields})

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[FieldDefinition]:
        return iter(self._fields)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __repr__(self) -> str:
        return f"FieldCatalog(version={self.version!r}, fields={len(self)})"

    @property
    def fields(self) -> tuple[FieldDefinition, ...]:
        return self._fields

    @property
    def expr_map(self) -> Mapping[str, str]:
        """Read-only key -> read-expression map."""
        return self._expr_map

    @property
    def type_map(self) -> Mapping[str, FieldType]:
        """Read-only key -> field type map."""
        return self._type_map

    def by_key(self, key: str) -> FieldDefinition | None:
        """Look up a field; None when the key is not in the catalog."""
        return self._by_key.get(key)

    def expr_for(self, key: str) -> str:
        """Read-expression for a key, or the key as a quoted identifier if unknown."""
        definition = self._by_key.get(key)
        return definition.read_expr if definition else quote_identifier(key)

    def by_group(self, group: FieldGroup | str) -> list[FieldDefinition]:
        """Fields in a group; empty for an unknown group."""
        return [f for f in self._fields if f.group == group]

    def by_type(self, field_type: FieldType | str) -> list[FieldDefinition]:
        return [f for f in self._fields if f.type == field_type]

    def matching(
        self,
        group: FieldGroup | str | None = None,
        field_type: FieldType | str | None = None,
    ) -> list[FieldDefinition]:
        """Fields narrowed by group and/or type; all fields when neither is given."""
        selected = self.by_group(group) if group else list(self._fields)
        if field_type:
            selected = [f for f in selected if f.type == field_type]
        return selected

    def select_list(self) -> str:
        """Projection list renaming every catalog expression to its key."""
        return ",\n  ".join(f"{f.read_expr} AS {quote_identifier(f.key)}" for f in self._fields)

    def describe(self) -> dict[str, Any]:
        """Catalog summary grouped by field group."""
        groups: dict[str, Any] = {}
        for group in FieldGroup:
            members = self.by_group(group)
            groups[group.value] = {
                "count": len(members),
                "fields": [f.model_dump(mode="json") for f in members],
            }
        return {
            "catalog": self.version,
            "total_fields": len(self),
            "fields": [f.model_dump(mode="json") for f in self._fields],
            "groups": groups,
        }


def load_catalog(path: Path, version: str | None = None) -> FieldCatalog:
    """Load a catalog from a YAML file.

    The file holds a mapping with a `fields` list. Each entry needs `key`
    and `group`; `label`, `type`, `expr` and `columns` are optional.

    Raises:
        CatalogLoadError: If the file is missing or malformed
    """
    if not path.exists():
        raise CatalogLoadError(path, "catalog file not found")

    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise CatalogLoadError(path, f"invalid YAML: {e}") from e

    entries = raw.get("fields") if isinstance(raw, dict) else None
    if not isinstance(entries, list):
        raise CatalogLoadError(path, "expected a top-level 'fields' list")

    try:
        fields = [FieldDefinition.model_validate(entry) for entry in entries]
        return FieldCatalog(version or raw.get("version") or path.stem, fields)
    except PydanticValidationError as e:
        raise CatalogLoadError(path, f"invalid field definition: {e}") from e
    except ValueError as e:
        raise CatalogLoadError(path, str(e)) from e


@lru_cache
def get_catalog(version: str = "v1") -> FieldCatalog:
    """Get the bundled catalog for a version (loaded once per process)."""
    return load_catalog(VERSIONS_DIR / f"{version}.yaml", version)
