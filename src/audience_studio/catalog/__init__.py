"""Field catalog: stable external field keys mapped to type, group and read-expression."""

from audience_studio.catalog.models import FieldDefinition, FieldGroup, FieldType
from audience_studio.catalog.registry import FieldCatalog, get_catalog, load_catalog

__all__ = [
    "FieldCatalog",
    "FieldDefinition",
    "FieldGroup",
    "FieldType",
    "get_catalog",
    "load_catalog",
]
