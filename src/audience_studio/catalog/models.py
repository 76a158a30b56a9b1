"""Field catalog models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from audience_studio.core.sql import quote_identifier


class FieldType(str, Enum):
    """Semantic type of a field, drives literal rendering in filters."""

    STRING = "string"
    NUMBER = "number"
    TIMESTAMP = "timestamp"
    BOOLEAN = "boolean"
    JSON = "json"


class FieldGroup(str, Enum):
    """Logical origin of a field."""

    EVENT = "event"  # Pixel events
    CONTACT = "contact"  # Resolved contact attributes


class FieldDefinition(BaseModel):
    """One known external field.

    `read_expr` reads (and casts) the field from the staging table's raw
    columns; `columns` lists the raw columns it references. Both default
    to the key itself.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1)
    label: str
    type: FieldType = FieldType.STRING
    group: FieldGroup
    read_expr: str
    columns: tuple[str, ...]

    @model_validator(mode="before")
    @classmethod
    def _default_read_expression(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not data.get("key"):
            return data
        data = dict(data)
        expr = data.pop("expr", None)
        data.setdefault("read_expr", expr or quote_identifier(data["key"]))
        if not data.get("columns"):
            data["columns"] = (data["key"],)
        data.setdefault("label", data["key"])
        return data
