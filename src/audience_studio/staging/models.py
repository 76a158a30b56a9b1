"""Staging layer models."""

from __future__ import annotations

import hashlib
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from audience_studio.catalog import FieldType
from audience_studio.core.errors import ValidationError


class SourceFormat(str, Enum):
    """Supported source file formats."""

    CSV = "csv"
    PARQUET = "parquet"
    JSON = "json"


def source_hash(url: str) -> str:
    """Short fingerprint of a source URL for log correlation (not a security control)."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:8]


class LoadOptions(BaseModel):
    """Where to load a source file from."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str = Field(min_length=1)
    format: SourceFormat
    tracking_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("tracking_id", "trackingId", "audience_id"),
    )

    @property
    def source_key(self) -> str:
        return f"{self.url}|{self.format.value}"

    @property
    def source_hash(self) -> str:
        return source_hash(self.url)

    @classmethod
    def coerce(cls, options: LoadOptions | Mapping[str, Any]) -> LoadOptions:
        """Validate options given as a model or a mapping.

        Raises:
            ValidationError: If the options are malformed or the format is unsupported
        """
        if isinstance(options, cls):
            return options
        try:
            return cls.model_validate(options)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic("load options", e) from e


_NUMBER_TYPE = re.compile(
    r"^(U?(TINYINT|SMALLINT|INTEGER|BIGINT|HUGEINT)|INT\d*|FLOAT|REAL|DOUBLE|DECIMAL.*|NUMERIC.*)$"
)
_TIMESTAMP_TYPE = re.compile(r"^(DATE|TIMESTAMP.*)$")
_JSON_TYPE = re.compile(r"^(JSON|STRUCT.*|MAP.*|UNION.*|.*\[\d*\])$")


def field_type_for(column_type: str) -> FieldType:
    """Map a DuckDB column type to the field type used for filtering."""
    normalized = column_type.strip().upper()
    if _NUMBER_TYPE.match(normalized):
        return FieldType.NUMBER
    if _TIMESTAMP_TYPE.match(normalized):
        return FieldType.TIMESTAMP
    if normalized == "BOOLEAN":
        return FieldType.BOOLEAN
    if _JSON_TYPE.match(normalized):
        return FieldType.JSON
    return FieldType.STRING


class StagedColumn(BaseModel):
    """A column discovered in the staging table."""

    model_config = ConfigDict(frozen=True)

    name: str
    column_type: str
    field_type: FieldType


class StagingStats(BaseModel):
    """Outcome of materializing a source into a staging table."""

    generation: int
    table_name: str
    loaded_rows: int
    duration_ms: int


class ViewStats(BaseModel):
    """Outcome of building the projected view."""

    generation: int
    view_name: str
    view_rows: int
    duration_ms: int
    columns: list[StagedColumn]


class LoadStatus(str, Enum):
    OK = "ok"
    ERROR = "error"


class LoadResult(BaseModel):
    """Result of load_and_project, as returned to request handlers."""

    status: LoadStatus
    loaded_rows: int = 0
    view_rows: int = 0
    catalog: str
    catalog_fields: int = 0
    duration_ms: int
    source_hash: str
    generation: int | None = None
    reused: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == LoadStatus.OK


@dataclass(frozen=True)
class Generation:
    """One published staging table + projected view pair."""

    generation: int
    source_key: str
    source_hash: str
    staging_table: str
    view_name: str
    columns: tuple[StagedColumn, ...]
    loaded_rows: int
    view_rows: int

    @property
    def column_types(self) -> dict[str, FieldType]:
        return {column.name: column.field_type for column in self.columns}

    @property
    def sql_types(self) -> dict[str, str]:
        return {column.name: column.column_type for column in self.columns}
