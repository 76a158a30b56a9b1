"""Query service models."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from audience_studio.core.errors import ValidationError
from audience_studio.filters.models import FilterNode, parse_filter

MAX_PREVIEW_LIMIT = 1000
DEFAULT_PREVIEW_LIMIT = 200


class PreviewOptions(BaseModel):
    """Pagination, filter and column selection for a preview.

    `limit` and `offset` are taken as given here; the service clamps them.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    limit: int = DEFAULT_PREVIEW_LIMIT
    offset: int = 0
    filter_tree: Any = Field(
        default=None,
        validation_alias=AliasChoices("filter_tree", "filterTree", "where"),
    )
    select: list[str] | None = None

    @field_validator("filter_tree", mode="before")
    @classmethod
    def _parse_filter_tree(cls, value: Any) -> FilterNode | None:
        return parse_filter(value)

    @field_validator("select")
    @classmethod
    def _unique_columns(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        # Rows are keyed by column name; keep the first of each.
        return list(dict.fromkeys(value))

    @classmethod
    def coerce(cls, options: PreviewOptions | Mapping[str, Any] | None) -> PreviewOptions:
        """Validate options given as a model, a mapping, or None for defaults.

        Raises:
            ValidationError: If the options are malformed
        """
        if isinstance(options, cls):
            return options
        try:
            return cls.model_validate(options or {})
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic("preview options", e) from e


class PreviewResult(BaseModel):
    """One page of rows from the projected view."""

    rows: list[dict[str, Any]]
    limit: int
    offset: int
    generation: int
