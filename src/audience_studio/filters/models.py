"""Filter rule and filter tree models.

A filter is either a single rule or a tree of rules and subtrees joined
by one combinator. Parsing only checks shape: unknown fields and
operators are left for the compiler, which fails them closed.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from audience_studio.core.errors import ValidationError

MAX_FILTER_DEPTH = 32

Scalar = Union[str, int, float, bool, datetime, date]


class Combinator(str, Enum):
    AND = "and"
    OR = "or"


class Operator(str, Enum):
    """Supported filter operators."""

    EQ = "="
    NE = "!="
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    EXISTS = "exists"
    IN = "in"
    IS_NULL = "isNull"
    NOT_NULL = "notNull"

    @classmethod
    def lookup(cls, op: str) -> Operator | None:
        """Resolve an operator or one of its aliases; None if unsupported."""
        try:
            return cls(op)
        except ValueError:
            return _OPERATOR_ALIASES.get(op)


_OPERATOR_ALIASES = {
    "equals": Operator.EQ,
    "<>": Operator.NE,
    "startsWith": Operator.STARTS_WITH,
    "endsWith": Operator.ENDS_WITH,
    "is_null": Operator.IS_NULL,
    "not_null": Operator.NOT_NULL,
}


class FilterRule(BaseModel):
    """Single predicate on one field."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    field: str
    op: str
    value: Scalar | list[Scalar] | None = None


class FilterTree(BaseModel):
    """AND/OR combination of rules and nested trees."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    combinator: Combinator = Combinator.AND
    rules: list[FilterRule | FilterTree] = Field(default_factory=list)

    @property
    def depth(self) -> int:
        child_depths = [r.depth for r in self.rules if isinstance(r, FilterTree)]
        return 1 + max(child_depths, default=0)


FilterTree.model_rebuild()

FilterNode = FilterRule | FilterTree


def parse_filter(data: Any) -> FilterNode | None:
    """Parse a filter from its JSON-like form.

    Accepts a FilterTree/FilterRule instance, a mapping with `rules`
    (tree), a mapping with `field` (rule), a list of rules (legacy flat
    form, combined with AND), or None.

    Raises:
        ValidationError: If the shape is not a filter
    """
    if data is None or isinstance(data, FilterRule):
        return data

    if isinstance(data, Sequence) and not isinstance(data, str | bytes):
        data = {"combinator": Combinator.AND, "rules": list(data)}

    if not isinstance(data, FilterTree | Mapping):
        raise ValidationError(
            f"Invalid filter: expected an object or a list of rules, got {type(data).__name__}"
        )

    try:
        if isinstance(data, FilterTree):
            node: FilterNode = data
        elif "rules" in data:
            node = FilterTree.model_validate(data)
        elif "field" in data:
            node = FilterRule.model_validate(data)
        else:
            raise ValidationError("Invalid filter: object needs either 'rules' or 'field'")
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic("filter", e) from e

    if isinstance(node, FilterTree) and node.depth > MAX_FILTER_DEPTH:
        raise ValidationError(f"Invalid filter: nesting deeper than {MAX_FILTER_DEPTH} levels")
    return node
