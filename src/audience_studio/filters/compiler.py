"""Filter compiler: filter trees to DuckDB boolean predicates.

Compilation is a pure function of the filter and the field maps; it never
touches the database. Values are emitted as `?` placeholders with a
parameter tuple, or, for the plain-string form, rendered inline through
`core.sql.quote_literal`.

Invalid rules fail closed: an unknown field, unknown operator or a value
that cannot be coerced to the field's type compiles to `1=0`, so one bad
rule can never widen a result set.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from audience_studio.catalog import FieldType
from audience_studio.core.errors import CompilationError
from audience_studio.core.logging import get_logger
from audience_studio.core.sql import LIKE_ESCAPE, escape_like, quote_literal, quote_string
from audience_studio.filters.models import (
    FilterNode,
    FilterRule,
    Operator,
    parse_filter,
)

logger = get_logger(__name__)

TRUE_PREDICATE = "1=1"
FALSE_PREDICATE = "1=0"

_COMPARISONS = {
    Operator.EQ: "=",
    Operator.NE: "<>",
    Operator.GT: ">",
    Operator.LT: "<",
    Operator.GE: ">=",
    Operator.LE: "<=",
}
_TRUE_WORDS = {"true", "t", "yes", "y", "1"}
_FALSE_WORDS = {"false", "f", "no", "n", "0"}


@dataclass(frozen=True)
class CompiledPredicate:
    """A compiled WHERE predicate and the values bound to its placeholders."""

    sql: str
    params: tuple[Any, ...] = ()
    rejected: tuple[str, ...] = ()

    @property
    def matches_everything(self) -> bool:
        return self.sql == TRUE_PREDICATE

    @property
    def matches_nothing(self) -> bool:
        return self.sql == FALSE_PREDICATE


class _BoundParams:
    def __init__(self) -> None:
        self.params: list[Any] = []

    def __call__(self, value: Any) -> str:
        self.params.append(value)
        return "?"


class _InlineLiterals:
    def __init__(self) -> None:
        self.params: list[Any] = []

    def __call__(self, value: Any) -> str:
        return quote_literal(value)


def _coerce_number(value: Any) -> int | float:
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"non-finite number {value}")
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        number = float(text)
        if not math.isfinite(number):
            raise ValueError(f"non-finite number {value!r}")
        return number
    raise ValueError(f"{type(value).__name__} is not a number")


def _coerce_timestamp(value: Any) -> datetime | date:
    if isinstance(value, datetime | date):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    raise ValueError(f"{type(value).__name__} is not a timestamp")


def _coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValueError(f"{value!r} is not a boolean")


def _coerce_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime | date):
        return value.isoformat()
    return str(value)


def coerce_value(field_type: FieldType, value: Any) -> Any:
    """Coerce a filter value to the Python type bound for a field type.

    Raises:
        ValueError: If the value does not fit the field type
    """
    if isinstance(value, list | dict):
        raise ValueError("expected a single value")
    if field_type == FieldType.NUMBER:
        return _coerce_number(value)
    if field_type == FieldType.TIMESTAMP:
        return _coerce_timestamp(value)
    if field_type == FieldType.BOOLEAN:
        return _coerce_boolean(value)
    return _coerce_string(value)


class FilterCompiler:
    """Compiles filters against a key->expression and key->type map.

    Args:
        field_exprs: Read-expression per resolvable field key
        field_types: Field type per key; keys without a type compile as strings

    Expressions of string fields must evaluate to VARCHAR; FieldResolver
    casts columns of other engine types.
    """

    def __init__(
        self,
        field_exprs: Mapping[str, str],
        field_types: Mapping[str, FieldType | str],
    ):
        self._exprs = dict(field_exprs)
        self._types: dict[str, FieldType] = {}
        for key, field_type in field_types.items():
            try:
                self._types[key] = FieldType(field_type)
            except ValueError:
                self._types[key] = FieldType.STRING

    def compile(self, node: FilterNode | Any, *, inline: bool = False) -> CompiledPredicate:
        """Compile a filter (model or JSON-like form) to a predicate.

        Raises:
            ValidationError: If the filter is malformed
        """
        node = parse_filter(node)
        if node is None:
            return CompiledPredicate(TRUE_PREDICATE)

        values = _InlineLiterals() if inline else _BoundParams()
        rejected: list[str] = []
        sql = self._compile_node(node, values, rejected)
        return CompiledPredicate(sql, tuple(values.params), tuple(rejected))

    def _compile_node(
        self,
        node: FilterNode,
        values: _BoundParams | _InlineLiterals,
        rejected: list[str],
    ) -> str:
        if isinstance(node, FilterRule):
            mark = len(values.params)
            try:
                return self._compile_rule(node, values)
            except CompilationError as e:
                del values.params[mark:]
                logger.warning("filter_rule_rejected", field=e.field, op=e.op, reason=e.reason)
                rejected.append(str(e))
                return FALSE_PREDICATE

        if not node.rules:
            return TRUE_PREDICATE
        if len(node.rules) == 1:
            return self._compile_node(node.rules[0], values, rejected)

        parts = [self._compile_node(child, values, rejected) for child in node.rules]
        joiner = f" {node.combinator.value.upper()} "
        return f"({joiner.join(parts)})"

    def _compile_rule(self, rule: FilterRule, values: _BoundParams | _InlineLiterals) -> str:
        expr = self._exprs.get(rule.field)
        if expr is None:
            raise CompilationError(rule.field, rule.op, "unknown field")

        op = Operator.lookup(rule.op)
        if op is None:
            raise CompilationError(rule.field, rule.op, "unknown operator")

        field_type = self._types.get(rule.field, FieldType.STRING)
        operand = f"CAST({expr} AS VARCHAR)" if field_type == FieldType.JSON else expr
        value = rule.value

        if op == Operator.IS_NULL:
            return f"{expr} IS NULL"
        if op == Operator.NOT_NULL:
            return f"{expr} IS NOT NULL"
        if op == Operator.EXISTS:
            if field_type in (FieldType.STRING, FieldType.JSON):
                return f"({expr} IS NOT NULL AND {operand} <> '')"
            return f"{expr} IS NOT NULL"

        if op in (Operator.EQ, Operator.NE) and value is None:
            return f"{expr} IS NULL" if op == Operator.EQ else f"{expr} IS NOT NULL"

        if value is None:
            raise CompilationError(rule.field, rule.op, "operator requires a value")

        if op in _COMPARISONS:
            placeholder = self._value(rule, field_type, value, values)
            return f"{operand} {_COMPARISONS[op]} {placeholder}"

        if op in (Operator.CONTAINS, Operator.STARTS_WITH, Operator.ENDS_WITH):
            if isinstance(value, list):
                raise CompilationError(rule.field, rule.op, "expected a single value")
            text = escape_like(_coerce_string(value))
            if op == Operator.CONTAINS:
                pattern = f"%{text}%"
            elif op == Operator.STARTS_WITH:
                pattern = f"{text}%"
            else:
                pattern = f"%{text}"
            haystack = expr if field_type == FieldType.STRING else f"CAST({expr} AS VARCHAR)"
            return f"{haystack} ILIKE {values(pattern)} ESCAPE {quote_string(LIKE_ESCAPE)}"

        # Operator.IN
        if isinstance(value, str):
            items: list[Any] = [item.strip() for item in value.split(",")]
        elif isinstance(value, list):
            items = [item.strip() if isinstance(item, str) else item for item in value]
        else:
            items = [value]
        items = [item for item in items if item != ""]
        if not items:
            raise CompilationError(rule.field, rule.op, "empty value list")
        rendered = ", ".join(self._value(rule, field_type, item, values) for item in items)
        return f"{operand} IN ({rendered})"

    def _value(
        self,
        rule: FilterRule,
        field_type: FieldType,
        value: Any,
        values: _BoundParams | _InlineLiterals,
    ) -> str:
        try:
            coerced = coerce_value(field_type, value)
        except ValueError as e:
            raise CompilationError(rule.field, rule.op, f"invalid {field_type.value} value: {e}") from e
        placeholder = values(coerced)
        if field_type == FieldType.TIMESTAMP:
            return f"CAST({placeholder} AS TIMESTAMP)"
        return placeholder


def compile_predicate(
    tree: FilterNode | Any,
    field_exprs: Mapping[str, str],
    field_types: Mapping[str, FieldType | str],
) -> CompiledPredicate:
    """Compile a filter to a parameterized predicate."""
    return FilterCompiler(field_exprs, field_types).compile(tree)


def compile_where(
    tree: FilterNode | Any,
    field_exprs: Mapping[str, str],
    field_types: Mapping[str, FieldType | str],
) -> str:
    """Compile a filter to a predicate string with inline, escaped literals."""
    return FilterCompiler(field_exprs, field_types).compile(tree, inline=True).sql
