"""Filter trees, field resolution and the filter compiler."""

from audience_studio.filters.compiler import (
    FALSE_PREDICATE,
    TRUE_PREDICATE,
    CompiledPredicate,
    FilterCompiler,
    compile_predicate,
    compile_where,
)
from audience_studio.filters.models import (
    Combinator,
    FilterNode,
    FilterRule,
    FilterTree,
    Operator,
    parse_filter,
)
from audience_studio.filters.resolver import FieldResolver, ResolutionSource, ResolvedField

__all__ = [
    "FALSE_PREDICATE",
    "TRUE_PREDICATE",
    "Combinator",
    "CompiledPredicate",
    "FieldResolver",
    "FilterCompiler",
    "FilterNode",
    "FilterRule",
    "FilterTree",
    "Operator",
    "ResolutionSource",
    "ResolvedField",
    "compile_predicate",
    "compile_where",
    "parse_filter",
]
