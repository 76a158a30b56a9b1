"""Tests for filter tree parsing."""

import pytest

from audience_studio.core.errors import ValidationError
from audience_studio.filters import Combinator, FilterRule, FilterTree, Operator, parse_filter
from audience_studio.filters.models import MAX_FILTER_DEPTH


def _nested(depth: int) -> dict:
    node: dict = {"field": "age", "op": ">", "value": 1}
    for _ in range(depth):
        node = {"combinator": "and", "rules": [node]}
    return node


class TestParseFilter:
    def test_none(self):
        assert parse_filter(None) is None

    def test_single_rule(self):
        node = parse_filter({"field": "age", "op": ">", "value": 30})
        assert isinstance(node, FilterRule)
        assert node.value == 30

    def test_tree(self):
        node = parse_filter(
            {
                "combinator": "or",
                "rules": [
                    {"field": "age", "op": ">", "value": 30},
                    {"combinator": "and", "rules": [{"field": "name", "op": "=", "value": "Bob"}]},
                ],
            }
        )
        assert isinstance(node, FilterTree)
        assert node.combinator == Combinator.OR
        assert isinstance(node.rules[1], FilterTree)
        assert node.depth == 2

    def test_combinator_defaults_to_and(self):
        node = parse_filter({"rules": []})
        assert node.combinator == Combinator.AND
        assert node.rules == []

    def test_legacy_list_is_and_tree(self):
        node = parse_filter([{"field": "age", "op": ">", "value": 30}, {"field": "name", "op": "exists"}])
        assert isinstance(node, FilterTree)
        assert node.combinator == Combinator.AND
        assert len(node.rules) == 2

    def test_models_pass_through(self):
        rule = FilterRule(field="age", op=">", value=1)
        assert parse_filter(rule) is rule
        tree = FilterTree(rules=[rule])
        assert parse_filter(tree) is tree

    def test_list_value(self):
        node = parse_filter({"field": "state", "op": "in", "value": ["CA", "NY"]})
        assert node.value == ["CA", "NY"]

    def test_unknown_operator_still_parses(self):
        node = parse_filter({"field": "age", "op": "regex", "value": ".*"})
        assert node.op == "regex"

    @pytest.mark.parametrize(
        "data",
        [
            "age > 30",
            42,
            {"value": 1},
            {"field": "age"},
            {"combinator": "xor", "rules": []},
            {"field": "age", "op": "=", "value": 1, "extra": True},
            {"rules": "not a list"},
        ],
    )
    def test_malformed(self, data):
        with pytest.raises(ValidationError):
            parse_filter(data)

    def test_depth_limit(self):
        assert parse_filter(_nested(MAX_FILTER_DEPTH)) is not None
        with pytest.raises(ValidationError, match="nesting"):
            parse_filter(_nested(MAX_FILTER_DEPTH + 1))


class TestOperator:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("=", Operator.EQ),
            ("equals", Operator.EQ),
            ("<>", Operator.NE),
            ("startsWith", Operator.STARTS_WITH),
            ("ends_with", Operator.ENDS_WITH),
            ("isNull", Operator.IS_NULL),
            ("not_null", Operator.NOT_NULL),
        ],
    )
    def test_lookup(self, raw, expected):
        assert Operator.lookup(raw) == expected

    def test_lookup_unknown(self):
        assert Operator.lookup("between") is None
