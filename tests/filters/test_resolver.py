"""Tests for field name resolution."""

import pytest

from audience_studio.catalog import FieldType
from audience_studio.filters import FieldResolver, ResolutionSource
from audience_studio.filters.resolver import is_text_type


class TestFieldResolver:
    def test_catalog_hit(self, catalog):
        resolver = FieldResolver(catalog, {"event_timestamp": FieldType.TIMESTAMP})
        resolved = resolver.resolve("event_timestamp")
        assert resolved.source == ResolutionSource.CATALOG
        assert resolved.expr == 'TRY_CAST("event_timestamp" AS TIMESTAMP)'
        assert resolved.field_type == FieldType.TIMESTAMP

    def test_catalog_string_field_over_numeric_column_is_cast(self, catalog):
        resolver = FieldResolver(catalog, {"COMPANY_ZIP": FieldType.NUMBER}, {"COMPANY_ZIP": "BIGINT"})
        resolved = resolver.resolve("COMPANY_ZIP")
        assert resolved.source == ResolutionSource.CATALOG
        assert resolved.field_type == FieldType.STRING
        assert resolved.expr == 'CAST("COMPANY_ZIP" AS VARCHAR)'

    def test_catalog_string_field_over_text_column_not_cast(self, catalog):
        resolver = FieldResolver(catalog, {"COMPANY_ZIP": FieldType.STRING}, {"COMPANY_ZIP": "VARCHAR"})
        assert resolver.resolve("COMPANY_ZIP").expr == '"COMPANY_ZIP"'

    @pytest.mark.parametrize("column_type", ["UUID", "BLOB", "INTERVAL", "TIME"])
    def test_non_text_passthrough_string_is_cast(self, catalog, column_type):
        resolver = FieldResolver(catalog, {"visitor": FieldType.STRING}, {"visitor": column_type})
        assert resolver.resolve("visitor").expr == 'CAST("visitor" AS VARCHAR)'

    def test_non_string_types_not_cast(self, catalog):
        resolver = FieldResolver(
            catalog,
            {"age": FieldType.NUMBER, "event_timestamp": FieldType.TIMESTAMP},
            {"age": "BIGINT", "event_timestamp": "TIMESTAMP"},
        )
        assert resolver.resolve("age").expr == '"age"'
        assert resolver.resolve("event_timestamp").expr == 'TRY_CAST("event_timestamp" AS TIMESTAMP)'

    @pytest.mark.parametrize(
        "column_type,expected",
        [("VARCHAR", True), ("varchar(20)", True), ("TEXT", True), ("BIGINT", False), ("UUID", False)],
    )
    def test_is_text_type(self, column_type, expected):
        assert is_text_type(column_type) is expected

    def test_passthrough(self, catalog):
        resolver = FieldResolver(catalog, {"age": FieldType.NUMBER, "name": FieldType.STRING})
        resolved = resolver.resolve("age")
        assert resolved.source == ResolutionSource.PASSTHROUGH
        assert resolved.expr == '"age"'
        assert resolved.field_type == FieldType.NUMBER
        assert resolved.known

    def test_unknown(self, catalog):
        resolver = FieldResolver(catalog, {"age": FieldType.NUMBER})
        resolved = resolver.resolve("height")
        assert resolved.source == ResolutionSource.UNKNOWN
        assert resolved.expr is None
        assert not resolved.known

    def test_catalog_field_without_column_is_unknown(self, catalog):
        resolver = FieldResolver(catalog, {"age": FieldType.NUMBER})
        assert resolver.resolve("pixel_id").source == ResolutionSource.UNKNOWN
        assert "pixel_id" not in resolver.expr_map

    def test_no_schema_trusts_catalog(self, catalog):
        resolver = FieldResolver(catalog)
        assert resolver.resolve("pixel_id").source == ResolutionSource.CATALOG
        assert resolver.resolve("age").source == ResolutionSource.UNKNOWN
        assert len(resolver.catalog_matches()) == len(catalog)

    def test_catalog_matches(self, catalog):
        resolver = FieldResolver(
            catalog, {"pixel_id": FieldType.STRING, "event_type": FieldType.STRING, "age": FieldType.NUMBER}
        )
        assert resolver.catalog_matches() == ["pixel_id", "event_type"]

    def test_maps_are_copies(self, catalog):
        resolver = FieldResolver(catalog, {"age": FieldType.NUMBER})
        resolver.expr_map["age"] = "1"
        assert resolver.expr_map["age"] == '"age"'
