"""Tests for the studio CLI."""

import json

import pytest
from typer.testing import CliRunner

from audience_studio import cli
from audience_studio.catalog import get_catalog

runner = CliRunner()


@pytest.fixture(autouse=True)
def keep_logging(monkeypatch):
    """Leave logging bound to the test session's stderr."""
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)


class TestFieldsCommand:
    def test_json(self):
        result = runner.invoke(cli.app, ["fields", "--group", "event", "--type", "timestamp", "--json"])
        assert result.exit_code == 0
        fields = json.loads(result.stdout)
        assert fields
        assert {f["group"] for f in fields} == {"event"}
        assert "event_timestamp" in {f["key"] for f in fields}

    def test_table(self):
        result = runner.invoke(cli.app, ["fields", "-g", "event"])
        assert result.exit_code == 0
        assert f"{len(get_catalog().by_group('event'))} fields" in result.stdout

    def test_bad_group(self):
        result = runner.invoke(cli.app, ["fields", "--group", "pixels"])
        assert result.exit_code == 2


class TestCountCommand:
    def test_count(self, people_csv):
        result = runner.invoke(
            cli.app,
            ["count", str(people_csv), "--format", "csv", "--filter", '{"field": "age", "op": ">", "value": 30}'],
        )
        assert result.exit_code == 0
        assert result.stdout.strip() == "1"

    def test_invalid_filter_json(self, people_csv):
        result = runner.invoke(cli.app, ["count", str(people_csv), "--filter", "{not json"])
        assert result.exit_code == 2

    def test_malformed_filter(self, people_csv):
        result = runner.invoke(cli.app, ["count", str(people_csv), "--filter", '"age > 30"'])
        assert result.exit_code == 1

    def test_missing_source(self, tmp_path):
        result = runner.invoke(cli.app, ["count", str(tmp_path / "missing.csv")])
        assert result.exit_code == 1


class TestPreviewCommand:
    def test_json(self, people_csv):
        result = runner.invoke(
            cli.app,
            ["preview", str(people_csv), "-f", "csv", "-s", "name", "--limit", "2", "--json"],
        )
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["rows"] == [{"name": "Alice"}, {"name": "Bob"}]
        assert payload["limit"] == 2
        assert payload["total_rows"] == 3

    def test_table(self, people_json):
        result = runner.invoke(cli.app, ["preview", str(people_json), "--format", "json"])
        assert result.exit_code == 0
        assert "Alice" in result.stdout
        assert "of 3" in result.stdout
