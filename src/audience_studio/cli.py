"""CLI for the audience studio query layer.

Usage:
    studio fields --group contact
    studio preview ./audience.csv --format csv --limit 20
    studio preview https://host/events.parquet -f parquet --filter '{"field": "event_type", "op": "=", "value": "click"}'
    studio count ./audience.csv --filter '[{"field": "age", "op": ">", "value": 30}]'
"""

from __future__ import annotations

import json
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table as RichTable

from audience_studio.catalog import FieldGroup, FieldType, get_catalog
from audience_studio.core.config import get_settings
from audience_studio.core.errors import StudioError
from audience_studio.core.logging import configure_logging
from audience_studio.staging.models import SourceFormat
from audience_studio.studio import AudienceStudio, open_studio

app = typer.Typer(
    name="studio",
    help="Audience Studio - load tabular sources into DuckDB and preview filtered audiences.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

UrlArgument = Annotated[str, typer.Argument(help="Local path or remote URL of the source file")]
FormatOption = Annotated[
    SourceFormat,
    typer.Option("--format", "-f", help="Source file format"),
]
FilterOption = Annotated[
    str | None,
    typer.Option("--filter", help="Filter tree, single rule or rule list as JSON"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Print machine-readable JSON")]


@app.callback()
def main() -> None:
    """Audience Studio query layer."""
    settings = get_settings()
    configure_logging(log_level=settings.log_level, log_format=settings.log_format)


def _parse_filter_option(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        err_console.print(f"[red]--filter is not valid JSON:[/red] {e}")
        raise typer.Exit(2) from e


def _load_or_exit(studio: AudienceStudio, url: str, source_format: SourceFormat) -> None:
    result = studio.load_and_project({"url": url, "format": source_format})
    if not result.ok:
        err_console.print(f"[red]Load failed:[/red] {result.error}")
        raise typer.Exit(1)


@app.command()
def fields(
    group: Annotated[FieldGroup | None, typer.Option("--group", "-g", help="Field group")] = None,
    field_type: Annotated[FieldType | None, typer.Option("--type", "-t", help="Field type")] = None,
    as_json: JsonOption = False,
) -> None:
    """List the field catalog."""
    catalog = get_catalog(get_settings().catalog_version)
    selected = catalog.matching(group, field_type)

    if as_json:
        console.print_json(data=[f.model_dump(mode="json") for f in selected])
        return

    table = RichTable(title=f"Field catalog {catalog.version}", header_style="bold")
    table.add_column("Key")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Group")
    table.add_column("Expression")
    for f in selected:
        table.add_row(f.key, f.label, f.type.value, f.group.value, f.read_expr)
    console.print(table)
    console.print(f"{len(selected)} fields")


@app.command()
def preview(
    url: UrlArgument,
    source_format: FormatOption = SourceFormat.CSV,
    filter_json: FilterOption = None,
    select: Annotated[
        list[str] | None, typer.Option("--select", "-s", help="Column to return (repeatable)")
    ] = None,
    limit: Annotated[int, typer.Option("--limit", "-l", help="Rows per page (max 1000)")] = 200,
    offset: Annotated[int, typer.Option("--offset", help="Rows to skip")] = 0,
    as_json: JsonOption = False,
) -> None:
    """Load a source and print one page of (optionally filtered) rows."""
    filter_tree = _parse_filter_option(filter_json)

    try:
        with open_studio() as studio:
            _load_or_exit(studio, url, source_format)
            page = studio.preview(
                {"limit": limit, "offset": offset, "filter_tree": filter_tree, "select": select}
            )
            total = studio.count(filter_tree)
    except StudioError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    if as_json:
        payload = page.model_dump(mode="json")
        payload["total_rows"] = total
        console.print_json(json.dumps(payload, default=str))
        return

    table = RichTable(header_style="bold")
    columns = list(page.rows[0].keys()) if page.rows else list(select or [])
    for column in columns:
        table.add_column(column)
    for row in page.rows:
        table.add_row(*("" if row.get(c) is None else str(row.get(c)) for c in columns))
    console.print(table)
    console.print(
        f"rows {page.offset + 1}-{page.offset + len(page.rows)} of {total:,} "
        f"(limit {page.limit})"
    )


@app.command()
def count(
    url: UrlArgument,
    source_format: FormatOption = SourceFormat.CSV,
    filter_json: FilterOption = None,
) -> None:
    """Load a source and print the number of rows matching a filter."""
    filter_tree = _parse_filter_option(filter_json)

    try:
        with open_studio() as studio:
            _load_or_exit(studio, url, source_format)
            total = studio.count(filter_tree)
    except StudioError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    console.print(total)


if __name__ == "__main__":
    app()
