"""Shared pytest fixtures for all tests."""

import json
from pathlib import Path

import duckdb
import pytest

from audience_studio.catalog import FieldCatalog, get_catalog
from audience_studio.core.connections import ConnectionConfig, ConnectionManager
from audience_studio.query import QueryService
from audience_studio.staging import DataLoader, StudioSession

PEOPLE_ROWS = [
    ("Alice", 25),
    ("Bob", 35),
    ("O'Brien", 30),
]


@pytest.fixture
def duckdb_conn():
    """Create an in-memory DuckDB connection for testing."""
    conn = duckdb.connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def manager() -> ConnectionManager:
    """Initialized in-memory connection manager (no httpfs)."""
    manager = ConnectionManager(ConnectionConfig.in_memory(enable_httpfs=False))
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def session(manager: ConnectionManager) -> StudioSession:
    return StudioSession(manager=manager)


@pytest.fixture
def catalog() -> FieldCatalog:
    return get_catalog("v1")


@pytest.fixture
def loader(session: StudioSession, catalog: FieldCatalog) -> DataLoader:
    return DataLoader(session, catalog)


@pytest.fixture
def query_service(session: StudioSession, catalog: FieldCatalog) -> QueryService:
    return QueryService(session, catalog)


@pytest.fixture
def people_csv(tmp_path: Path) -> Path:
    """Three-row CSV with columns name,age; one row has age > 30."""
    path = tmp_path / "people.csv"
    lines = ["name,age"] + [f"{name},{age}" for name, age in PEOPLE_ROWS]
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def people_json(tmp_path: Path) -> Path:
    path = tmp_path / "people.json"
    path.write_text(json.dumps([{"name": name, "age": age} for name, age in PEOPLE_ROWS]))
    return path


@pytest.fixture
def people_parquet(tmp_path: Path, duckdb_conn) -> Path:
    path = tmp_path / "people.parquet"
    duckdb_conn.execute(
        "CREATE TABLE people AS SELECT * FROM (VALUES ('Alice', 25), ('Bob', 35), ('O''Brien', 30)) "
        "AS t(name, age)"
    )
    duckdb_conn.execute(f"COPY people TO '{path}' (FORMAT PARQUET)")
    return path


@pytest.fixture
def events_csv(tmp_path: Path) -> Path:
    """Pixel events whose columns match catalog fields."""
    path = tmp_path / "events.csv"
    path.write_text(
        "pixel_id,event_type,event_timestamp,percentage,url\n"
        "px1,page_view,2024-01-01 10:00:00,10,https://example.com/a\n"
        "px1,click,2024-01-02 11:30:00,55,https://example.com/b\n"
        "px2,page_view,2024-01-03 09:15:00,90,\n"
        "px2,form_submit,2024-01-04 16:45:00,100,https://example.com/100%_off\n"
    )
    return path


@pytest.fixture
def loaded_people(loader: DataLoader, people_csv: Path):
    """People CSV loaded and projected into the session."""
    result = loader.load_and_project({"url": str(people_csv), "format": "csv"})
    assert result.ok, result.error
    return result


@pytest.fixture
def empty_parquet(tmp_path: Path, duckdb_conn) -> Path:
    """Parquet file with a schema but no rows."""
    path = tmp_path / "empty.parquet"
    duckdb_conn.execute(f"COPY (SELECT 1 AS x WHERE false) TO '{path}' (FORMAT PARQUET)")
    return path


@pytest.fixture
def contacts_csv(tmp_path: Path) -> Path:
    """Contacts whose catalog string fields are sniffed as non-text types."""
    path = tmp_path / "contacts.csv"
    path.write_text(
        "COMPANY_ZIP,COMPANY_NAME,CALL_TIME\n"
        "10001,Acme,09:15:00\n"
        "94105,Globex,10:30:00\n"
        ",Initech,10:45:00\n"
    )
    return path


@pytest.fixture
def visitors_parquet(tmp_path: Path, duckdb_conn) -> Path:
    """Parquet file with a UUID column."""
    path = tmp_path / "visitors.parquet"
    duckdb_conn.execute(
        "COPY (SELECT * FROM (VALUES "
        "('123e4567-e89b-12d3-a456-426614174000'::UUID, 'a'), "
        "('00000000-0000-0000-0000-000000000001'::UUID, 'b')"
        ") AS t(visitor, tag)) "
        f"TO '{path}' (FORMAT PARQUET)"
    )
    return path
