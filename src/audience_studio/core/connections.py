"""Thread-safe DuckDB connection management.

One ConnectionManager owns one DuckDB connection:
- reads go through short-lived cursors (concurrent-safe)
- writes (DDL, loads) are serialized through a mutex

Usage:
    from audience_studio.core.connections import ConnectionConfig, ConnectionManager

    manager = ConnectionManager(ConnectionConfig.in_memory())
    manager.initialize()

    with manager.duckdb_cursor() as cursor:
        rows = cursor.execute("SELECT * FROM filters_attributes LIMIT 10").fetchall()

    with manager.duckdb_write() as conn:
        conn.execute("CREATE TABLE t AS SELECT 1 AS x")

    manager.close()
"""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import duckdb

from audience_studio.core.config import Settings
from audience_studio.core.logging import get_logger
from audience_studio.core.sql import quote_string

logger = get_logger(__name__)

REMOTE_URL_PREFIXES = ("http://", "https://", "s3://", "gs://", "gcs://")


def is_remote_url(url: str) -> bool:
    """Whether DuckDB needs httpfs to read this URL."""
    return url.lower().startswith(REMOTE_URL_PREFIXES)


@dataclass
class ConnectionConfig:
    """Connection configuration for DuckDB.

    Attributes:
        duckdb_path: Path to DuckDB database file, or :memory:
        memory_limit: DuckDB memory limit (e.g., "2GB")
        threads: DuckDB worker threads, None for the engine default
        enable_httpfs: Load httpfs before reading remote URLs
    """

    duckdb_path: Path
    memory_limit: str = "2GB"
    threads: int | None = None
    enable_httpfs: bool = True

    @classmethod
    def in_memory(cls, **kwargs: Any) -> ConnectionConfig:
        """Create config for an in-memory database (useful for testing)."""
        return cls(duckdb_path=Path(":memory:"), **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings) -> ConnectionConfig:
        """Create config from application settings."""
        return cls(
            duckdb_path=Path(settings.duckdb_path),
            memory_limit=settings.duckdb_memory_limit,
            threads=settings.duckdb_threads,
            enable_httpfs=settings.enable_httpfs,
        )


@dataclass
class ConnectionManager:
    """Thread-safe connection management for DuckDB.

    Thread Safety:
    - Reads: use duckdb_cursor(), each call gets its own cursor
    - Writes: use duckdb_write(), serialized via _write_lock
    """

    config: ConnectionConfig
    _duckdb_conn: duckdb.DuckDBPyConnection | None = field(default=None, init=False, repr=False)
    _write_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _init_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _httpfs_loaded: bool = field(default=False, init=False, repr=False)

    def initialize(self) -> None:
        """Open and configure the DuckDB connection.

        Safe to call multiple times (idempotent).

        Raises:
            RuntimeError: If the connection cannot be opened
        """
        with self._init_lock:
            if self._duckdb_conn is not None:
                return

            try:
                if self.config.duckdb_path == Path(":memory:"):
                    conn = duckdb.connect(":memory:")
                else:
                    self.config.duckdb_path.parent.mkdir(parents=True, exist_ok=True)
                    conn = duckdb.connect(str(self.config.duckdb_path))

                conn.execute(f"SET memory_limit={quote_string(self.config.memory_limit)}")
                if self.config.threads:
                    conn.execute(f"SET threads={int(self.config.threads)}")
            except duckdb.Error as e:
                raise RuntimeError(f"Failed to initialize DuckDB: {e}") from e

            self._duckdb_conn = conn
            logger.debug("duckdb_initialized", path=str(self.config.duckdb_path))

    @property
    def initialized(self) -> bool:
        return self._duckdb_conn is not None

    def _ensure_initialized(self) -> duckdb.DuckDBPyConnection:
        if self._duckdb_conn is None:
            raise RuntimeError("ConnectionManager not initialized. Call manager.initialize() first.")
        return self._duckdb_conn

    @contextmanager
    def duckdb_cursor(self) -> Generator[duckdb.DuckDBPyConnection]:
        """Get a DuckDB cursor for read operations.

        Yields:
            DuckDB cursor for read operations

        Raises:
            RuntimeError: If manager not initialized
        """
        conn = self._ensure_initialized()
        cursor = conn.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    @contextmanager
    def duckdb_write(self) -> Generator[duckdb.DuckDBPyConnection]:
        """Get exclusive write access to DuckDB.

        Yields:
            DuckDB connection with exclusive write access

        Raises:
            RuntimeError: If manager not initialized
        """
        conn = self._ensure_initialized()
        with self._write_lock:
            yield conn

    def ensure_httpfs(self) -> bool:
        """Install and load httpfs once per connection.

        A failure is logged and reported as False; reading the remote file
        afterwards raises the engine's own error if httpfs was needed.
        """
        if not self.config.enable_httpfs:
            return False
        with self.duckdb_write() as conn:
            if self._httpfs_loaded:
                return True
            try:
                conn.execute("INSTALL httpfs")
                conn.execute("LOAD httpfs")
            except duckdb.Error as e:
                logger.warning("httpfs_load_failed", error=str(e))
                return False
            self._httpfs_loaded = True
        return True

    def close(self) -> None:
        """Close the connection. Safe to call multiple times."""
        conn, self._duckdb_conn = self._duckdb_conn, None
        self._httpfs_loaded = False
        if conn is not None:
            try:
                conn.close()
            except duckdb.Error as e:
                logger.warning("duckdb_close_failed", error=str(e))

    def __enter__(self) -> ConnectionManager:
        self.initialize()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
