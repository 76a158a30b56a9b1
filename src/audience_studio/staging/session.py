"""Per-session staging state.

A StudioSession owns one DuckDB connection manager and the generations
loaded into it. Each load gets a fresh generation id and its own staging
table and view; publishing re-points the stable alias view and swaps the
current generation, so readers bound to a generation never observe a
half-built table.
"""

from __future__ import annotations

import itertools
import threading
from collections import deque
from dataclasses import dataclass, field

from audience_studio.core.config import Settings
from audience_studio.core.connections import ConnectionConfig, ConnectionManager
from audience_studio.core.errors import NotLoadedError
from audience_studio.core.logging import get_logger
from audience_studio.core.sql import quote_identifier
from audience_studio.staging.models import Generation

logger = get_logger(__name__)


@dataclass
class StudioSession:
    """Staging tables, projected views and their generations for one connection.

    Loads are serialized through `load_lock`; it is re-entrant so a
    composed load can hold it across its steps.
    """

    manager: ConnectionManager
    staging_table: str = "studio_current"
    projected_view: str = "filters_attributes"
    retain_generations: int = 2
    load_lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)
    _current: Generation | None = field(default=None, init=False, repr=False)
    _published: deque[Generation] = field(default_factory=deque, init=False, repr=False)
    _counter: itertools.count = field(default_factory=lambda: itertools.count(1), init=False, repr=False)
    _state_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @classmethod
    def from_settings(
        cls, settings: Settings, manager: ConnectionManager | None = None
    ) -> StudioSession:
        """Create a session (and, if not given, its connection manager) from settings."""
        if manager is None:
            manager = ConnectionManager(ConnectionConfig.from_settings(settings))
        manager.initialize()
        return cls(
            manager=manager,
            staging_table=settings.staging_table,
            projected_view=settings.projected_view,
            retain_generations=settings.retain_generations,
        )

    def next_generation(self) -> int:
        with self._state_lock:
            return next(self._counter)

    def staging_name(self, generation: int) -> str:
        return f"{self.staging_table}_g{generation}"

    def view_name(self, generation: int) -> str:
        return f"{self.projected_view}_g{generation}"

    @property
    def current(self) -> Generation | None:
        return self._current

    def require_current(self) -> Generation:
        """The current generation.

        Raises:
            NotLoadedError: If nothing has been loaded, or the last load failed
        """
        current = self._current
        if current is None:
            raise NotLoadedError("No data loaded in this session; load a source first")
        return current

    def publish(self, generation: Generation) -> None:
        """Make a fully built generation current and retire old ones."""
        with self.manager.duckdb_write() as conn:
            conn.execute(
                f"CREATE OR REPLACE VIEW {quote_identifier(self.projected_view)} AS "
                f"SELECT * FROM {quote_identifier(generation.view_name)}"
            )
            with self._state_lock:
                self._current = generation
                self._published.append(generation)
                retired = []
                while len(self._published) > self.retain_generations:
                    retired.append(self._published.popleft())

            for old in retired:
                self._drop_objects(conn, old.staging_table, old.view_name)

        logger.info(
            "generation_published",
            generation=generation.generation,
            view=generation.view_name,
            retired=[old.generation for old in retired],
        )

    def discard(self, generation: int) -> None:
        """Drop the objects of a generation that was never published."""
        with self.manager.duckdb_write() as conn:
            self._drop_objects(conn, self.staging_name(generation), self.view_name(generation))

    def invalidate(self) -> None:
        """Drop every published generation and the alias view.

        Called after a failed load so no stale view stays queryable.
        """
        with self.manager.duckdb_write() as conn:
            with self._state_lock:
                dropped = list(self._published)
                self._published.clear()
                self._current = None
            conn.execute(f"DROP VIEW IF EXISTS {quote_identifier(self.projected_view)}")
            for old in dropped:
                self._drop_objects(conn, old.staging_table, old.view_name)

        if dropped:
            logger.warning("generations_invalidated", generations=[g.generation for g in dropped])

    @staticmethod
    def _drop_objects(conn, staging_table: str, view_name: str) -> None:
        conn.execute(f"DROP VIEW IF EXISTS {quote_identifier(view_name)}")
        conn.execute(f"DROP TABLE IF EXISTS {quote_identifier(staging_table)}")

    def close(self) -> None:
        """Forget generations and close the connection."""
        with self._state_lock:
            self._current = None
            self._published.clear()
        self.manager.close()
