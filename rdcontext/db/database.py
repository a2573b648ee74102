"""DuckDB connection and schema management.

All rdcontext state lives in one embedded, file-backed DuckDB database.

Database Schema:
    libraries table:
        - name: ``owner/repo`` primary key
        - description, owner, repo, ref, sha
        - folders: scoped folders (VARCHAR[])
        - files / snippets: counts at index time
        - timestamp: when the library row was (re)written (UTC)
    snippets table:
        - id: sequence-backed primary key
        - library: owning library name
        - path, title, description, language, code
        - provider: embedding provider that produced the vector
        - embedding_dims: width of the provider's original vector
        - created_at (UTC)
    snippet_vectors table (linear-scan fallback table):
        - snippet_id: primary key, one row per snippet
        - embedding: canonical float32 vector as a BLOB

DuckDB has no ``ON DELETE CASCADE``; ``LibraryRegistry.delete`` performs
the library → snippets → vectors cascade explicitly.

Thread Safety:
    A DuckDB connection is NOT thread-safe.  rdcontext runs single-process
    with cooperative (asyncio) concurrency, and every statement is issued
    from the event-loop thread.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence

import duckdb

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS libraries (
        name        VARCHAR PRIMARY KEY,
        description VARCHAR,
        owner       VARCHAR NOT NULL,
        repo        VARCHAR NOT NULL,
        ref         VARCHAR NOT NULL,
        sha         VARCHAR NOT NULL,
        folders     VARCHAR[] NOT NULL,
        files       INTEGER DEFAULT 0,
        snippets    INTEGER DEFAULT 0,
        timestamp   TIMESTAMP NOT NULL
    )
    """,
    "CREATE SEQUENCE IF NOT EXISTS snippets_seq START 1",
    """
    CREATE TABLE IF NOT EXISTS snippets (
        id             INTEGER DEFAULT nextval('snippets_seq') PRIMARY KEY,
        library        VARCHAR NOT NULL,
        path           VARCHAR NOT NULL,
        title          VARCHAR NOT NULL,
        description    VARCHAR NOT NULL,
        language       VARCHAR,
        code           VARCHAR NOT NULL,
        provider       VARCHAR NOT NULL,
        embedding_dims INTEGER NOT NULL,
        created_at     TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS snippet_vectors (
        snippet_id INTEGER PRIMARY KEY,
        embedding  BLOB NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS snippets_library_idx ON snippets(library)",
    "CREATE INDEX IF NOT EXISTS snippets_provider_idx ON snippets(provider)",
    "CREATE INDEX IF NOT EXISTS snippets_created_at_idx ON snippets(created_at)",
)


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in TIMESTAMP columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Database:
    """Owns the DuckDB connection and the schema.

    Args:
        path: Database file path, or ``":memory:"``.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._in_transaction = False

    @property
    def path(self) -> str:
        return self._path

    def connect(self) -> duckdb.DuckDBPyConnection:
        """Return the DuckDB connection, creating it if needed."""
        if self._connection is None:
            target = self._path
            if target != ":memory:":
                file_path = Path(target).expanduser()
                file_path.parent.mkdir(parents=True, exist_ok=True)
                target = str(file_path)
            self._connection = duckdb.connect(target)
            logger.debug("[Database] Connected to %s", self._path)
        return self._connection

    def initialize(self) -> None:
        """Create tables, sequence and indexes.  Idempotent."""
        conn = self.connect()
        for statement in _SCHEMA:
            conn.execute(statement)
        logger.debug("[Database] Schema ready at %s", self._path)

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> duckdb.DuckDBPyConnection:
        conn = self.connect()
        if params is None:
            return conn.execute(sql)
        return conn.execute(sql, params)

    def executemany(self, sql: str, rows: Sequence[Sequence[Any]]) -> None:
        self.connect().executemany(sql, rows)

    @contextmanager
    def transaction(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """Run the enclosed statements as one all-or-nothing unit.

        DuckDB transactions are optimistic: nothing is locked until commit,
        so long-running readers are never blocked by a pending writer.
        """
        conn = self.connect()
        if self._in_transaction:
            raise RuntimeError("Nested transactions are not supported")
        conn.begin()
        self._in_transaction = True
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        else:
            conn.commit()
        finally:
            self._in_transaction = False

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
