"""Read sessions against the SQLite file named by the storage locator.

A session wraps one read-only ``sqlite3`` connection. Sessions are opened
per operation and closed immediately after, and they are never shared
between callers.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..errors import QueryFailure, StorageUnavailable
from .locator import StorageLocator

logger = logging.getLogger(__name__)

# Connection string keys that name the database file
DATA_SOURCE_KEYS = ("data source", "datasource", "filename", "initial catalog", "database")

# Tables and columns the inspector reads
REQUIRED_COLUMNS: Dict[str, Sequence[str]] = {
    "Commits": ("Id", "Hash", "ParentHash", "ClientId", "DateTime", "Counter", "Metadata"),
    "ChangeEntities": ("CommitId", "Index", "EntityId", "Change"),
}


def parse_data_source(location: str) -> Optional[str]:
    """Extract the database file from a location.

    A location is a ``key=value;...`` connection string when one of its
    segments has a data source key; the first such key wins. Anything else,
    including a path that happens to contain ``=``, is a plain path.

    Returns:
        The file named by the location, or None if the location is blank
        or its data source value is empty
    """
    if not location or not location.strip():
        return None

    for segment in location.split(";"):
        key, sep, value = segment.partition("=")
        if sep and key.strip().lower() in DATA_SOURCE_KEYS:
            return value.strip() or None
    return location.strip()


def database_display_name(location: str) -> str:
    """Short name for a location, used for display only.

    Returns the file name without extension, ``"(no connection)"`` for a
    blank location and ``"(db)"`` when the data source value is empty.
    """
    if not location or not location.strip():
        return "(no connection)"
    raw = parse_data_source(location)
    if not raw:
        return "(db)"
    path = Path(raw)
    if path.name:
        return path.stem or path.name
    return raw


class StoreSession:
    """A short-lived read-only connection to the store."""

    def __init__(self, connection: sqlite3.Connection, location: str):
        self._connection = connection
        self.location = location
        self.closed = False

    def __enter__(self) -> "StoreSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def execute(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        """Run a read query and return all rows.

        Raises:
            QueryFailure: If the session is closed or SQLite reports an error
        """
        if self.closed:
            raise QueryFailure("Session is closed")
        try:
            cursor = self._connection.execute(sql, params)
            return cursor.fetchall()
        except sqlite3.Error as e:
            logger.error(f"Query failed against {self.location}: {e}")
            raise QueryFailure(f"Query failed: {e}") from e

    @property
    def database_path(self) -> str:
        """Resolved physical file of the open session, for display."""
        for row in self.execute("PRAGMA database_list"):
            if row[1] == "main":
                return row[2] or ""
        return ""

    def close(self) -> None:
        if not self.closed:
            self._connection.close()
            self.closed = True
            logger.debug(f"Closed session for {self.location}")


class SessionFactory:
    """Opens sessions for whatever location the locator holds right now."""

    def __init__(self, locator: StorageLocator):
        self.locator = locator

    def open_session(self) -> StoreSession:
        """Open a read session against the current location.

        The location is read once, at call time.

        Returns:
            An open StoreSession the caller must close

        Raises:
            StorageUnavailable: If the file is missing, is not a SQLite
                database, or lacks the commit tables
        """
        location = self.locator.location
        data_source = parse_data_source(location)
        if not data_source:
            raise StorageUnavailable(
                f"No data source in connection string: {location}", location
            )

        path = Path(data_source).expanduser()
        if not path.is_file():
            raise StorageUnavailable(f"Database file not found: {path}", location)

        uri = f"{path.resolve().as_uri()}?mode=ro"
        try:
            connection = sqlite3.connect(uri, uri=True)
        except sqlite3.Error as e:
            raise StorageUnavailable(f"Cannot open database {path}: {e}", location) from e

        connection.row_factory = sqlite3.Row
        try:
            self._check_schema(connection, path)
        except StorageUnavailable as e:
            e.location = location
            connection.close()
            raise
        except sqlite3.Error as e:
            connection.close()
            raise StorageUnavailable(f"Cannot read database {path}: {e}", location) from e

        logger.debug(f"Opened session for {path}")
        return StoreSession(connection, location)

    @staticmethod
    def _check_schema(connection: sqlite3.Connection, path: Path) -> None:
        """Verify the commit tables exist with the columns the inspector reads."""
        for table, columns in REQUIRED_COLUMNS.items():
            rows = connection.execute(f'PRAGMA table_info("{table}")').fetchall()
            if not rows:
                raise StorageUnavailable(
                    f"Incompatible schema in {path}: missing table {table}"
                )
            present = {row[1] for row in rows}
            missing = [c for c in columns if c not in present]
            if missing:
                raise StorageUnavailable(
                    f"Incompatible schema in {path}: table {table} lacks "
                    f"columns {', '.join(missing)}"
                )
