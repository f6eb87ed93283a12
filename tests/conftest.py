"""
Shared pytest fixtures for CRDT Inspector tests.

Provides a builder that writes CRDT commit stores to SQLite files and a
session factory that counts how often storage is opened.
"""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import pytest

from crdt_inspector.storage.locator import StorageLocator
from crdt_inspector.storage.session import SessionFactory, StoreSession

CRDT_SCHEMA = """
    CREATE TABLE Commits (
        Id TEXT PRIMARY KEY,
        Hash TEXT NOT NULL,
        ParentHash TEXT,
        ClientId TEXT,
        DateTime TEXT NOT NULL,
        Counter INTEGER NOT NULL DEFAULT 0,
        Metadata TEXT
    );
    CREATE TABLE ChangeEntities (
        CommitId TEXT NOT NULL REFERENCES Commits(Id),
        "Index" INTEGER NOT NULL,
        EntityId TEXT,
        Change TEXT,
        PRIMARY KEY (CommitId, "Index")
    );
"""

Change = Tuple[str, Dict[str, Any]]


def epoch(seconds: int) -> str:
    """ISO-8601 text for a UTC time given in seconds since the epoch."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


class CrdtStoreBuilder:
    """Writes commits and changes into a SQLite file with the CRDT schema."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        conn = sqlite3.connect(self.db_path)
        try:
            conn.executescript(CRDT_SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def add_commit(
        self,
        commit_hash: str,
        date_time: str,
        changes: Iterable[Change] = (),
        counter: int = 0,
        commit_id: Optional[str] = None,
        parent_hash: str = "",
        client_id: str = "client-1",
        metadata: Optional[Dict[str, Any]] = None,
        entity_id: str = "entity-1",
    ) -> str:
        """Insert a commit and its changes, returning the commit id."""
        commit_id = commit_id or str(uuid.uuid4())
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute(
                "INSERT INTO Commits (Id, Hash, ParentHash, ClientId, DateTime, Counter, Metadata) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    commit_id,
                    commit_hash,
                    parent_hash,
                    client_id,
                    date_time,
                    counter,
                    json.dumps(metadata or {}),
                ),
            )
            for index, (change_type, data) in enumerate(changes):
                body = {"$type": change_type, **data}
                self.add_raw_change(commit_id, index, json.dumps(body), entity_id, conn)
            conn.commit()
        finally:
            conn.close()
        return commit_id

    def add_raw_change(
        self,
        commit_id: str,
        index: int,
        raw_change: str,
        entity_id: str = "entity-1",
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """Insert a change row with an arbitrary payload text."""
        own_connection = conn is None
        conn = conn or sqlite3.connect(self.db_path)
        try:
            conn.execute(
                'INSERT INTO ChangeEntities (CommitId, "Index", EntityId, Change) '
                "VALUES (?, ?, ?, ?)",
                (commit_id, index, entity_id, raw_change),
            )
            if own_connection:
                conn.commit()
        finally:
            if own_connection:
                conn.close()


class CountingSessionFactory(SessionFactory):
    """SessionFactory that records every session it opens."""

    def __init__(self, locator: StorageLocator):
        super().__init__(locator)
        self.open_count = 0
        self.opened_locations = []

    def open_session(self) -> StoreSession:
        self.open_count += 1
        self.opened_locations.append(self.locator.location)
        return super().open_session()


@pytest.fixture
def store_builder(tmp_path: Path) -> CrdtStoreBuilder:
    """Empty CRDT store in a temporary directory."""
    return CrdtStoreBuilder(tmp_path / "crdt.sqlite")


@pytest.fixture
def sample_store(store_builder: CrdtStoreBuilder) -> CrdtStoreBuilder:
    """Store with an older commit h1 (two changes) and a newer commit h2 (none)."""
    store_builder.add_commit(
        "h1",
        epoch(100),
        changes=[
            ("CreateEntryChange", {"lexemeForm": "apple"}),
            ("DeleteChange<Entry>", {}),
        ],
        commit_id="commit-h1",
    )
    store_builder.add_commit("h2", epoch(200), commit_id="commit-h2", parent_hash="h1")
    return store_builder


@pytest.fixture
def sample_locator(sample_store: CrdtStoreBuilder) -> StorageLocator:
    return StorageLocator(str(sample_store.db_path))


@pytest.fixture
def counting_factory(sample_locator: StorageLocator) -> CountingSessionFactory:
    return CountingSessionFactory(sample_locator)


@pytest.fixture
def make_store(tmp_path: Path):
    """Factory for additional stores, e.g. to test switching databases."""

    def _make(name: str) -> CrdtStoreBuilder:
        return CrdtStoreBuilder(tmp_path / name)

    return _make


@pytest.fixture(name="epoch")
def epoch_fixture():
    """The ``epoch`` helper, for tests that write their own commits."""
    return epoch
