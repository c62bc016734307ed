"""Shared test fixtures."""

import sqlite3
from pathlib import Path

import pytest

from collection_tree.core.collection import CollectionService
from collection_tree.core.database import repository
from collection_tree.core.database.schema import create_schema
from collection_tree.core.locking.memory import InMemoryLockProvider
from collection_tree.core.tree.structure import DocumentTree
from tests.unit.fakes import RecordingLockProvider, Seed, node


@pytest.fixture
def sample_tree() -> DocumentTree:
    """[A, B[C]]."""
    return DocumentTree([node("A"), node("B", node("C"))])


@pytest.fixture
def conn() -> sqlite3.Connection:
    """Return an in-memory DB with the schema created."""
    connection = sqlite3.connect(":memory:")
    create_schema(connection)
    return connection


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Return a file DB with the schema created, for multi-connection tests."""
    path = tmp_path / "collections.db"
    connection = sqlite3.connect(str(path))
    create_schema(connection)
    connection.close()
    return path


@pytest.fixture
def locks() -> RecordingLockProvider:
    return RecordingLockProvider(InMemoryLockProvider())


@pytest.fixture
def service(conn: sqlite3.Connection, locks: RecordingLockProvider) -> CollectionService:
    return CollectionService(conn, locks, lock_timeout=1)


@pytest.fixture
def seed(conn: sqlite3.Connection, service: CollectionService) -> Seed:
    """A team's first collection: [welcome, document]."""
    collection = repository.create_collection(
        conn, name="Engineering", team_id="team1", creator_id="user1"
    )
    assert collection.document_structure is not None
    welcome_id = collection.document_structure.roots[0].id
    welcome = repository.get_document(conn, welcome_id)
    assert welcome is not None

    document = service.publish_document(collection, title="Second document", text="hello")
    return Seed(collection=collection, welcome=welcome, document=document)
