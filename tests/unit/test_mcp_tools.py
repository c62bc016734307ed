"""Tests for MCP core functions (testable without MCP context)."""

import sqlite3

from collection_tree.core.database import repository
from collection_tree.mcp.server import (
    collection_add_document,
    collection_list,
    collection_move_document,
    collection_read_structure,
    collection_remove_document,
    collection_rename_document,
)
from tests.unit.fakes import RecordingLockProvider, Seed, TimingOutLockProvider


def test_list_reports_document_counts(conn: sqlite3.Connection, seed: Seed) -> None:
    repository.create_collection(conn, name="Log", team_id="team1", type="journal")
    result = collection_list(conn, team="team1")
    assert result["count"] == 2
    by_name = {c["name"]: c for c in result["collections"]}
    assert by_name["Engineering"]["document_count"] == 2
    assert by_name["Engineering"]["url"] == seed.collection.url
    assert by_name["Log"]["document_count"] is None


def test_list_filters_by_team(conn: sqlite3.Connection, seed: Seed) -> None:
    assert collection_list(conn, team="other")["count"] == 0


def test_read_structure_markdown(conn: sqlite3.Connection, seed: Seed) -> None:
    result = collection_read_structure(conn, collection="Engineering")
    assert "error" not in result
    assert result["collection"] == seed.collection.id
    assert "- Second document" in result["content"]
    assert result["document_ids"] == [seed.welcome.id, seed.document.id]


def test_read_structure_markdown_with_links(conn: sqlite3.Connection, seed: Seed) -> None:
    result = collection_read_structure(conn, collection="Engineering", include_urls=True)
    assert f"- [Second document]({seed.document.url})" in result["content"]


def test_read_structure_json_subtree_with_breadcrumbs(
    conn: sqlite3.Connection, locks: RecordingLockProvider, seed: Seed
) -> None:
    added = collection_add_document(
        conn, locks, collection=seed.collection.id, title="Child", parent_id=seed.document.id
    )
    result = collection_read_structure(
        conn, collection="Engineering", root_id=added["document_id"], output_format="json"
    )
    assert [d["id"] for d in result["documents"]] == [added["document_id"]]
    assert result["breadcrumbs"] == "Second document"


def test_read_structure_unknown_collection_and_root(conn: sqlite3.Connection, seed: Seed) -> None:
    assert "error" in collection_read_structure(conn, collection="Nope")
    assert "error" in collection_read_structure(conn, collection="Engineering", root_id="x")


def test_read_structure_of_journal_is_an_error(conn: sqlite3.Connection) -> None:
    repository.create_collection(conn, name="Log", team_id="t1", type="journal")
    result = collection_read_structure(conn, collection="Log")
    assert "no document structure" in result["error"]


def test_add_document_places_it_in_structure(
    conn: sqlite3.Connection, locks: RecordingLockProvider, seed: Seed
) -> None:
    result = collection_add_document(
        conn, locks, collection=seed.collection.url_id, title="Runbook", index=0
    )
    assert result["success"] is True
    assert result["url"].startswith("/doc/runbook-")
    tree = repository.load_structure(conn, seed.collection.id)
    assert tree is not None
    assert tree.roots[0].id == result["document_id"]


def test_add_document_under_missing_parent(
    conn: sqlite3.Connection, locks: RecordingLockProvider, seed: Seed
) -> None:
    result = collection_add_document(
        conn, locks, collection="Engineering", title="Orphan", parent_id="missing"
    )
    assert "error" in result


def test_add_document_reports_retryable_lock_timeout(conn: sqlite3.Connection, seed: Seed) -> None:
    before = repository.count_documents(conn, seed.collection.id)
    result = collection_add_document(
        conn, TimingOutLockProvider(), collection="Engineering", title="Late"
    )
    assert result["retryable"] is True
    assert "Timed out" in result["error"]
    assert repository.count_documents(conn, seed.collection.id) == before


def test_rename_document(
    conn: sqlite3.Connection, locks: RecordingLockProvider, seed: Seed
) -> None:
    result = collection_rename_document(
        conn, locks, document_id=seed.document.id, title="Renamed"
    )
    assert result["success"] is True
    tree = repository.load_structure(conn, seed.collection.id)
    assert tree is not None
    node = tree.find(seed.document.id)
    assert node is not None
    assert node.title == "Renamed"
    assert node.url == result["url"]


def test_rename_unknown_document(conn: sqlite3.Connection, locks: RecordingLockProvider) -> None:
    assert "not found" in collection_rename_document(
        conn, locks, document_id="missing", title="x"
    )["error"]


def test_move_document_under_sibling(
    conn: sqlite3.Connection, locks: RecordingLockProvider, seed: Seed
) -> None:
    result = collection_move_document(
        conn, locks, document_id=seed.document.id, parent_id=seed.welcome.id
    )
    assert result == {
        "success": True,
        "document_id": seed.document.id,
        "parent_id": seed.welcome.id,
        "index": 0,
    }
    tree = repository.load_structure(conn, seed.collection.id)
    assert tree is not None
    assert [n.id for n in tree.roots] == [seed.welcome.id]


def test_move_document_into_itself_is_an_error(
    conn: sqlite3.Connection, locks: RecordingLockProvider, seed: Seed
) -> None:
    result = collection_move_document(
        conn, locks, document_id=seed.document.id, parent_id=seed.document.id
    )
    assert "own subtree" in result["error"]


def test_remove_document_returns_removed_subtree(
    conn: sqlite3.Connection, locks: RecordingLockProvider, seed: Seed
) -> None:
    child = collection_add_document(
        conn, locks, collection="Engineering", title="Child", parent_id=seed.document.id
    )
    result = collection_remove_document(conn, locks, document_id=seed.document.id)
    assert result["success"] is True
    assert [c["id"] for c in result["removed"]["children"]] == [child["document_id"]]
    assert repository.get_document(conn, child["document_id"]) is None
    assert repository.count_documents(conn, seed.collection.id) == 1
