"""Read and write collections, documents and document structures in SQLite."""

import json
import secrets
import sqlite3
import string
import time
import uuid

from loguru import logger

from collection_tree.config import WELCOME_TITLE
from collection_tree.core.onboarding import welcome_message
from collection_tree.core.tree.structure import DocumentTree
from collection_tree.models.node import COLLECTION_TYPES, Collection, Document

_URL_ID_ALPHABET = string.ascii_letters + string.digits

_COLLECTION_COLUMNS = (
    "id, url_id, name, description, color, private, type, team_id, creator_id, "
    "document_structure, created_at, updated_at, deleted_at"
)
_DOCUMENT_COLUMNS = (
    "id, collection_id, title, url_id, parent_document_id, text, created_by_id, "
    "created_at, updated_at, deleted_at"
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _random_url_id(length: int = 10) -> str:
    return "".join(secrets.choice(_URL_ID_ALPHABET) for _ in range(length))


def _row_to_collection(row: tuple) -> Collection:
    structure = row[9]
    return Collection(
        id=row[0],
        url_id=row[1],
        name=row[2],
        description=row[3],
        color=row[4],
        private=bool(row[5]),
        type=row[6],
        team_id=row[7],
        creator_id=row[8],
        document_structure=None if structure is None else DocumentTree.from_json(json.loads(structure)),
        created_at=row[10],
        updated_at=row[11],
        deleted_at=row[12],
    )


def _row_to_document(row: tuple) -> Document:
    return Document(
        id=row[0], collection_id=row[1], title=row[2], url_id=row[3],
        parent_document_id=row[4], text=row[5], created_by_id=row[6],
        created_at=row[7], updated_at=row[8], deleted_at=row[9],
    )


# --- Collections ---


def create_collection(
    conn: sqlite3.Connection,
    *,
    name: str,
    team_id: str,
    creator_id: str | None = None,
    type: str = "atlas",
    description: str = "",
    color: str = "#4E5C6E",
    private: bool = False,
) -> Collection:
    """Create a collection and seed its document structure.

    The team's first atlas collection receives a welcome document as its
    only root; later atlas collections start empty. Journal collections
    have no structure. Private collections grant their creator read_write.
    """
    if type not in COLLECTION_TYPES:
        msg = f"Unknown collection type {type!r}, expected one of {COLLECTION_TYPES!r}"
        raise ValueError(msg)

    now_ms = _now_ms()
    collection = Collection(
        id=str(uuid.uuid4()),
        url_id=_random_url_id(),
        name=name,
        team_id=team_id,
        type=type,
        description=description,
        color=color,
        private=private,
        creator_id=creator_id,
        created_at=now_ms,
        updated_at=now_ms,
    )

    try:
        conn.execute(
            f"INSERT INTO collections ({_COLLECTION_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, NULL, ?, ?, NULL)",
            (
                collection.id, collection.url_id, name, description, color, int(private),
                type, team_id, creator_id, now_ms, now_ms,
            ),
        )

        if private and creator_id:
            conn.execute(
                "INSERT OR IGNORE INTO collection_users "
                "(collection_id, user_id, permission, created_by_id) VALUES (?, ?, ?, ?)",
                (collection.id, creator_id, "read_write", creator_id),
            )

        if type == "atlas":
            team_collections = conn.execute(
                "SELECT COUNT(*) FROM collections WHERE team_id = ? AND deleted_at IS NULL",
                (team_id,),
            ).fetchone()[0]
            tree = DocumentTree()
            if team_collections < 2:
                welcome = create_document(
                    conn,
                    collection_id=collection.id,
                    title=WELCOME_TITLE,
                    text=welcome_message(collection.id),
                    created_by_id=creator_id,
                    commit=False,
                )
                tree.insert(welcome.to_node())
            collection.document_structure = tree
            save_structure(conn, collection.id, tree, commit=False)

        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info("Created {} collection {} ({})", type, name, collection.id)
    return collection


def get_collection(
    conn: sqlite3.Connection, collection_id: str, *, include_deleted: bool = False
) -> Collection | None:
    query = f"SELECT {_COLLECTION_COLUMNS} FROM collections WHERE id = ?"
    if not include_deleted:
        query += " AND deleted_at IS NULL"
    row = conn.execute(query, (collection_id,)).fetchone()
    return _row_to_collection(row) if row else None


def list_collections(conn: sqlite3.Connection, *, team_id: str | None = None) -> list[Collection]:
    query = f"SELECT {_COLLECTION_COLUMNS} FROM collections WHERE deleted_at IS NULL"
    params: list[str] = []
    if team_id:
        query += " AND team_id = ?"
        params.append(team_id)
    query += " ORDER BY created_at, name"
    return [_row_to_collection(r) for r in conn.execute(query, params).fetchall()]


def resolve_collection(conn: sqlite3.Connection, collection: str) -> str | None:
    """Resolve a collection name/url_id/id to its id."""
    row = conn.execute(
        "SELECT id FROM collections "
        "WHERE (id = ? OR url_id = ? OR name = ?) AND deleted_at IS NULL "
        "ORDER BY created_at LIMIT 1",
        (collection, collection, collection),
    ).fetchone()
    return row[0] if row else None


def delete_collection(conn: sqlite3.Connection, collection_id: str) -> bool:
    """Soft-delete a collection and all of its documents.

    Returns False when the collection does not exist or is already deleted.
    """
    now_ms = _now_ms()
    try:
        cursor = conn.execute(
            "UPDATE collections SET deleted_at = ?, document_structure = NULL "
            "WHERE id = ? AND deleted_at IS NULL",
            (now_ms, collection_id),
        )
        if cursor.rowcount == 0:
            conn.rollback()
            return False
        conn.execute(
            "UPDATE documents SET deleted_at = ? WHERE collection_id = ? AND deleted_at IS NULL",
            (now_ms, collection_id),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    logger.info("Deleted collection {}", collection_id)
    return True


# --- Document structure ---


def load_structure(conn: sqlite3.Connection, collection_id: str) -> DocumentTree | None:
    """Read the stored document structure, or None if the collection has none."""
    row = conn.execute(
        "SELECT document_structure FROM collections WHERE id = ? AND deleted_at IS NULL",
        (collection_id,),
    ).fetchone()
    if row is None or row[0] is None:
        return None
    return DocumentTree.from_json(json.loads(row[0]))


def save_structure(
    conn: sqlite3.Connection,
    collection_id: str,
    tree: DocumentTree,
    *,
    commit: bool = True,
) -> None:
    """Write the whole document structure back as one JSON value.

    Raises:
        LookupError: If the collection does not exist.
    """
    cursor = conn.execute(
        "UPDATE collections SET document_structure = ?, updated_at = ? "
        "WHERE id = ? AND deleted_at IS NULL",
        (json.dumps(tree.to_json(), separators=(",", ":")), _now_ms(), collection_id),
    )
    if cursor.rowcount == 0:
        msg = f"Collection {collection_id!r} not found"
        raise LookupError(msg)
    if commit:
        conn.commit()


# --- Documents ---


def create_document(
    conn: sqlite3.Connection,
    *,
    collection_id: str,
    title: str,
    text: str = "",
    parent_document_id: str | None = None,
    created_by_id: str | None = None,
    commit: bool = True,
) -> Document:
    """Insert a document row. Placing it in the structure is the caller's job."""
    now_ms = _now_ms()
    document = Document(
        id=str(uuid.uuid4()),
        collection_id=collection_id,
        title=title,
        url_id=_random_url_id(),
        parent_document_id=parent_document_id,
        text=text,
        created_by_id=created_by_id,
        created_at=now_ms,
        updated_at=now_ms,
    )
    conn.execute(
        f"INSERT INTO documents ({_DOCUMENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, NULL)",
        (
            document.id, collection_id, title, document.url_id, parent_document_id, text,
            created_by_id, now_ms, now_ms,
        ),
    )
    if commit:
        conn.commit()
    return document


def get_document(conn: sqlite3.Connection, document_id: str) -> Document | None:
    row = conn.execute(
        f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ? AND deleted_at IS NULL",
        (document_id,),
    ).fetchone()
    return _row_to_document(row) if row else None


def save_document(
    conn: sqlite3.Connection, document: Document, *, commit: bool = True
) -> Document:
    """Persist title, text and parent of an existing document."""
    now_ms = _now_ms()
    cursor = conn.execute(
        "UPDATE documents SET title = ?, text = ?, parent_document_id = ?, updated_at = ? "
        "WHERE id = ? AND deleted_at IS NULL",
        (document.title, document.text, document.parent_document_id, now_ms, document.id),
    )
    if cursor.rowcount == 0:
        msg = f"Document {document.id!r} not found"
        raise LookupError(msg)
    if commit:
        conn.commit()
    return _row_to_document(
        conn.execute(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?", (document.id,)
        ).fetchone()
    )


def delete_with_children(
    conn: sqlite3.Connection, document: Document, *, commit: bool = True
) -> int:
    """Soft-delete a document and all of its descendants. Returns the count."""
    rows = conn.execute(
        """WITH RECURSIVE subtree(id) AS (
               SELECT ?
               UNION
               SELECT d.id FROM documents d JOIN subtree s ON d.parent_document_id = s.id
               WHERE d.deleted_at IS NULL
           )
           SELECT id FROM subtree""",
        (document.id,),
    ).fetchall()
    ids = [r[0] for r in rows]

    placeholders = ",".join("?" * len(ids))
    cursor = conn.execute(
        f"UPDATE documents SET deleted_at = ? WHERE id IN ({placeholders}) "
        "AND deleted_at IS NULL",
        [_now_ms(), *ids],
    )
    if commit:
        conn.commit()
    logger.debug("Deleted document {} and {} descendants", document.id, cursor.rowcount - 1)
    return cursor.rowcount


def count_documents(conn: sqlite3.Connection, collection_id: str) -> int:
    return conn.execute(
        "SELECT COUNT(*) FROM documents WHERE collection_id = ? AND deleted_at IS NULL",
        (collection_id,),
    ).fetchone()[0]
