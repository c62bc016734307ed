"""Keep a collection's document structure in step with its documents.

Every persisted change follows the same discipline: take the collection's
advisory lock, re-read the structure from the database, apply the change,
write the structure back together with any document row changes in one
transaction, then release the lock. Nothing is committed if the lock cannot
be acquired or any step fails. Calls made with
``save=False`` skip both the lock and the write; they are only used from
inside an operation that already holds the lock.
"""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing import Any

from loguru import logger

from collection_tree.config import LOCK_TIMEOUT
from collection_tree.core.database import repository
from collection_tree.core.locking.base import hold
from collection_tree.core.tree.structure import DocumentTree
from collection_tree.models.node import Collection, Document, TreeNode
from collection_tree.protocols import LockProvider


class CollectionService:
    """Document structure operations for collections stored in SQLite."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        locks: LockProvider,
        *,
        lock_timeout: float = LOCK_TIMEOUT,
    ) -> None:
        self.conn = conn
        self.locks = locks
        self.lock_timeout = lock_timeout

    @contextmanager
    def _mutating(self, collection: Collection, *, save: bool) -> Iterator[DocumentTree | None]:
        if not save:
            yield collection.document_structure
            return

        with hold(self.locks, collection.lock_key, timeout=self.lock_timeout):
            try:
                collection.document_structure = repository.load_structure(
                    self.conn, collection.id
                )
                yield collection.document_structure
                if collection.document_structure is not None:
                    repository.save_structure(
                        self.conn, collection.id, collection.document_structure, commit=False
                    )
                self.conn.commit()
            except BaseException:
                self.conn.rollback()
                raise

    def add_document_to_structure(
        self,
        collection: Collection,
        document: Document,
        index: int | None = None,
        *,
        document_json: dict[str, Any] | None = None,
        save: bool = True,
    ) -> Collection | None:
        """Place ``document`` under its parent (or at the top level) at ``index``.

        Args:
            collection: The owning collection.
            document: Document to place; its ``parent_document_id`` picks the parent.
            index: Position among siblings (None = last).
            document_json: Serialized node merged over the document's own, used to
                carry an existing subtree along when moving.
            save: Lock, reload and persist. Pass False only while already holding
                the collection's lock.

        Returns:
            The collection, or None if it has no document structure.
        """
        if collection.document_structure is None:
            return None

        with self._mutating(collection, save=save) as tree:
            if tree is None:
                return None
            node = document.to_node()
            if document_json:
                node = TreeNode.from_dict({**node.to_dict(), **document_json})
            tree.insert(node, document.parent_document_id, index)

        logger.debug("Added document {} to collection {}", document.id, collection.id)
        return collection

    def update_document(
        self, collection: Collection, document: Document, *, save: bool = True
    ) -> TreeNode | None:
        """Copy the document's current title and url into the structure.

        Returns the updated node, or None if the document is not in the structure.
        """
        if collection.document_structure is None:
            return None

        with self._mutating(collection, save=save) as tree:
            if tree is None:
                return None
            node = tree.update(document.id, {"title": document.title, "url": document.url})

        if node is None:
            logger.debug("Document {} not in collection {}", document.id, collection.id)
        return node

    def remove_document_in_structure(
        self,
        collection: Collection,
        document: Document,
        *,
        save: bool = True,
    ) -> TreeNode | None:
        """Detach the document and its subtree. Returns the removed node or None."""
        if collection.document_structure is None:
            return None

        with self._mutating(collection, save=save) as tree:
            if tree is None:
                return None
            removed = tree.remove(document.id)

        return removed

    def move_document(
        self,
        collection: Collection,
        document: Document,
        index: int | None = None,
    ) -> Collection | None:
        """Move a document, with its children, to ``document.parent_document_id``.

        The caller sets the new parent on ``document``. Removal and insertion
        happen under one lock and are persisted together.

        Raises:
            LookupError: If the document or its new parent is not in the structure.
            ValueError: If the new parent is the document itself or one of its descendants.
        """
        if collection.document_structure is None:
            return None

        with self._mutating(collection, save=True) as tree:
            if tree is None:
                return None
            current = tree.find(document.id)
            if current is None:
                msg = f"Document {document.id!r} is not in collection {collection.id!r}"
                raise LookupError(msg)
            parent_id = document.parent_document_id
            if parent_id is not None:
                if parent_id in DocumentTree([current]):
                    msg = f"Cannot move document {document.id!r} under its own subtree"
                    raise ValueError(msg)
                if parent_id not in tree:
                    msg = f"Parent document {parent_id!r} is not in collection {collection.id!r}"
                    raise LookupError(msg)

            removed = self.remove_document_in_structure(collection, document, save=False)
            self.add_document_to_structure(
                collection,
                document,
                index,
                document_json=removed.to_dict() if removed else None,
                save=False,
            )
            repository.save_document(self.conn, document, commit=False)

        logger.info(
            "Moved document {} to {} in collection {}",
            document.id, parent_id or "top level", collection.id,
        )
        return collection

    def delete_document(self, collection: Collection, document: Document) -> TreeNode | None:
        """Remove the document from the structure, then delete it and its descendants."""
        if collection.document_structure is None:
            deleted = repository.delete_with_children(self.conn, document)
            logger.info("Deleted document {} ({} documents)", document.id, deleted)
            return None

        with self._mutating(collection, save=True):
            removed = self.remove_document_in_structure(collection, document, save=False)
            deleted = repository.delete_with_children(self.conn, document, commit=False)

        logger.info("Deleted document {} ({} documents)", document.id, deleted)
        return removed

    def publish_document(
        self,
        collection: Collection,
        *,
        title: str,
        text: str = "",
        parent_document_id: str | None = None,
        index: int | None = None,
        created_by_id: str | None = None,
    ) -> Document:
        """Create a document and place it in the structure.

        The row and the structure are committed together, so a lock timeout
        leaves no document behind.

        Raises:
            LookupError: If the parent document does not exist in this collection.
            LockTimeout: If the collection's lock could not be acquired.
        """
        if parent_document_id is not None:
            parent = repository.get_document(self.conn, parent_document_id)
            if parent is None or parent.collection_id != collection.id:
                msg = f"Parent document {parent_document_id!r} not found in collection"
                raise LookupError(msg)

        fields = {
            "collection_id": collection.id,
            "title": title,
            "text": text,
            "parent_document_id": parent_document_id,
            "created_by_id": created_by_id,
        }
        if collection.document_structure is None:
            return repository.create_document(self.conn, **fields)

        with self._mutating(collection, save=True):
            document = repository.create_document(self.conn, **fields, commit=False)
            self.add_document_to_structure(collection, document, index, save=False)
        return document

    def rename_document(self, collection: Collection, document: Document, title: str) -> Document:
        """Change a document's title and sync it into the structure."""
        if collection.document_structure is None:
            return repository.save_document(self.conn, replace(document, title=title))

        with self._mutating(collection, save=True):
            renamed = repository.save_document(
                self.conn, replace(document, title=title), commit=False
            )
            self.update_document(collection, renamed, save=False)
        return renamed
