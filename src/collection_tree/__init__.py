"""Nested document structures for knowledge-base collections."""

from collection_tree.core.collection import CollectionService
from collection_tree.core.locking import LockTimeout, build_lock_provider
from collection_tree.core.tree.structure import DocumentTree
from collection_tree.models.node import Collection, Document, TreeNode
from collection_tree.protocols import LockProvider

__all__ = [
    "Collection",
    "CollectionService",
    "Document",
    "DocumentTree",
    "LockProvider",
    "LockTimeout",
    "TreeNode",
    "build_lock_provider",
]
