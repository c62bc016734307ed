"""Tree navigation: id listing, paths and parent lookup."""

from collection_tree.core.tree.structure import DocumentTree
from collection_tree.models.node import TreeNode


def document_ids(tree: DocumentTree) -> list[str]:
    """Return every id in the structure, depth-first pre-order."""
    return [node.id for node in tree.walk()]


def path_to_document(tree: DocumentTree, node_id: str) -> list[TreeNode]:
    """Return the nodes from a root down to ``node_id`` (inclusive).

    Returns an empty list when the id is not in the structure.
    """

    def travel(nodes: list[TreeNode], previous: list[TreeNode]) -> list[TreeNode] | None:
        for node in nodes:
            path = [*previous, node]
            if node.id == node_id:
                return path
            found = travel(node.children, path)
            if found:
                return found
        return None

    return travel(tree.roots, []) or []


def parent_of(tree: DocumentTree, node_id: str) -> tuple[str | None, int] | None:
    """Locate a node as ``(parent_id, index)``; parent_id is None for roots.

    Returns None when the id is not in the structure.
    """
    for index, root in enumerate(tree.roots):
        if root.id == node_id:
            return None, index
    for node in tree.walk():
        for index, child in enumerate(node.children):
            if child.id == node_id:
                return node.id, index
    return None
