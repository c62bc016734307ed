"""The nested document structure kept on an atlas collection."""

from collections.abc import Iterator, Mapping
from typing import Any

from loguru import logger

from collection_tree.models.node import TreeNode

PATCHABLE_FIELDS = frozenset({"title", "url"})


class DocumentTree:
    """Ordered forest of TreeNodes, persisted as a single JSON value.

    Every node id appears at most once. A node's parent is whichever node
    lists it in ``children``; no parent pointers are stored.
    """

    def __init__(self, roots: list[TreeNode] | None = None) -> None:
        self.roots: list[TreeNode] = roots if roots is not None else []

    @classmethod
    def from_json(cls, value: list[dict[str, Any]] | None) -> "DocumentTree":
        return cls([TreeNode.from_dict(item) for item in value or []])

    def to_json(self) -> list[dict[str, Any]]:
        return [node.to_dict() for node in self.roots]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocumentTree):
            return NotImplemented
        return self.to_json() == other.to_json()

    def __repr__(self) -> str:
        return f"DocumentTree({len(self.roots)} roots, {len(self)} nodes)"

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())

    def __contains__(self, node_id: object) -> bool:
        return self.find(node_id) is not None  # type: ignore[arg-type]

    def walk(self) -> Iterator[TreeNode]:
        """Yield every node, depth-first pre-order."""
        stack = list(reversed(self.roots))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, node_id: str) -> TreeNode | None:
        return next((node for node in self.walk() if node.id == node_id), None)

    def insert(
        self,
        node: TreeNode,
        parent_id: str | None = None,
        position: int | None = None,
    ) -> "DocumentTree":
        """Splice ``node`` into the roots or into a parent's children.

        ``position`` follows ``list.insert``; None appends. When no node
        matches ``parent_id`` the tree is left unchanged.

        Raises:
            ValueError: If a node with the same id is already in the tree.
        """
        if node.id in self:
            msg = f"Node {node.id!r} is already in the document structure"
            raise ValueError(msg)

        if parent_id is None:
            target = self.roots
        else:
            parent = self.find(parent_id)
            if parent is None:
                logger.warning(
                    "Parent {} not found, node {} was not placed", parent_id, node.id
                )
                return self
            target = parent.children

        target.insert(len(target) if position is None else position, node)
        return self

    def update(self, node_id: str, patch: Mapping[str, str]) -> TreeNode | None:
        """Overwrite ``title``/``url`` on the node with ``node_id``.

        Children are kept. Returns the node, or None when it is not in the tree.
        """
        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            msg = f"Cannot patch fields {sorted(unknown)!r}"
            raise ValueError(msg)

        node = self.find(node_id)
        if node is None:
            return None
        for key, value in patch.items():
            setattr(node, key, value)
        return node

    def remove(self, node_id: str) -> TreeNode | None:
        """Detach the node with ``node_id`` together with its subtree.

        Each level is rebuilt after its children have been processed, so
        every node in the tree is visited even when the target sits near
        the top. Returns the detached node, or None.
        """
        removed: list[TreeNode] = []

        def prune(children: list[TreeNode]) -> list[TreeNode]:
            for child in children:
                child.children = prune(child.children)
            kept: list[TreeNode] = []
            for child in children:
                if child.id == node_id and not removed:
                    removed.append(child)
                    continue
                kept.append(child)
            return kept

        self.roots = prune(self.roots)
        return removed[0] if removed else None
