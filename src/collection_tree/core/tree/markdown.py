"""Render a document structure as a markdown outline."""

import io

from collection_tree.core.tree.structure import DocumentTree
from collection_tree.models.node import TreeNode


def render_structure_as_markdown(
    tree: DocumentTree,
    *,
    root_id: str | None = None,
    max_depth: int | None = None,
    include_urls: bool = False,
) -> str:
    """Render the structure (or the subtree under ``root_id``) as indented bullets.

    Args:
        tree: The document structure.
        root_id: Render only this node and its descendants.
        max_depth: Max levels below the starting level to include (None = unlimited).
        include_urls: Render titles as markdown links.

    Returns:
        Markdown string, empty if ``root_id`` is not in the structure.
    """
    if root_id is None:
        start = tree.roots
    else:
        node = tree.find(root_id)
        if node is None:
            return ""
        start = [node]

    out = io.StringIO()

    def write(nodes: list[TreeNode], depth: int) -> None:
        indent = "    " * depth
        for node in nodes:
            title = node.title or "Untitled"
            label = f"[{title}]({node.url})" if include_urls else title
            out.write(f"{indent}- {label}\n")

            if not node.children:
                continue
            if max_depth is not None and depth >= max_depth:
                # Truncation indicator when children are cut off by max_depth
                count = len(node.children)
                noun = "child" if count == 1 else "children"
                out.write(f"{indent}    - ... ({count} more {noun}, id={node.id})\n")
                continue
            write(node.children, depth + 1)

    write(start, 0)
    return out.getvalue()
