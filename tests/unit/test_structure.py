"""Tests for DocumentTree insert, update and remove."""

import pytest

from collection_tree.core.tree.navigation import document_ids, parent_of
from collection_tree.core.tree.structure import DocumentTree
from tests.unit.fakes import node


def _ids(nodes: list) -> list[str]:
    return [n.id for n in nodes]


# --- insert ---


def test_insert_without_parent_appends_root(sample_tree: DocumentTree) -> None:
    before = len(sample_tree.roots)
    sample_tree.insert(node("D"))
    assert len(sample_tree.roots) == before + 1
    assert sample_tree.roots[-1].id == "D"


def test_insert_at_root_position(sample_tree: DocumentTree) -> None:
    sample_tree.insert(node("D"), position=1)
    assert _ids(sample_tree.roots) == ["A", "D", "B"]


def test_insert_under_parent_at_position(sample_tree: DocumentTree) -> None:
    """[A, B[C]] + D under B at 0 -> [A, B[D, C]]."""
    sample_tree.insert(node("D"), "B", 0)
    assert sample_tree.to_json() == [
        {"id": "A", "title": "A", "url": "/doc/a", "children": []},
        {
            "id": "B",
            "title": "B",
            "url": "/doc/b",
            "children": [
                {"id": "D", "title": "D", "url": "/doc/d", "children": []},
                {"id": "C", "title": "C", "url": "/doc/c", "children": []},
            ],
        },
    ]


def test_insert_under_nested_parent_appends(sample_tree: DocumentTree) -> None:
    sample_tree.insert(node("D"), "C")
    c = sample_tree.find("C")
    assert c is not None
    assert _ids(c.children) == ["D"]


def test_insert_leaves_other_children_lists_alone(sample_tree: DocumentTree) -> None:
    a_children = sample_tree.roots[0].children
    b_children = sample_tree.roots[1].children
    sample_tree.insert(node("D"), "B")
    assert sample_tree.roots[0].children is a_children
    assert sample_tree.roots[0].children == []
    assert sample_tree.roots[1].children is b_children
    assert len(b_children) == 2


def test_insert_with_unknown_parent_is_noop(sample_tree: DocumentTree) -> None:
    before = sample_tree.to_json()
    result = sample_tree.insert(node("D"), "missing")
    assert result is sample_tree
    assert sample_tree.to_json() == before
    assert "D" not in sample_tree


def test_insert_duplicate_id_raises(sample_tree: DocumentTree) -> None:
    with pytest.raises(ValueError, match="already"):
        sample_tree.insert(node("C"))


def test_insert_keeps_subtree_of_inserted_node() -> None:
    tree = DocumentTree()
    tree.insert(node("X", node("Y", node("Z"))))
    assert document_ids(tree) == ["X", "Y", "Z"]


# --- update ---


def test_update_changes_only_target_title(sample_tree: DocumentTree) -> None:
    updated = sample_tree.update("A", {"title": "New"})
    assert updated is not None
    assert updated.title == "New"
    assert updated.url == "/doc/a"
    b = sample_tree.find("B")
    c = sample_tree.find("C")
    assert b is not None and b.title == "B"
    assert c is not None and c.title == "C"


def test_update_nested_node_keeps_children() -> None:
    tree = DocumentTree([node("A", node("B", node("C")))])
    updated = tree.update("B", {"title": "Bee", "url": "/doc/bee"})
    assert updated is not None
    assert (updated.title, updated.url) == ("Bee", "/doc/bee")
    assert _ids(updated.children) == ["C"]


def test_update_empty_patch_leaves_tree_identical(sample_tree: DocumentTree) -> None:
    before = sample_tree.to_json()
    sample_tree.update("C", {})
    assert sample_tree.to_json() == before


def test_update_missing_node_returns_none(sample_tree: DocumentTree) -> None:
    before = sample_tree.to_json()
    assert sample_tree.update("missing", {"title": "x"}) is None
    assert sample_tree.to_json() == before


def test_update_rejects_unknown_fields(sample_tree: DocumentTree) -> None:
    with pytest.raises(ValueError, match="children"):
        sample_tree.update("A", {"children": "[]"})


# --- remove ---


def test_remove_nested_node(sample_tree: DocumentTree) -> None:
    """remove C from [A, B[C]] -> [A, B[]] and returns C."""
    removed = sample_tree.remove("C")
    assert removed is not None
    assert removed.to_dict() == {"id": "C", "title": "C", "url": "/doc/c", "children": []}
    assert _ids(sample_tree.roots) == ["A", "B"]
    assert sample_tree.roots[1].children == []


def test_remove_returns_subtree_intact(sample_tree: DocumentTree) -> None:
    removed = sample_tree.remove("B")
    assert removed is not None
    assert _ids(removed.children) == ["C"]
    assert document_ids(sample_tree) == ["A"]


def test_remove_missing_returns_none(sample_tree: DocumentTree) -> None:
    before = sample_tree.to_json()
    assert sample_tree.remove("missing") is None
    assert sample_tree.to_json() == before


def test_remove_keeps_identity_of_other_nodes() -> None:
    tree = DocumentTree([node("A", node("A1")), node("B", node("C", node("D")))])
    a, a1, b = tree.find("A"), tree.find("A1"), tree.find("B")
    tree.remove("D")
    assert tree.find("A") is a
    assert tree.find("A1") is a1
    assert tree.find("B") is b
    assert "D" not in tree


def test_remove_at_any_depth_detaches_exactly_one() -> None:
    tree = DocumentTree(
        [node("A", node("A1", node("A2", node("A3")))), node("B"), node("C", node("C1"))]
    )
    for target in ["A3", "C1", "B", "A"]:
        count = len(tree)
        removed = tree.remove(target)
        assert removed is not None
        assert removed.id == target
        assert target not in tree
        assert len(tree) == count - len(DocumentTree([removed]))


def test_remove_then_insert_restores_tree() -> None:
    tree = DocumentTree([node("A"), node("B", node("C"), node("X", node("Y")), node("E"))])
    before = tree.to_json()
    location = parent_of(tree, "X")
    assert location == ("B", 1)

    removed = tree.remove("X")
    assert removed is not None
    tree.insert(removed, *location)
    assert tree.to_json() == before


# --- serialization ---


def test_from_json_ignores_extra_keys_and_fills_children() -> None:
    tree = DocumentTree.from_json(
        [{"id": "A", "title": "A", "url": "/doc/a", "text": "body", "publishedAt": None}]
    )
    assert tree.to_json() == [{"id": "A", "title": "A", "url": "/doc/a", "children": []}]


def test_from_json_none_is_empty() -> None:
    tree = DocumentTree.from_json(None)
    assert tree.roots == []
    assert len(tree) == 0


def test_trees_compare_by_value(sample_tree: DocumentTree) -> None:
    assert sample_tree == DocumentTree.from_json(sample_tree.to_json())
    assert sample_tree != DocumentTree()
