"""Tests for domain models."""

import pytest

from collection_tree.models.node import Collection, Document, TreeNode, slugify


def test_document_is_frozen() -> None:
    doc = Document(id="abc", collection_id="c1", title="Test", url_id="x1")
    with pytest.raises(AttributeError):
        doc.title = "changed"  # type: ignore[misc]


def test_document_url_uses_slug_and_url_id() -> None:
    doc = Document(id="abc", collection_id="c1", title="Hello, World Notes!", url_id="RSZwQDsfpc")
    assert doc.url == "/doc/hello-world-notes-RSZwQDsfpc"


def test_document_without_title_gets_untitled_slug() -> None:
    doc = Document(id="abc", collection_id="c1", title="  ", url_id="x1")
    assert doc.url == "/doc/untitled-x1"


def test_document_to_node_is_leaf() -> None:
    doc = Document(id="abc", collection_id="c1", title="Some beef", url_id="x1")
    assert doc.to_node() == TreeNode(id="abc", title="Some beef", url="/doc/some-beef-x1")
    assert doc.to_node().children == []


def test_collection_url_and_lock_key() -> None:
    collection = Collection(id="1234", url_id="abc", name="Eng", team_id="t1")
    assert collection.url == "/collections/1234"
    assert collection.lock_key == "collection-1234"


def test_slugify_collapses_separators() -> None:
    assert slugify("  Some -- beef_stew  ") == "some-beef-stew"
