"""Domain models for collections and their document structure."""

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collection_tree.core.tree.structure import DocumentTree

COLLECTION_TYPES = ("atlas", "journal")

_SLUG_STRIP = re.compile(r"[^\w\s-]", flags=re.UNICODE)
_SLUG_SEPARATOR = re.compile(r"[\s_-]+")


def slugify(text: str) -> str:
    """Lowercase, hyphen-separated slug used in document urls."""
    slug = _SLUG_STRIP.sub("", text).strip().lower()
    return _SLUG_SEPARATOR.sub("-", slug).strip("-")


@dataclass
class TreeNode:
    """A document's entry in a collection's document structure."""

    id: str
    title: str
    url: str
    children: list["TreeNode"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "children": [child.to_dict() for child in self.children],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TreeNode":
        """Build a node from its serialized form. Unknown keys are ignored."""
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            url=data.get("url", ""),
            children=[cls.from_dict(child) for child in data.get("children") or []],
        )


@dataclass(frozen=True)
class Document:
    """A document belonging to a collection."""

    id: str
    collection_id: str
    title: str
    url_id: str
    parent_document_id: str | None = None
    text: str = ""
    created_by_id: str | None = None
    created_at: int = 0
    updated_at: int = 0
    deleted_at: int | None = None

    @property
    def url(self) -> str:
        slug = slugify(self.title) or "untitled"
        return f"/doc/{slug}-{self.url_id}"

    def to_node(self) -> TreeNode:
        """Project the document onto a leaf node of the document structure."""
        return TreeNode(id=self.id, title=self.title, url=self.url, children=[])


@dataclass
class Collection:
    """A collection of documents. Atlas collections keep a document structure."""

    id: str
    url_id: str
    name: str
    team_id: str
    type: str = "atlas"
    description: str = ""
    color: str = "#4E5C6E"
    private: bool = False
    creator_id: str | None = None
    document_structure: "DocumentTree | None" = None
    created_at: int = 0
    updated_at: int = 0
    deleted_at: int | None = None

    @property
    def url(self) -> str:
        return f"/collections/{self.id}"

    @property
    def lock_key(self) -> str:
        return f"collection-{self.id}"
