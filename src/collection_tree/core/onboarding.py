"""Content of the document seeded into a team's first collection."""


def welcome_message(collection_id: str) -> str:
    return f"""\
# Welcome

This is the first document in your knowledge base.

Documents live in collections and can be nested under each other to build
an outline. Drag a document onto another one in the sidebar to nest it, or
create a child straight from a document's menu.

- Start a new document in [this collection](/collections/{collection_id}).
- Rename, move or delete this one whenever you like.
"""
