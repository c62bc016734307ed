"""MCP server exposing collection structure browsing and editing tools."""

import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from collection_tree.config import DATABASE_FILENAME, LOCK_BACKEND, resolve_data_directory
from collection_tree.core.collection import CollectionService
from collection_tree.core.database import repository
from collection_tree.core.database.schema import migrate_schema
from collection_tree.core.locking import LockTimeout, build_lock_provider
from collection_tree.core.tree.markdown import render_structure_as_markdown
from collection_tree.core.tree.navigation import document_ids, parent_of, path_to_document
from collection_tree.models.node import Collection, Document
from collection_tree.protocols import LockProvider


def _resolve(conn: sqlite3.Connection, collection: str) -> Collection | None:
    collection_id = repository.resolve_collection(conn, collection)
    return repository.get_collection(conn, collection_id) if collection_id else None


def _document_and_collection(
    conn: sqlite3.Connection, document_id: str
) -> tuple[Document, Collection] | dict[str, Any]:
    document = repository.get_document(conn, document_id)
    if document is None:
        return {"error": f"Document '{document_id}' not found."}
    collection = repository.get_collection(conn, document.collection_id)
    if collection is None:
        return {"error": f"Collection of document '{document_id}' not found."}
    return document, collection


def _lock_error(e: LockTimeout) -> dict[str, Any]:
    logger.warning("{}", e)
    return {"error": str(e), "retryable": True}


def _breadcrumbs(collection: Collection, document_id: str) -> str:
    if collection.document_structure is None:
        return ""
    path = path_to_document(collection.document_structure, document_id)
    return " > ".join(node.title[:40] for node in path[:-1])


# --- Core functions (testable without MCP context) ---


def collection_list(conn: sqlite3.Connection, *, team: str | None = None) -> dict[str, Any]:
    """List collections with their document counts."""
    collections = repository.list_collections(conn, team_id=team)
    return {
        "collections": [
            {
                "id": c.id,
                "name": c.name,
                "type": c.type,
                "private": c.private,
                "url": c.url,
                "document_count": (
                    len(c.document_structure) if c.document_structure is not None else None
                ),
            }
            for c in collections
        ],
        "count": len(collections),
    }


def collection_read_structure(
    conn: sqlite3.Connection,
    *,
    collection: str,
    root_id: str | None = None,
    max_depth: int | None = None,
    output_format: str = "markdown",
    include_urls: bool = False,
) -> dict[str, Any]:
    """Read a collection's document structure as markdown or nested JSON.

    Args:
        collection: Collection name, url id or id.
        root_id: Only return the subtree under this document.
        max_depth: Max levels to include below the starting level (markdown only).
        output_format: "markdown" or "json".
        include_urls: Render titles as links to the documents (markdown only).
    """
    found = _resolve(conn, collection)
    if found is None:
        return {"error": f"Collection '{collection}' not found."}
    tree = found.document_structure
    if tree is None:
        return {"error": f"Collection '{found.name}' has no document structure."}
    if root_id is not None and root_id not in tree:
        return {"error": f"Document '{root_id}' not found in collection."}

    result: dict[str, Any] = {"collection": found.id, "url": found.url}
    if output_format == "json":
        nodes = [tree.find(root_id)] if root_id else tree.roots
        result["documents"] = [node.to_dict() for node in nodes if node is not None]
    else:
        result["content"] = render_structure_as_markdown(
            tree, root_id=root_id, max_depth=max_depth, include_urls=include_urls
        )
    result["document_ids"] = document_ids(tree)
    if root_id:
        result["breadcrumbs"] = _breadcrumbs(found, root_id)
    return result


def collection_add_document(
    conn: sqlite3.Connection,
    locks: LockProvider,
    *,
    collection: str,
    title: str,
    text: str = "",
    parent_id: str | None = None,
    index: int | None = None,
) -> dict[str, Any]:
    """Create a document and place it in the collection's structure.

    Args:
        collection: Collection name, url id or id.
        title: Title of the new document.
        text: Markdown body.
        parent_id: Parent document id (None = top level).
        index: Position among siblings (None = last).
    """
    found = _resolve(conn, collection)
    if found is None:
        return {"error": f"Collection '{collection}' not found."}

    service = CollectionService(conn, locks)
    try:
        document = service.publish_document(
            found, title=title, text=text, parent_document_id=parent_id, index=index
        )
    except LookupError as e:
        return {"error": str(e)}
    except LockTimeout as e:
        return _lock_error(e)
    return {"success": True, "document_id": document.id, "url": document.url}


def collection_rename_document(
    conn: sqlite3.Connection,
    locks: LockProvider,
    *,
    document_id: str,
    title: str,
) -> dict[str, Any]:
    """Rename a document and update its entry in the structure."""
    found = _document_and_collection(conn, document_id)
    if isinstance(found, dict):
        return found
    document, collection = found

    service = CollectionService(conn, locks)
    try:
        renamed = service.rename_document(collection, document, title)
    except LockTimeout as e:
        return _lock_error(e)
    return {"success": True, "document_id": renamed.id, "url": renamed.url}


def collection_move_document(
    conn: sqlite3.Connection,
    locks: LockProvider,
    *,
    document_id: str,
    parent_id: str | None = None,
    index: int | None = None,
) -> dict[str, Any]:
    """Move a document (with its children) under another parent or to the top level."""
    found = _document_and_collection(conn, document_id)
    if isinstance(found, dict):
        return found
    document, collection = found

    service = CollectionService(conn, locks)
    moved = replace(document, parent_document_id=parent_id)
    try:
        result = service.move_document(collection, moved, index)
    except (LookupError, ValueError) as e:
        return {"error": str(e)}
    except LockTimeout as e:
        return _lock_error(e)
    if result is None:
        return {"error": f"Collection '{collection.name}' has no document structure."}
    tree = result.document_structure
    position = parent_of(tree, document_id) if tree is not None else None
    return {
        "success": True,
        "document_id": document_id,
        "parent_id": parent_id,
        "index": position[1] if position else None,
    }


def collection_remove_document(
    conn: sqlite3.Connection,
    locks: LockProvider,
    *,
    document_id: str,
) -> dict[str, Any]:
    """Delete a document and its descendants, removing them from the structure."""
    found = _document_and_collection(conn, document_id)
    if isinstance(found, dict):
        return found
    document, collection = found

    service = CollectionService(conn, locks)
    try:
        removed = service.delete_document(collection, document)
    except LockTimeout as e:
        return _lock_error(e)
    output: dict[str, Any] = {"success": True, "document_id": document_id}
    if removed is not None:
        output["removed"] = removed.to_dict()
    return output


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    conn: sqlite3.Connection
    locks: LockProvider


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open database on startup, close on shutdown."""
    data_dir = resolve_data_directory()
    data_dir.mkdir(parents=True, exist_ok=True)
    db_path = data_dir / DATABASE_FILENAME

    conn = sqlite3.connect(str(db_path))
    try:
        migrate_schema(conn)
        locks = build_lock_provider(LOCK_BACKEND, db_path=db_path)
        logger.info("Serving collections from {} ({} locks)", db_path, LOCK_BACKEND)
        yield ServerContext(conn=conn, locks=locks)
    finally:
        conn.close()


mcp_server = FastMCP(
    "collection-tree",
    instructions="""\
Collections hold documents arranged in a nested outline (the document structure).

1. Call collection_list_tool to see collections.
2. Call collection_read_structure_tool to see the outline and document ids.
3. Use the add/rename/move/remove tools with those ids.

Write tools may report "retryable": true when another writer holds the
collection; retry the call after a moment.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


@mcp_server.tool()
async def collection_list_tool(ctx: Context, team: str | None = None) -> dict[str, Any]:
    """List collections.

    Args:
        team: Only list collections of this team id.
    """
    return collection_list(_ctx(ctx).conn, team=team)


@mcp_server.tool()
async def collection_read_structure_tool(
    ctx: Context,
    collection: str,
    root_id: str | None = None,
    max_depth: int | None = None,
    output_format: str = "markdown",
    include_urls: bool = False,
) -> dict[str, Any]:
    """Read a collection's document outline.

    Args:
        collection: Collection name, url id or id.
        root_id: Only return the subtree under this document.
        max_depth: Max depth levels to render.
        output_format: "markdown" or "json".
        include_urls: Render titles as links to the documents.
    """
    return collection_read_structure(
        _ctx(ctx).conn,
        collection=collection,
        root_id=root_id,
        max_depth=max_depth,
        output_format=output_format,
        include_urls=include_urls,
    )


@mcp_server.tool()
async def collection_add_document_tool(
    ctx: Context,
    collection: str,
    title: str,
    text: str = "",
    parent_id: str | None = None,
    index: int | None = None,
) -> dict[str, Any]:
    """Create a document in a collection.

    Args:
        collection: Collection name, url id or id.
        title: Document title.
        text: Markdown body.
        parent_id: Parent document id (omit for top level).
        index: Position among siblings (omit to append).
    """
    c = _ctx(ctx)
    return collection_add_document(
        c.conn, c.locks, collection=collection, title=title, text=text,
        parent_id=parent_id, index=index,
    )


@mcp_server.tool()
async def collection_rename_document_tool(
    ctx: Context, document_id: str, title: str
) -> dict[str, Any]:
    """Rename a document.

    Args:
        document_id: Document id.
        title: New title.
    """
    c = _ctx(ctx)
    return collection_rename_document(c.conn, c.locks, document_id=document_id, title=title)


@mcp_server.tool()
async def collection_move_document_tool(
    ctx: Context,
    document_id: str,
    parent_id: str | None = None,
    index: int | None = None,
) -> dict[str, Any]:
    """Move a document and its children.

    Args:
        document_id: Document id.
        parent_id: New parent document id (omit for top level).
        index: Position among the new siblings (omit to append).
    """
    c = _ctx(ctx)
    return collection_move_document(
        c.conn, c.locks, document_id=document_id, parent_id=parent_id, index=index
    )


@mcp_server.tool()
async def collection_remove_document_tool(ctx: Context, document_id: str) -> dict[str, Any]:
    """Delete a document and all documents nested under it.

    Args:
        document_id: Document id.
    """
    c = _ctx(ctx)
    return collection_remove_document(c.conn, c.locks, document_id=document_id)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from collection_tree.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")
