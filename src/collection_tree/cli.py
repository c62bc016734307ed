"""CLI for collection-tree (collections, document structure, MCP server)."""

import json
import sqlite3
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger

from collection_tree.config import DATABASE_FILENAME, LOCK_BACKEND, resolve_data_directory
from collection_tree.core.database import repository
from collection_tree.core.database.schema import migrate_schema
from collection_tree.core.locking import build_lock_provider
from collection_tree.logging_config import configure_logging
from collection_tree.mcp import server
from collection_tree.protocols import LockProvider

app = typer.Typer(help="Collections of documents arranged in a nested structure.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Database directory"),
]
JsonOption = Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose=verbose)


def _db_path(data_dir: Path | None) -> Path:
    return (data_dir or resolve_data_directory()) / DATABASE_FILENAME


def _open_db(data_dir: Path | None) -> sqlite3.Connection:
    """Open the database, raising if it doesn't exist."""
    db_path = _db_path(data_dir)
    if not db_path.exists():
        logger.error("Database not found: {}. Run 'init' first.", db_path)
        raise typer.Exit(1)
    return sqlite3.connect(str(db_path))


def _locks(data_dir: Path | None) -> LockProvider:
    return build_lock_provider(LOCK_BACKEND, db_path=_db_path(data_dir))


def _emit(result: dict[str, Any], *, output_json: bool, message: str = "") -> None:
    """Print a tool result; exit 1 when it carries an error."""
    if output_json:
        typer.echo(json.dumps(result, indent=2))
    elif "error" in result:
        typer.echo(f"Error: {result['error']}")
    elif message:
        typer.echo(message)
    if "error" in result:
        raise typer.Exit(1)


@app.command()
def init(data_dir: DataDirOption = None) -> None:
    """Create the database."""
    db_path = _db_path(data_dir)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    try:
        migrate_schema(conn)
    finally:
        conn.close()
    typer.echo(f"Database ready at {db_path}")


@app.command()
def create(
    name: str = typer.Argument(..., help="Collection name"),
    team: str = typer.Option("default", "--team", "-t", help="Team id"),
    creator: Annotated[
        str | None, typer.Option("--creator", "-u", help="Creating user id")
    ] = None,
    journal: bool = typer.Option(False, "--journal", help="Create a journal collection"),
    private: bool = typer.Option(False, "--private", help="Only members can see it"),
    description: str = typer.Option("", "--description", help="Collection description"),
    data_dir: DataDirOption = None,
    output_json: JsonOption = False,
) -> None:
    """Create a collection."""
    conn = _open_db(data_dir)
    try:
        collection = repository.create_collection(
            conn,
            name=name,
            team_id=team,
            creator_id=creator,
            type="journal" if journal else "atlas",
            description=description,
            private=private,
        )
        result = {"success": True, "id": collection.id, "url": collection.url}
        _emit(result, output_json=output_json, message=f"Created {name} [id={collection.id}]")
    finally:
        conn.close()


@app.command()
def collections(
    team: Annotated[str | None, typer.Option("--team", "-t", help="Team id")] = None,
    data_dir: DataDirOption = None,
    output_json: JsonOption = False,
) -> None:
    """List collections."""
    conn = _open_db(data_dir)
    try:
        result = server.collection_list(conn, team=team)
        if output_json:
            typer.echo(json.dumps(result, indent=2))
            return
        typer.echo(f"{result['count']} collections:\n")
        for c in result["collections"]:
            count = c["document_count"]
            size = f"{count} documents" if count is not None else c["type"]
            typer.echo(f"  {c['name']} - {size}  [id={c['id']}]")
    finally:
        conn.close()


@app.command()
def tree(
    collection: str = typer.Argument(..., help="Collection name, url id or id"),
    root: Annotated[
        str | None, typer.Option("--root", "-r", help="Only show the subtree of this document")
    ] = None,
    max_depth: Annotated[
        int | None, typer.Option("--max-depth", "-m", help="Max depth levels to render")
    ] = None,
    urls: bool = typer.Option(False, "--urls", help="Render titles as links"),
    data_dir: DataDirOption = None,
    output_json: JsonOption = False,
) -> None:
    """Show a collection's document structure."""
    conn = _open_db(data_dir)
    try:
        result = server.collection_read_structure(
            conn,
            collection=collection,
            root_id=root,
            max_depth=max_depth,
            output_format="json" if output_json else "markdown",
            include_urls=urls,
        )
        _emit(result, output_json=output_json, message=result.get("content", "").rstrip())
    finally:
        conn.close()


@app.command()
def add(
    collection: str = typer.Argument(..., help="Collection name, url id or id"),
    title: str = typer.Argument(..., help="Document title"),
    parent: Annotated[
        str | None, typer.Option("--parent", "-p", help="Parent document id")
    ] = None,
    index: Annotated[
        int | None, typer.Option("--index", "-i", help="Position among siblings")
    ] = None,
    text: str = typer.Option("", "--text", help="Markdown body"),
    data_dir: DataDirOption = None,
    output_json: JsonOption = False,
) -> None:
    """Create a document and place it in the structure."""
    conn = _open_db(data_dir)
    try:
        result = server.collection_add_document(
            conn, _locks(data_dir), collection=collection, title=title, text=text,
            parent_id=parent, index=index,
        )
        _emit(
            result,
            output_json=output_json,
            message=f"Added {title} [id={result.get('document_id')}]",
        )
    finally:
        conn.close()


@app.command()
def rename(
    document_id: str = typer.Argument(..., help="Document id"),
    title: str = typer.Argument(..., help="New title"),
    data_dir: DataDirOption = None,
    output_json: JsonOption = False,
) -> None:
    """Rename a document."""
    conn = _open_db(data_dir)
    try:
        result = server.collection_rename_document(
            conn, _locks(data_dir), document_id=document_id, title=title
        )
        _emit(result, output_json=output_json, message=f"Renamed {document_id} to {title}")
    finally:
        conn.close()


@app.command()
def move(
    document_id: str = typer.Argument(..., help="Document id"),
    parent: Annotated[
        str | None, typer.Option("--parent", "-p", help="New parent id (omit for top level)")
    ] = None,
    index: Annotated[
        int | None, typer.Option("--index", "-i", help="Position among siblings")
    ] = None,
    data_dir: DataDirOption = None,
    output_json: JsonOption = False,
) -> None:
    """Move a document and its children."""
    conn = _open_db(data_dir)
    try:
        result = server.collection_move_document(
            conn, _locks(data_dir), document_id=document_id, parent_id=parent, index=index
        )
        _emit(result, output_json=output_json, message=f"Moved {document_id}")
    finally:
        conn.close()


@app.command()
def remove(
    document_id: str = typer.Argument(..., help="Document id"),
    data_dir: DataDirOption = None,
    output_json: JsonOption = False,
) -> None:
    """Delete a document and everything nested under it."""
    conn = _open_db(data_dir)
    try:
        result = server.collection_remove_document(
            conn, _locks(data_dir), document_id=document_id
        )
        _emit(result, output_json=output_json, message=f"Removed {document_id}")
    finally:
        conn.close()


@app.command()
def delete(
    collection: str = typer.Argument(..., help="Collection name, url id or id"),
    data_dir: DataDirOption = None,
) -> None:
    """Delete a collection and all of its documents."""
    conn = _open_db(data_dir)
    try:
        collection_id = repository.resolve_collection(conn, collection)
        if not collection_id or not repository.delete_collection(conn, collection_id):
            typer.echo(f"Collection '{collection}' not found.")
            raise typer.Exit(1)
        typer.echo(f"Deleted {collection}")
    finally:
        conn.close()


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    server.run_mcp_server()
