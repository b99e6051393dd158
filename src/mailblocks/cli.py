# src/mailblocks/cli.py
"""
mailblocks Command Line Interface (CLI).

Edit email documents stored as JSON files from the terminal, using `typer`
and `rich`. Every editing command follows the same cycle:

1. load the document file into a :class:`DocumentStore`,
2. run exactly one tree operation against it,
3. write the resulting document back to the same file.

Usage
-----
    $ mailblocks new welcome.json
    $ mailblocks add welcome.json Heading
    $ mailblocks add welcome.json ColumnsContainer
    $ mailblocks add welcome.json Text --parent block-1a2b3c4d5e6f --column 1
    $ mailblocks show welcome.json
    $ mailblocks move welcome.json block-1a2b3c4d5e6f up
    $ mailblocks delete welcome.json block-1a2b3c4d5e6f --cascade
    $ mailblocks check welcome.json
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from mailblocks import __version__
from mailblocks.core.contracts.block import ROOT_BLOCK_ID, Block, BlockType
from mailblocks.core.registry import default_document, get_spec, palette
from mailblocks.core.settings import load_settings
from mailblocks.core.store.memory import DocumentStore
from mailblocks.core.store.storage import read_document, write_document
from mailblocks.core.tree.adapters import adapter_for
from mailblocks.core.tree.integrity import check_integrity, collect_garbage, orphan_ids
from mailblocks.core.tree.operations import (
    DeletePolicy,
    TreeEdit,
    add_block,
    delete_block,
    duplicate_block,
    move_block,
    resize_columns,
)

# Settings such as MAILBLOCKS_DELETE_POLICY may live in .env
load_dotenv()

app = typer.Typer(
    help="mailblocks: edit block-based email documents.",
    rich_markup_mode="markdown",
)
console = Console()

DocumentArg = Annotated[
    Path,
    typer.Argument(
        file_okay=True,
        dir_okay=False,
        help="Path to the JSON document file.",
    ),
]
BlockIdArg = Annotated[str, typer.Argument(help="ID of the block to operate on.")]


# --------------------------------------------------------------------------- #
# Helpers: I/O & Rendering
# --------------------------------------------------------------------------- #


def _fail(label: str, exc: Exception) -> typer.Exit:
    console.print(f"[bold red]❌ {label} Error:[/bold red] {escape(str(exc))}", soft_wrap=True)
    return typer.Exit(code=1)


def _load_store(path: Path) -> DocumentStore:
    if not path.exists():
        raise FileNotFoundError(f"{path} does not exist (create it with `mailblocks new`)")
    return DocumentStore(read_document(path))


def _run_edit(path: Path, label: str, operation: Callable[[DocumentStore], TreeEdit]) -> TreeEdit:
    """Load ``path``, apply one operation, and save if anything changed."""
    try:
        store = _load_store(path)
        edit = operation(store)
        store.apply(edit)
        if not edit.is_noop:
            write_document(path, store.get_document())
    except typer.Exit:
        raise
    except (OSError, RuntimeError, ValueError, KeyError) as e:
        raise _fail(label, e) from e
    return edit


def _parse_block_type(value: str) -> BlockType:
    """Accept the wire value (``ColumnsContainer``) or the palette label, any case."""
    wanted = value.strip().lower()
    for spec in palette():
        if wanted in (spec.type.value.lower(), spec.label.lower()):
            return spec.type
    choices = ", ".join(spec.type.value for spec in palette())
    raise typer.BadParameter(f"unknown block type {value!r} (choose from: {choices})")


def _describe(block_id: str, block: Block) -> str:
    label = get_spec(block.type).label
    props = block.data.get("props")
    text = props.get("text") if isinstance(props, dict) else None
    summary = ""
    if isinstance(text, str) and text:
        short = text if len(text) <= 32 else text[:29] + "..."
        summary = f' [dim]"{escape(short)}"[/dim]'
    return f"[bold]{label}[/bold] [cyan]{escape(block_id)}[/cyan]{summary}"


def _add_node(node: Tree, document: dict[str, Block], block_id: str, visiting: set[str]) -> None:
    block = document.get(block_id)
    if block is None:
        node.add(f"[red]missing {escape(block_id)}[/red]")
        return
    if block_id in visiting:
        node.add(f"[red]cycle back to {escape(block_id)}[/red]")
        return
    _build_tree(node.add(_describe(block_id, block)), document, block_id, visiting)


def _build_tree(
    node: Tree, document: dict[str, Block], block_id: str, visiting: set[str]
) -> None:
    adapter = adapter_for(document[block_id])
    if adapter is None:
        return
    visiting = visiting | {block_id}
    slots = adapter.all_children(document[block_id])
    if document[block_id].type is BlockType.COLUMNS_CONTAINER:
        for i, children in enumerate(slots):
            column = node.add(f"[magenta]column {i}[/magenta]")
            for child in children:
                _add_node(column, document, child, visiting)
        return
    for child in slots[0] if slots else []:
        _add_node(node, document, child, visiting)


# --------------------------------------------------------------------------- #
# Commands: documents
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def new(
    path: DocumentArg,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing file."),
    ] = False,
) -> None:
    """Create a document containing only the root email layout."""
    if path.exists() and not force:
        console.print(
            f"[bold red]❌ Error:[/bold red] {path} already exists (use --force)", soft_wrap=True
        )
        raise typer.Exit(code=1)
    try:
        write_document(path, default_document())
    except RuntimeError as e:
        raise _fail("Storage", e) from e
    console.print(f"[bold green]✅ Created[/bold green] {path}")


@app.command()  # type: ignore[misc]
def show(path: DocumentArg) -> None:
    """Print the document as a tree, plus any unreachable blocks."""
    try:
        store = _load_store(path)
    except (OSError, RuntimeError) as e:
        raise _fail("Load", e) from e

    document = store.get_document()
    root = document.get(store.root_id)
    if root is None:
        console.print(f"[bold red]❌ Error:[/bold red] document has no '{store.root_id}' block")
        raise typer.Exit(code=1)

    tree = Tree(_describe(store.root_id, root))
    _build_tree(tree, document, store.root_id, set())
    console.print(tree)

    orphans = sorted(orphan_ids(document, store.root_id))
    if orphans:
        console.print(f"\n[yellow]{len(orphans)} unreachable block(s):[/yellow]")
        for block_id in orphans:
            console.print(f" • {_describe(block_id, document[block_id])}")


@app.command(name="palette")  # type: ignore[misc]
def palette_cmd() -> None:
    """List the block kinds that can be added."""
    table = Table(title="Block palette")
    table.add_column("Type", style="cyan")
    table.add_column("Label")
    table.add_column("Children", style="magenta")
    for spec in palette():
        table.add_row(spec.type.value, spec.label, spec.child_shape.value)
    console.print(table)


# --------------------------------------------------------------------------- #
# Commands: editing
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def add(
    path: DocumentArg,
    block_type: Annotated[str, typer.Argument(help="Block kind, e.g. Text or ColumnsContainer.")],
    parent: Annotated[
        str,
        typer.Option("--parent", "-p", help="Container to insert into."),
    ] = ROOT_BLOCK_ID,
    column: Annotated[
        int,
        typer.Option("--column", "-c", min=0, help="Column index for columns containers."),
    ] = 0,
    position: Annotated[
        int | None,
        typer.Option("--position", help="Insert at this index instead of appending."),
    ] = None,
) -> None:
    """Add a block with its default content."""
    kind = _parse_block_type(block_type)
    edit = _run_edit(
        path,
        "Add",
        lambda store: add_block(
            store.get_document(),
            kind,
            parent,
            slot=column,
            position=position,
            id_factory=store.id_factory,
        ),
    )
    if edit.is_noop:
        console.print(
            f"[yellow]Nothing added:[/yellow] '{escape(parent)}' cannot take children there"
        )
        raise typer.Exit(code=1)
    console.print(f"[bold green]✅ Added[/bold green] {kind.value} [cyan]{edit.selection}[/cyan]")


@app.command()  # type: ignore[misc]
def duplicate(path: DocumentArg, block_id: BlockIdArg) -> None:
    """Deep-copy a block (and its subtree) right after itself."""
    edit = _run_edit(
        path,
        "Duplicate",
        lambda store: duplicate_block(
            store.get_document(), block_id, id_factory=store.id_factory, root_id=store.root_id
        ),
    )
    if edit.is_noop:
        console.print(f"[yellow]Nothing duplicated:[/yellow] '{escape(block_id)}' has no parent")
        raise typer.Exit(code=1)
    console.print(f"[bold green]✅ Duplicated[/bold green] as [cyan]{edit.selection}[/cyan]")


@app.command()  # type: ignore[misc]
def move(
    path: DocumentArg,
    block_id: BlockIdArg,
    direction: Annotated[str, typer.Argument(help="'up' or 'down'.")],
) -> None:
    """Swap a block with its previous or next sibling."""
    if direction not in ("up", "down"):
        raise typer.BadParameter("direction must be 'up' or 'down'")
    edit = _run_edit(
        path,
        "Move",
        lambda store: move_block(
            store.get_document(),
            block_id,
            "up" if direction == "up" else "down",
            root_id=store.root_id,
        ),
    )
    if edit.is_noop:
        console.print(f"[dim]{escape(block_id)} is already at the edge; nothing moved[/dim]")
        return
    console.print(f"[bold green]✅ Moved[/bold green] {escape(block_id)} {direction}")


@app.command()  # type: ignore[misc]
def delete(
    path: DocumentArg,
    block_id: BlockIdArg,
    cascade: Annotated[
        bool | None,
        typer.Option(
            "--cascade/--orphan",
            help="Also remove descendants, or leave them unreferenced. "
            "Defaults to MAILBLOCKS_DELETE_POLICY.",
        ),
    ] = None,
) -> None:
    """Delete a block and prune every reference to it."""
    if cascade is None:
        policy = DeletePolicy(load_settings().delete_policy)
    else:
        policy = DeletePolicy.CASCADE if cascade else DeletePolicy.ORPHAN
    edit = _run_edit(
        path,
        "Delete",
        lambda store: delete_block(
            store.get_document(), block_id, policy=policy, root_id=store.root_id
        ),
    )
    if edit.is_noop:
        console.print(
            f"[yellow]Nothing deleted:[/yellow] '{escape(block_id)}' not found (or is the root)"
        )
        raise typer.Exit(code=1)
    console.print(
        f"[bold green]✅ Deleted[/bold green] {len(edit.removed)} block(s) ({policy.value})"
    )


@app.command()  # type: ignore[misc]
def columns(
    path: DocumentArg,
    block_id: BlockIdArg,
    count: Annotated[int, typer.Argument(help="New column count (2 or 3).")],
) -> None:
    """Change the column count of a columns container."""
    edit = _run_edit(
        path,
        "Columns",
        lambda store: resize_columns(store.get_document(), block_id, count),
    )
    if edit.is_noop:
        console.print(
            f"[dim]{escape(block_id)} already has {count} columns"
            " (or is not a columns block)[/dim]"
        )
        return
    console.print(f"[bold green]✅ Resized[/bold green] {escape(block_id)} to {count} columns")


# --------------------------------------------------------------------------- #
# Commands: maintenance
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def check(
    path: DocumentArg,
    allow_orphans: Annotated[
        bool,
        typer.Option("--allow-orphans", help="Do not report unreachable blocks."),
    ] = False,
) -> None:
    """Verify the document invariants; exit 1 when any is violated."""
    try:
        store = _load_store(path)
    except (OSError, RuntimeError) as e:
        raise _fail("Load", e) from e

    issues = check_integrity(store.get_document(), store.root_id, allow_orphans=allow_orphans)
    if not issues:
        console.print(f"[bold green]✅ OK[/bold green] ({len(store)} block(s))")
        return
    console.print(
        Panel.fit(
            "\n".join(escape(str(issue)) for issue in issues),
            title=f"{len(issues)} issue(s)",
            border_style="red",
        )
    )
    raise typer.Exit(code=1)


@app.command()  # type: ignore[misc]
def gc(path: DocumentArg) -> None:
    """Remove every block that is unreachable from the root."""
    edit = _run_edit(
        path, "GC", lambda store: collect_garbage(store.get_document(), store.root_id)
    )
    console.print(f"[bold green]✅ Removed[/bold green] {len(edit.removed)} unreachable block(s)")


@app.command()  # type: ignore[misc]
def version() -> None:
    """Print the package version."""
    console.print(f"mailblocks {__version__}")


if __name__ == "__main__":
    app()
