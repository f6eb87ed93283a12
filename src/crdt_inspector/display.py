"""Rich console rendering of the commit tree.

Only nodes the caller asks to expand have their ``children`` accessed, so
rendering a listing never loads change payloads.
"""

import json
from typing import Collection, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from .change_types import ChangeTypeRegistry
from .hierarchy import ChangeNode, CommitNode
from .inspector import CommitInspector

console = Console()


def _limited(nodes: Sequence[CommitNode], limit: int) -> Sequence[CommitNode]:
    return nodes[:limit] if limit and limit > 0 else nodes


def display_commit_table(
    nodes: Sequence[CommitNode],
    out: Optional[Console] = None,
    limit: int = 0,
) -> None:
    """Print one row per commit: change count, date and hash."""
    out = out or console
    shown = _limited(nodes, limit)

    table = Table(title=f"Commits ({len(shown)} of {len(nodes)})")
    table.add_column("Info", style="cyan")
    table.add_column("Date")
    table.add_column("Hash", style="dim")
    for node in shown:
        table.add_row(node.label, node.date_display, node.identifier)
    out.print(table)


def _change_summary(node: ChangeNode) -> str:
    data = node.entity.change.data
    if not data:
        return ""
    return escape(json.dumps(data, sort_keys=True, default=str))


def display_commit_changes(node: CommitNode, out: Optional[Console] = None) -> None:
    """Expand a commit node and print its changes in index order."""
    out = out or console
    out.print(f"[bold]Commit[/bold] {node.identifier}")
    out.print(f"Date: {node.date_display}  Client: {node.commit.client_id or '-'}")
    if node.commit.parent_hash:
        out.print(f"Parent: {node.commit.parent_hash}")

    if not node.has_children:
        out.print("No changes in this commit", style="yellow")
        return

    table = Table(title=node.label)
    table.add_column("#", justify="right")
    table.add_column("Change", style="cyan")
    table.add_column("Entity", style="dim")
    table.add_column("Data", overflow="fold")
    for child in node.children or []:
        entity = child.entity
        table.add_row(
            str(entity.index),
            escape(child.label),
            escape(entity.entity_id),
            _change_summary(child),
        )
    out.print(table)


def build_commit_tree(
    nodes: Sequence[CommitNode],
    title: str,
    expand: Collection[str] = (),
    expand_all: bool = False,
    limit: int = 0,
) -> Tree:
    """Build a rich Tree, expanding only the requested commits.

    Args:
        nodes: Commit nodes, newest first
        title: Root label
        expand: Full hashes of commits to expand
        expand_all: Expand every commit with changes
        limit: Maximum commits shown (0 = all)
    """
    root = Tree(f"[bold]{title}[/bold]")
    for node in _limited(nodes, limit):
        marker = "+" if node.has_children else " "
        branch = root.add(
            f"{marker} {node.label}  [dim]{node.date_display}  {node.identifier}[/dim]"
        )
        if node.has_children and (expand_all or node.identifier in expand):
            for child in node.children or []:
                branch.add(f"{child.entity.index}: [cyan]{escape(child.label)}[/cyan]")
    return root


def display_database_info(inspector: CommitInspector, out: Optional[Console] = None) -> None:
    """Print the database summary."""
    out = out or console
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Database", inspector.database_name)
    table.add_row("Path", inspector.database_path or inspector.locator.location)
    table.add_row("Commits", str(inspector.commit_count))
    table.add_row("Change types", str(inspector.registry.change_type_count))
    table.add_row("Object types", str(inspector.registry.object_type_count))
    out.print(table)


def display_type_names(registry: ChangeTypeRegistry, out: Optional[Console] = None) -> None:
    """Print registered change and object type names."""
    out = out or console
    sections: List[tuple] = [
        ("Change types", registry.change_type_names),
        ("Object types", registry.object_type_names),
    ]
    for title, names in sections:
        out.print(f"[bold]{title}[/bold] ({len(names)})")
        if not names:
            out.print("  (none registered)", style="dim")
        for name in names:
            out.print(f"  {name}", markup=False)
