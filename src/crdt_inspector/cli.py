"""Command line interface for CRDT Inspector."""

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional, Tuple

import click
import pydantic
from rich.console import Console

from . import __version__
from .change_types import ChangeTypeRegistry
from .config import ConfigManager
from .display import (
    build_commit_tree,
    display_commit_changes,
    display_commit_table,
    display_database_info,
    display_type_names,
)
from .errors import InspectorError, QueryFailure, StorageUnavailable
from .inspector import CommitInspector

logger = logging.getLogger(__name__)

console = Console()

EXIT_USAGE = 1
EXIT_STORAGE = 2


def _fail(error: Exception) -> NoReturn:
    """Report an inspector error and exit with a status matching its kind."""
    if isinstance(error, (StorageUnavailable, QueryFailure)):
        code = EXIT_STORAGE
    else:
        code = EXIT_USAGE
    logger.debug("Command failed", exc_info=error)
    console.print(f"❌ {error}", style="red", markup=False)
    sys.exit(code)


def _open_inspector(ctx: click.Context) -> CommitInspector:
    """Build the inspector from config and --db, then load the commit list."""
    config_manager: ConfigManager = ctx.obj["config_manager"]
    try:
        config = config_manager.get_config()
        inspector = CommitInspector.from_config(config, db_path=ctx.obj["db"])
        inspector.load_commits()
    except InspectorError as e:
        _fail(e)
    except ValueError as e:
        # Unreadable config file
        console.print(f"❌ {e}", style="red", markup=False)
        sys.exit(EXIT_USAGE)
    return inspector


def _display_limit(ctx: click.Context, limit: Optional[int]) -> int:
    if limit is not None:
        return limit
    return ctx.obj["config_manager"].get_config().display.max_commits


@click.group()
@click.option(
    "--db",
    "db",
    type=str,
    help="Path or connection string of the CRDT SQLite database (overrides config)",
)
@click.option("--config", "-c", type=click.Path(exists=False), help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(version=__version__, prog_name="crdt-inspector")
@click.pass_context
def cli(ctx, db: Optional[str], config: Optional[str], verbose: bool):
    """Inspect the commit and change history of a CRDT store.

    \b
    Commits are listed with their change counts only. A commit's changes
    are read from the database when that commit is expanded.

    \b
    EXAMPLES:
      crdt-inspector --db project.sqlite info
      crdt-inspector --db project.sqlite commits --limit 20
      crdt-inspector --db project.sqlite show 3fa4c1
      crdt-inspector --db project.sqlite tree --expand 3fa4c1
      crdt-inspector config --set-db ~/data/project.sqlite
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["db"] = db

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )

    if config:
        ctx.obj["config_manager"] = ConfigManager(Path(config))
    else:
        ctx.obj["config_manager"] = ConfigManager.create_with_backtrack()


@cli.command()
@click.pass_context
def info(ctx):
    """Show the database name, location and commit count."""
    inspector = _open_inspector(ctx)
    display_database_info(inspector, console)


@cli.command()
@click.option("--limit", "-n", type=click.IntRange(min=0), help="Maximum commits to list")
@click.pass_context
def commits(ctx, limit: Optional[int]):
    """List commits, newest first, with their change counts."""
    inspector = _open_inspector(ctx)
    display_commit_table(inspector.commit_nodes, console, _display_limit(ctx, limit))


@cli.command()
@click.argument("commit_hash")
@click.pass_context
def show(ctx, commit_hash: str):
    """Show the changes of one commit (full hash or unique prefix)."""
    inspector = _open_inspector(ctx)
    try:
        node = inspector.find_commit(commit_hash)
        display_commit_changes(node, console)
    except InspectorError as e:
        _fail(e)


@cli.command()
@click.option(
    "--expand",
    "-e",
    multiple=True,
    help="Commit hash or prefix to expand (repeatable)",
)
@click.option("--expand-all", is_flag=True, help="Expand every commit")
@click.option("--limit", "-n", type=click.IntRange(min=0), help="Maximum commits to show")
@click.pass_context
def tree(ctx, expand: Tuple[str, ...], expand_all: bool, limit: Optional[int]):
    """Show the commit tree, expanding only the requested commits."""
    inspector = _open_inspector(ctx)
    try:
        expanded = {inspector.find_commit(prefix).identifier for prefix in expand}
        rendered = build_commit_tree(
            inspector.commit_nodes,
            title=f"{inspector.database_name} ({inspector.commit_count} commits)",
            expand=expanded,
            expand_all=expand_all,
            limit=_display_limit(ctx, limit),
        )
    except InspectorError as e:
        _fail(e)
    console.print(rendered)


@cli.command()
@click.pass_context
def types(ctx):
    """List registered change and object types."""
    config_manager: ConfigManager = ctx.obj["config_manager"]
    try:
        config = config_manager.get_config()
    except ValueError as e:
        console.print(f"❌ {e}", style="red", markup=False)
        sys.exit(EXIT_USAGE)
    display_type_names(ChangeTypeRegistry.from_config(config), console)


@cli.command(name="config")
@click.option("--set-db", "set_db", type=str, help="Store the database location")
@click.option("--show", "show_config", is_flag=True, help="Print the configuration")
@click.pass_context
def config_command(ctx, set_db: Optional[str], show_config: bool):
    """View or update the configuration file."""
    config_manager: ConfigManager = ctx.obj["config_manager"]
    try:
        if set_db is not None:
            config_manager.update_config(db_path=set_db)
            console.print(f"✅ Database set to {set_db}", style="green", markup=False)
        if show_config or set_db is None:
            config = config_manager.get_config()
            console.print(f"Config file: {config_manager.config_path}", markup=False)
            console.print_json(json.dumps(config.model_dump()))
    except pydantic.ValidationError as e:
        console.print(f"❌ Invalid configuration: {e}", style="red", markup=False)
        sys.exit(EXIT_USAGE)
    except ValueError as e:
        console.print(f"❌ {e}", style="red", markup=False)
        sys.exit(EXIT_USAGE)


def main() -> None:
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
