"""CLI for Code Merkle."""

import logging
import shutil
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import CMK_DIR, __version__
from .config import CMKConfig, get_cmk_dir, load_config, save_config
from .errors import CodeMerkleError
from .merkle import TreeDiff
from .snapshot import run_snapshot
from .state import load_state

console = Console()
error_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Route the package's log records to stderr through rich."""
    logger = logging.getLogger("code_merkle")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not logger.handlers:
        handler = RichHandler(console=error_console, show_path=False, show_time=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)


def get_project_root() -> Path:
    """Get the project root directory (current working directory)."""
    return Path.cwd()


def is_initialized(project_root: Path) -> bool:
    """Check if cmk is initialized in the project."""
    return get_cmk_dir(project_root).exists()


def require_initialized(project_root: Path) -> None:
    """Exit with an error if cmk is not initialized."""
    if not is_initialized(project_root):
        error_console.print(
            "[red]Error:[/red] Not initialized. Run [bold]cmk init[/bold] first."
        )
        sys.exit(1)


def fail(error: CodeMerkleError) -> None:
    """Report an error and exit."""
    error_console.print(f"[red]Error:[/red] {error}")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="cmk")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Code Merkle - Content-addressed fingerprints for directory trees."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@main.command()
@click.option(
    "--ext",
    "extensions",
    multiple=True,
    help="File extension to include (repeatable, default: all files)",
)
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(extensions: tuple[str, ...], force: bool) -> None:
    """Initialize cmk in the current project."""
    project_root = get_project_root()
    cmk_dir = get_cmk_dir(project_root)

    if cmk_dir.exists() and not force:
        error_console.print(
            f"[yellow]Warning:[/yellow] {CMK_DIR}/ already exists. Use --force to reinitialize."
        )
        sys.exit(1)

    cmk_dir.mkdir(parents=True, exist_ok=True)
    config = CMKConfig(extensions=list(extensions))
    save_config(config, project_root)
    _update_gitignore(project_root)

    console.print(
        Panel(
            f"[green]Initialized Code Merkle[/green]\n\n"
            f"Extensions: [bold]{', '.join(config.extensions) or 'all'}[/bold]\n"
            f"Config directory: [dim]{cmk_dir}[/dim]\n\n"
            f"Next steps:\n"
            f"  1. Run [bold]cmk snapshot[/bold] to record the current tree\n"
            f"  2. Run [bold]cmk diff[/bold] later to see what changed",
            title="cmk init",
        )
    )


@main.command()
@click.option("--force", is_flag=True, help="Ignore the saved snapshot and rehash everything")
@click.option("--no-save", is_flag=True, help="Build the tree without saving it")
@click.pass_context
def snapshot(ctx: click.Context, force: bool, no_save: bool) -> None:
    """Build the Merkle tree and save it as the current snapshot."""
    project_root = get_project_root()
    require_initialized(project_root)

    try:
        result = run_snapshot(
            project_root,
            force=force,
            save=not no_save,
            verbose=ctx.obj["verbose"],
            console=console,
        )
    except CodeMerkleError as e:
        fail(e)
        return

    stats = result.stats
    table = Table(title="Snapshot Complete")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")

    table.add_row("Files scanned", str(stats.files_scanned))
    table.add_row("Files hashed", str(stats.files_hashed))
    table.add_row("Digests from cache", str(stats.files_mtime_cached))
    table.add_row("Directories", str(stats.directories))
    table.add_row("Added files", str(len(result.diff.added)))
    table.add_row("Removed files", str(len(result.diff.removed)))
    table.add_row("Modified files", str(len(result.diff.modified)))

    console.print(table)
    console.print(f"Root: [bold]{result.tree.root_hash}[/bold]")


@main.command()
@click.option("--exit-code", is_flag=True, help="Exit with status 2 when there are changes")
@click.pass_context
def diff(ctx: click.Context, exit_code: bool) -> None:
    """Show files changed since the saved snapshot."""
    project_root = get_project_root()
    require_initialized(project_root)

    try:
        result = run_snapshot(
            project_root, save=False, verbose=ctx.obj["verbose"], console=console
        )
    except CodeMerkleError as e:
        fail(e)
        return

    if result.previous_root_hash is None:
        console.print("[yellow]No saved snapshot - every file is reported as added.[/yellow]")

    _print_diff(result.diff)

    if exit_code and result.diff.has_changes:
        sys.exit(2)


@main.command()
def status() -> None:
    """Show snapshot status and configuration."""
    project_root = get_project_root()
    require_initialized(project_root)

    config = load_config(project_root)
    try:
        state = load_state(project_root)
    except CodeMerkleError as e:
        fail(e)
        return

    table = Table(title="Code Merkle Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Project root", str(project_root))
    table.add_row("Extensions", ", ".join(config.extensions) or "all")
    table.add_row("Ignore file", config.ignore_filename)

    if state and state.nodes:
        tree = state.tree()
        table.add_row("Tracked files", str(len(tree.files())))
        table.add_row("Root hash", state.root_hash or "")
        table.add_row("Last updated", state.updated_at.isoformat())
        table.add_row("Snapshot status", "[green]Ready[/green]")
    else:
        table.add_row("Snapshot status", "[yellow]None - run 'cmk snapshot'[/yellow]")

    console.print(table)


@main.command()
@click.option("--current", is_flag=True, help="Compute the root of the working tree instead")
@click.pass_context
def root(ctx: click.Context, current: bool) -> None:
    """Print the root digest of the saved snapshot."""
    project_root = get_project_root()
    require_initialized(project_root)

    try:
        if current:
            root_hash = run_snapshot(
                project_root, save=False, verbose=ctx.obj["verbose"], console=console
            ).tree.root_hash
        else:
            state = load_state(project_root)
            root_hash = state.root_hash if state else None
    except CodeMerkleError as e:
        fail(e)
        return

    if root_hash is None:
        error_console.print("[yellow]No snapshot saved.[/yellow] Run [bold]cmk snapshot[/bold].")
        sys.exit(1)

    click.echo(root_hash)


@main.command()
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def clean(force: bool) -> None:
    """Remove the .code-merkle directory."""
    project_root = get_project_root()
    cmk_dir = get_cmk_dir(project_root)

    if not cmk_dir.exists():
        console.print(f"[dim]Nothing to clean - {CMK_DIR}/ does not exist.[/dim]")
        return

    if not force:
        if not click.confirm(f"Remove {cmk_dir}?"):
            console.print("[dim]Cancelled.[/dim]")
            return

    shutil.rmtree(cmk_dir)
    console.print(f"[green]Removed {CMK_DIR}/[/green]")


def _print_diff(diff: TreeDiff) -> None:
    """Print a diff as one status-prefixed line per file."""
    if not diff.has_changes:
        console.print("[green]No changes.[/green]")
        return

    for path in diff.added:
        console.print(f"[green]A[/green] {escape(path)}", highlight=False)
    for path in diff.modified:
        console.print(f"[yellow]M[/yellow] {escape(path)}", highlight=False)
    for path in diff.removed:
        console.print(f"[red]D[/red] {escape(path)}", highlight=False)
    for path in diff.kind_changed:
        console.print(f"[magenta]T[/magenta] {escape(path)} (file <-> directory)", highlight=False)

    console.print(
        f"\n{len(diff.added)} added, {len(diff.modified)} modified, {len(diff.removed)} removed"
    )


def _update_gitignore(project_root: Path) -> None:
    """Add .code-merkle/ to .gitignore if not already present."""
    gitignore_path = project_root / ".gitignore"
    entry = f"{CMK_DIR}/"

    if gitignore_path.exists():
        content = gitignore_path.read_text()
        if entry in content or CMK_DIR in content:
            return  # Already present
        with open(gitignore_path, "a") as f:
            f.write(f"\n# Code Merkle\n{entry}\n")
    else:
        gitignore_path.write_text(f"# Code Merkle\n{entry}\n")


if __name__ == "__main__":
    main()
