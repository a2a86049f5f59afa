"""Snapshot pipeline: scan, hash, build and diff against the saved tree."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from . import paths
from .config import CMKConfig, load_config
from .errors import FileUnreadableError
from .hasher import FileHashEntry, hash_files
from .merkle import MerkleTree, TreeDiff
from .scanner import GITIGNORE, scan_directory
from .state import FileStat, create_empty_state, load_state, save_state

logger = logging.getLogger(__name__)

# Progress callback signature: (files_done, total_files, stage)
ProgressCallback = Callable[[int, int, str], None]


@dataclass
class SnapshotStats:
    """Statistics from taking a snapshot."""

    files_scanned: int = 0
    files_hashed: int = 0  # Files where content was read and hashed
    files_mtime_cached: int = 0  # Files where the saved digest was reused
    directories: int = 0

    @property
    def cache_hit_rate(self) -> float:
        if self.files_scanned == 0:
            return 0.0
        return self.files_mtime_cached / self.files_scanned


@dataclass
class SnapshotResult:
    """A freshly built tree and how it differs from the previous snapshot."""

    tree: MerkleTree
    diff: TreeDiff
    stats: SnapshotStats
    previous_root_hash: str | None = None
    file_stats: dict[str, FileStat] = field(default_factory=dict)

    @property
    def root_changed(self) -> bool:
        return self.previous_root_hash != self.tree.root_hash


class Snapshotter:
    """Builds Merkle snapshots of a project and compares them with saved state."""

    def __init__(
        self,
        project_root: Path,
        config: CMKConfig | None = None,
        verbose: bool = False,
        console: Console | None = None,
    ):
        self.project_root = project_root
        self.config = config or load_config(project_root)
        self.verbose = verbose
        self.console = console or Console()

    def take(
        self,
        force: bool = False,
        save: bool = True,
        progress_callback: ProgressCallback | None = None,
    ) -> SnapshotResult:
        """
        Build the current tree and diff it against the saved snapshot.

        Args:
            force: Ignore saved digests and treat every file as added
            save: Persist the new tree as the saved snapshot
            progress_callback: Optional callback for progress updates (done, total, stage)

        Returns:
            SnapshotResult with the new tree, the diff and build statistics
        """
        state = load_state(self.project_root)
        old_tree = state.tree() if state is not None and not force else MerkleTree()
        cached_stats = state.files if state is not None and not force else {}

        file_paths = scan_directory(
            self.project_root,
            extensions=self.config.extensions,
            exclude_patterns=self.config.exclude_patterns,
            ignore_filenames=(GITIGNORE, self.config.ignore_filename),
        )

        stats = SnapshotStats(files_scanned=len(file_paths))
        entries, file_stats = self._hash_with_cache(
            file_paths, old_tree, cached_stats, stats, progress_callback
        )

        new_tree = MerkleTree.build(entries)
        stats.directories = len(new_tree) - len(entries)
        diff = old_tree.compare(new_tree)

        logger.debug(
            "Snapshot of %s: %d hashed, %d cached, root %s",
            self.project_root,
            stats.files_hashed,
            stats.files_mtime_cached,
            new_tree.root_hash,
        )
        if self.verbose and stats.files_scanned > 0:
            self.console.print(
                f"[dim]Tree build: {stats.files_hashed} hashed, "
                f"{stats.files_mtime_cached} cached "
                f"({stats.cache_hit_rate:.0%} hit rate)[/dim]"
            )

        result = SnapshotResult(
            tree=new_tree,
            diff=diff,
            stats=stats,
            previous_root_hash=old_tree.root_hash,
            file_stats=file_stats,
        )
        if save:
            self.save(result)
        return result

    def save(self, result: SnapshotResult) -> None:
        """Persist a snapshot result as the saved state."""
        state = load_state(self.project_root) or create_empty_state()
        state.root_hash = result.tree.root_hash
        state.nodes = result.tree.to_list()
        state.files = result.file_stats
        save_state(state, self.project_root)

    def _hash_with_cache(
        self,
        file_paths: list[Path],
        old_tree: MerkleTree,
        cached_stats: dict[str, FileStat],
        stats: SnapshotStats,
        progress_callback: ProgressCallback | None,
    ) -> tuple[list[FileHashEntry], dict[str, FileStat]]:
        """Reuse saved digests for files whose size and mtime are unchanged."""
        entries: list[FileHashEntry] = []
        file_stats: dict[str, FileStat] = {}
        to_hash: list[Path] = []

        for filepath in file_paths:
            rel_path = paths.relative_to(self.project_root.resolve(), filepath)
            try:
                st = filepath.stat()
            except OSError as e:
                raise FileUnreadableError(filepath, e.strerror or str(e)) from e
            current = FileStat(size=st.st_size, mtime=st.st_mtime)
            file_stats[rel_path] = current

            previous = old_tree.get(rel_path)
            if (
                previous is not None
                and previous.is_file
                and cached_stats.get(rel_path) == current
            ):
                entries.append(FileHashEntry(path=rel_path, digest=previous.digest))
            else:
                to_hash.append(filepath)

        stats.files_mtime_cached = len(entries)
        stats.files_hashed = len(to_hash)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
            disable=not self.verbose,
        ) as progress:
            task = progress.add_task("Hashing files...", total=len(to_hash))
            if progress_callback:
                progress_callback(0, len(to_hash), "hashing")
            entries.extend(
                hash_files(
                    self.project_root.resolve(),
                    to_hash,
                    max_workers=self.config.hash_workers,
                )
            )
            progress.update(task, completed=len(to_hash))
            if progress_callback:
                progress_callback(len(to_hash), len(to_hash), "complete")

        return entries, file_stats


def run_snapshot(
    project_root: Path,
    force: bool = False,
    save: bool = True,
    verbose: bool = False,
    console: Console | None = None,
    progress_callback: ProgressCallback | None = None,
) -> SnapshotResult:
    """
    Take a snapshot with progress display.

    This is the main entry point called by the CLI.

    Args:
        project_root: Path to the project root
        force: If True, ignore the saved snapshot
        save: If True, persist the new snapshot
        verbose: If True, show detailed progress in terminal
        console: Rich console for output
        progress_callback: Optional callback for progress updates (done, total, stage)
    """
    snapshotter = Snapshotter(project_root, verbose=verbose, console=console)
    return snapshotter.take(force=force, save=save, progress_callback=progress_callback)
