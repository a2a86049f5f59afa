"""Merkle tree construction and comparison for directory snapshots.

A snapshot is a flat node set: one node per file plus one node per ancestor
directory, keyed by relative path. Directory digests depend only on the set
of their children's digests, so two snapshots of the same content produce
identical trees regardless of the order files were discovered in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Literal

from . import paths
from .hasher import FileHashEntry, sha256_hex

logger = logging.getLogger(__name__)

NodeKind = Literal["file", "directory"]


@dataclass(frozen=True)
class TreeNode:
    """A file or directory in a snapshot."""

    path: str  # Relative path from project root, "." for the root
    digest: str
    kind: NodeKind
    children: tuple[str, ...] = ()  # Immediate child paths, directories only

    @property
    def is_file(self) -> bool:
        return self.kind == "file"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the flat record stored in snapshot state."""
        return {
            "path": self.path,
            "digest": self.digest,
            "is_file": self.is_file,
            "children": list(self.children),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TreeNode:
        """Deserialize from a flat record."""
        return cls(
            path=data["path"],
            digest=data["digest"],
            kind="file" if data["is_file"] else "directory",
            children=tuple(data.get("children") or ()),
        )


@dataclass
class TreeDiff:
    """Result of comparing two Merkle trees."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    # Paths that are a file on one side and a directory on the other. These
    # are also reported through added/removed.
    kind_changed: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """Check if there are any changes."""
        return bool(self.added or self.removed or self.modified)

    @property
    def total_changes(self) -> int:
        """Total number of changed files."""
        return len(self.added) + len(self.removed) + len(self.modified)


def compute_directory_hash(child_digests: Iterable[str]) -> str:
    """Compute a directory digest from its children's digests.

    Digests are sorted by value before concatenation, so the result depends
    only on the set of child digests.
    """
    return sha256_hex("".join(sorted(child_digests)))


def build_merkle_tree(entries: Iterable[FileHashEntry]) -> list[TreeNode]:
    """
    Build the complete node set for a list of file digests.

    Args:
        entries: (path, digest) pairs for files, paths relative to the root

    Returns:
        All file and directory nodes, including the root, sorted by path
    """
    file_digests = _collect_file_digests(entries)
    adjacency = _build_adjacency(file_digests)

    nodes: dict[str, TreeNode] = {
        path: TreeNode(path=path, digest=digest, kind="file")
        for path, digest in file_digests.items()
    }

    # Deepest first: every child is hashed before its parent
    for dir_path in sorted(adjacency, key=paths.depth, reverse=True):
        children = sorted(adjacency[dir_path])
        nodes[dir_path] = TreeNode(
            path=dir_path,
            digest=compute_directory_hash(nodes[child].digest for child in children),
            kind="directory",
            children=tuple(children),
        )

    return [nodes[path] for path in sorted(nodes)]


def diff_merkle_trees(old_nodes: Iterable[TreeNode], new_nodes: Iterable[TreeNode]) -> TreeDiff:
    """
    Classify every file path across two snapshots.

    Only file nodes are compared; directories are structural and never
    reported. Unchanged files appear in none of the lists.

    Returns:
        TreeDiff with added, removed and modified file paths sorted by path
    """
    old_nodes = list(old_nodes)
    new_nodes = list(new_nodes)
    old_files = _file_projection(old_nodes)
    new_files = _file_projection(new_nodes)

    diff = TreeDiff()
    for path in sorted(new_files):
        old_digest = old_files.get(path)
        if old_digest is None:
            diff.added.append(path)
        elif old_digest != new_files[path]:
            diff.modified.append(path)

    diff.removed = sorted(path for path in old_files if path not in new_files)

    old_dirs = {node.path for node in old_nodes if not node.is_file}
    new_dirs = {node.path for node in new_nodes if not node.is_file}
    diff.kind_changed = sorted(
        (old_files.keys() & new_dirs) | (old_dirs & new_files.keys())
    )
    return diff


def get_root_hash(nodes: Iterable[TreeNode]) -> str | None:
    """Return the root digest of a node set, or None if the set is empty."""
    root = min(
        nodes,
        key=lambda node: (node.path != paths.ROOT, len(node.path)),
        default=None,
    )
    return root.digest if root is not None else None


class MerkleTree:
    """Immutable snapshot of a directory hierarchy, keyed by path."""

    def __init__(self, nodes: Iterable[TreeNode] = ()):
        self._nodes: dict[str, TreeNode] = {node.path: node for node in nodes}

    @classmethod
    def build(cls, entries: Iterable[FileHashEntry]) -> MerkleTree:
        """Build a tree from (path, digest) pairs."""
        return cls(build_merkle_tree(entries))

    @property
    def root(self) -> TreeNode | None:
        return self._nodes.get(paths.ROOT)

    @property
    def root_hash(self) -> str | None:
        return get_root_hash(self._nodes.values())

    @property
    def nodes(self) -> list[TreeNode]:
        return list(self._nodes.values())

    def get(self, path: str) -> TreeNode | None:
        """Look up a node by relative path."""
        return self._nodes.get(paths.normalize(path))

    def files(self) -> dict[str, str]:
        """Path -> digest for every file in the tree."""
        return _file_projection(self._nodes.values())

    def compare(self, other: MerkleTree) -> TreeDiff:
        """
        Compare this tree (old) with another tree (new) to find changes.

        Args:
            other: The newer tree (typically current filesystem state)

        Returns:
            TreeDiff with lists of added, removed, and modified file paths
        """
        return diff_merkle_trees(self._nodes.values(), other._nodes.values())

    def to_list(self) -> list[dict[str, Any]]:
        """Serialize to a flat list of node records."""
        return [node.to_dict() for node in self._nodes.values()]

    @classmethod
    def from_list(cls, data: Iterable[dict[str, Any]]) -> MerkleTree:
        """Deserialize from a flat list of node records."""
        return cls(TreeNode.from_dict(item) for item in data)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, path: object) -> bool:
        return path in self._nodes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MerkleTree):
            return NotImplemented
        return self._nodes == other._nodes

    def __repr__(self) -> str:
        return f"MerkleTree(nodes={len(self._nodes)}, root_hash={self.root_hash!r})"


def _collect_file_digests(entries: Iterable[FileHashEntry]) -> dict[str, str]:
    """Normalize input paths; the last digest given for a path wins."""
    file_digests: dict[str, str] = {}
    for entry in entries:
        path = paths.normalize(entry.path)
        if path in file_digests:
            logger.warning("Duplicate path %s in tree input, keeping last digest", path)
        file_digests[path] = entry.digest
    return file_digests


def _build_adjacency(file_paths: Iterable[str]) -> dict[str, set[str]]:
    """Map every directory (root included) to its immediate children."""
    adjacency: dict[str, set[str]] = {paths.ROOT: set()}
    for file_path in file_paths:
        child = file_path
        for ancestor in paths.ancestors(file_path):
            siblings = adjacency.setdefault(ancestor, set())
            already_linked = child in siblings
            siblings.add(child)
            if already_linked:
                break
            child = ancestor
    return adjacency


def _file_projection(nodes: Iterable[TreeNode]) -> dict[str, str]:
    return {node.path: node.digest for node in nodes if node.is_file}
