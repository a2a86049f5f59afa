"""Relative path helpers shared by the tree builder and differ.

All paths handled by the core are relative, ``/``-separated, without a
trailing separator. The project root is the reserved path ``ROOT``.
"""

from __future__ import annotations

import os
from pathlib import Path, PureWindowsPath

ROOT = "."
SEP = "/"


def normalize(path: str) -> str:
    """Normalize a relative path to the ``/``-separated form used in node sets.

    Backslashes and drive letters only have path meaning on Windows hosts;
    elsewhere they are ordinary filename characters.

    Raises:
        ValueError: If the path is absolute or escapes the root via ``..``
    """
    raw = path
    if os.name == "nt":
        if PureWindowsPath(path).drive:
            raise ValueError(f"Expected a relative path, got: {path!r}")
        raw = path.replace("\\", SEP)
    if raw.startswith(SEP):
        raise ValueError(f"Expected a relative path, got: {path!r}")

    parts = [part for part in raw.split(SEP) if part not in ("", ".")]
    if ".." in parts:
        raise ValueError(f"Path escapes the root: {path!r}")

    return SEP.join(parts) if parts else ROOT


def parent(path: str) -> str:
    """Return the parent of a normalized path (``ROOT`` for top-level entries)."""
    idx = path.rfind(SEP)
    if idx < 0:
        return ROOT
    return path[:idx]


def depth(path: str) -> int:
    """Number of segments in a normalized path; the root has depth 0."""
    if path == ROOT:
        return 0
    return path.count(SEP) + 1


def ancestors(path: str) -> list[str]:
    """Proper ancestors of a path, nearest first, ending with ``ROOT``."""
    result: list[str] = []
    current = path
    while current != ROOT:
        current = parent(current)
        result.append(current)
    return result


def relative_to(root: Path, file_path: Path) -> str:
    """Relative ``/``-separated path of ``file_path`` under ``root``.

    Segments are taken from the host path as-is, so characters that are
    separators elsewhere (such as ``\\`` on POSIX) stay part of the name.
    """
    parts = file_path.relative_to(root).parts
    return SEP.join(parts) if parts else ROOT
