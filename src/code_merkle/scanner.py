"""Directory traversal honoring gitignore-style ignore files."""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass
from pathlib import Path

from pathspec import GitIgnoreSpec

from . import DEFAULT_IGNORE_FILE
from .errors import NotADirectoryScanError, ScanError

logger = logging.getLogger(__name__)

GITIGNORE = ".gitignore"
GIT_INFO_EXCLUDE = Path(".git") / "info" / "exclude"


@dataclass(frozen=True)
class _IgnoreScope:
    """Ignore rules loaded from one directory, matched relative to it."""

    base: Path
    spec: GitIgnoreSpec

    def check(self, path: Path, is_dir: bool) -> bool | None:
        """True if ignored, False if re-included by a negation, None if no pattern matched."""
        rel = path.relative_to(self.base).as_posix()
        if is_dir:
            rel += "/"
        return self.spec.check_file(rel).include


def parse_ignore_file(path: Path) -> list[str]:
    """
    Read a gitignore-style file and return non-empty pattern lines (strip comments and blanks).
    """
    if not path.is_file():
        return []
    patterns: list[str] = []
    for line in path.read_text(encoding="utf-8", errors="replace").splitlines():
        s = line.rstrip()
        if not s.strip() or s.startswith("#"):
            continue
        patterns.append(s)
    return patterns


def normalize_extensions(extensions: list[str]) -> set[str]:
    """Lowercase extensions without their leading dot."""
    return {ext.strip().lstrip(".").lower() for ext in extensions if ext.strip().lstrip(".")}


def should_exclude(path: Path, exclude_patterns: list[str]) -> bool:
    """Check if path matches any exclusion pattern."""
    name = path.name
    for pattern in exclude_patterns:
        if fnmatch.fnmatch(name, pattern):
            return True
    return False


def scan_directory(
    root: Path,
    extensions: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
    ignore_filenames: tuple[str, ...] = (GITIGNORE, DEFAULT_IGNORE_FILE),
    git_exclude: bool = True,
) -> list[Path]:
    """
    Collect the files under root that should be fingerprinted.

    Args:
        root: Directory to scan
        extensions: Extensions to include, case-insensitive (None or empty for all)
        exclude_patterns: fnmatch patterns matched against entry names
        ignore_filenames: Ignore files read in every directory, gitignore syntax
        git_exclude: Also apply the repository's .git/info/exclude

    Returns:
        Sorted absolute file paths

    Raises:
        NotADirectoryScanError: If root is not a directory
        ScanError: If a directory cannot be listed
    """
    root = Path(root)
    if not root.is_dir():
        raise NotADirectoryScanError(root)
    root = root.resolve()

    allowed = normalize_extensions(extensions or [])
    results: list[Path] = []
    scopes: list[_IgnoreScope] = []
    if git_exclude:
        patterns = parse_ignore_file(root / GIT_INFO_EXCLUDE)
        if patterns:
            scopes.append(_IgnoreScope(base=root, spec=GitIgnoreSpec.from_lines(patterns)))

    _walk(root, scopes, allowed, exclude_patterns or [], ignore_filenames, results)
    results.sort()
    logger.debug("Scanned %s: %d files", root, len(results))
    return results


def _load_scope(directory: Path, ignore_filenames: tuple[str, ...]) -> _IgnoreScope | None:
    patterns: list[str] = []
    for filename in ignore_filenames:
        patterns.extend(parse_ignore_file(directory / filename))
    if not patterns:
        return None
    return _IgnoreScope(base=directory, spec=GitIgnoreSpec.from_lines(patterns))


def _walk(
    directory: Path,
    scopes: list[_IgnoreScope],
    allowed: set[str],
    exclude_patterns: list[str],
    ignore_filenames: tuple[str, ...],
    results: list[Path],
) -> None:
    """Recursively collect files from one directory."""
    scope = _load_scope(directory, ignore_filenames)
    if scope is not None:
        scopes = [*scopes, scope]

    try:
        entries = sorted(directory.iterdir())
    except PermissionError as e:
        raise ScanError(f"Permission denied: {directory}") from e
    except OSError as e:
        raise ScanError(f"Cannot list {directory}: {e}") from e

    for entry in entries:
        if entry.name.startswith("."):
            continue
        if entry.is_symlink():
            continue
        if should_exclude(entry, exclude_patterns):
            continue

        is_dir = entry.is_dir()
        if _is_ignored(entry, is_dir, scopes):
            continue

        if is_dir:
            _walk(entry, scopes, allowed, exclude_patterns, ignore_filenames, results)
        elif entry.is_file():
            if allowed and entry.suffix.lstrip(".").lower() not in allowed:
                continue
            results.append(entry)


def _is_ignored(path: Path, is_dir: bool, scopes: list[_IgnoreScope]) -> bool:
    """The deepest ignore file with a matching pattern decides."""
    for scope in reversed(scopes):
        decision = scope.check(path, is_dir)
        if decision is not None:
            return decision
    return False
