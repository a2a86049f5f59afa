"""SHA-256 digests for buffers and files."""

from __future__ import annotations

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from . import paths
from .errors import FileUnreadableError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


@dataclass(frozen=True)
class FileHashEntry:
    """A file's relative path paired with the digest of its content."""

    path: str
    digest: str


def sha256_hex(data: bytes | str) -> str:
    """Hex-encoded SHA-256 of a buffer. Strings are encoded as UTF-8."""
    if isinstance(data, str):
        data = data.encode()
    return hashlib.sha256(data).hexdigest()


def compute_file_hash(filepath: Path) -> str:
    """Compute SHA256 hash of file contents.

    Raises:
        FileUnreadableError: If the file cannot be opened or read
    """
    h = hashlib.sha256()
    try:
        with open(filepath, "rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                h.update(chunk)
    except OSError as e:
        raise FileUnreadableError(filepath, e.strerror or str(e)) from e
    return h.hexdigest()


def hash_files(
    root: Path,
    file_paths: list[Path],
    max_workers: int | None = None,
    strict: bool = True,
) -> list[FileHashEntry]:
    """
    Hash many files concurrently.

    Args:
        root: Directory the returned paths are made relative to
        file_paths: Absolute paths of the files to hash
        max_workers: Thread pool size (None lets the executor decide)
        strict: Raise on the first unreadable file instead of skipping it

    Returns:
        One FileHashEntry per readable file, sorted by relative path
    """
    if not file_paths:
        return []

    def _hash_one(filepath: Path) -> FileHashEntry | None:
        try:
            digest = compute_file_hash(filepath)
        except FileUnreadableError as e:
            if strict:
                raise
            logger.warning("Skipping %s: %s", filepath, e.reason)
            return None
        return FileHashEntry(path=paths.relative_to(root, filepath), digest=digest)

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(_hash_one, file_paths))

    entries = [entry for entry in results if entry is not None]
    entries.sort(key=lambda entry: entry.path)
    logger.debug("Hashed %d of %d files under %s", len(entries), len(file_paths), root)
    return entries
