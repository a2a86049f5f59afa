"""Persisted snapshot state for Code Merkle."""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from . import CMK_DIR, STATE_FILE
from .errors import StateError
from .merkle import MerkleTree


class FileStat(BaseModel):
    """Size and mtime recorded for a file when it was last hashed."""

    size: int
    mtime: float


class SnapshotState(BaseModel):
    """The last saved Merkle tree and the file stats used to build it."""

    version: int = 1
    created_at: datetime
    updated_at: datetime
    root_hash: str | None = None
    nodes: list[dict[str, Any]] = Field(default_factory=list)  # Flat node records
    files: dict[str, FileStat] = Field(default_factory=dict)

    def tree(self) -> MerkleTree:
        """Rebuild the saved tree from its flat node records."""
        return MerkleTree.from_list(self.nodes)


def get_state_path(project_root: Path) -> Path:
    """Get the state file path."""
    return project_root / CMK_DIR / STATE_FILE


def load_state(project_root: Path) -> SnapshotState | None:
    """Load the saved snapshot state.

    Returns None if file doesn't exist.

    Raises:
        StateError: If the file exists but cannot be parsed
    """
    state_path = get_state_path(project_root)

    if not state_path.exists():
        return None

    try:
        with open(state_path) as f:
            data = json.load(f)
        return SnapshotState.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise StateError(f"Corrupt snapshot state at {state_path}: {e}") from e


def save_state(state: SnapshotState, project_root: Path) -> None:
    """Save snapshot state to the project's state file."""
    state_path = get_state_path(project_root)
    state_path.parent.mkdir(parents=True, exist_ok=True)

    # Update the updated_at timestamp
    state.updated_at = datetime.now(UTC)

    with open(state_path, "w") as f:
        json.dump(state.model_dump(mode="json"), f, indent=2, default=str)


def create_empty_state() -> SnapshotState:
    """Create a new empty state."""
    now = datetime.now(UTC)
    return SnapshotState(created_at=now, updated_at=now)
