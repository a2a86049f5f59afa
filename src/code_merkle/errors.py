"""Exceptions raised by Code Merkle."""


class CodeMerkleError(Exception):
    """Base exception for Code Merkle errors."""

    pass


class ScanError(CodeMerkleError):
    """Directory traversal failed."""

    pass


class NotADirectoryScanError(ScanError):
    """The scan root is missing or is not a directory."""

    def __init__(self, root: object):
        super().__init__(f"Not a directory: {root}")
        self.root = root


class FileUnreadableError(CodeMerkleError):
    """A file could not be read for hashing."""

    def __init__(self, path: object, reason: str):
        super().__init__(f"Failed to read file {path}: {reason}")
        self.path = path
        self.reason = reason


class StateError(CodeMerkleError):
    """The saved snapshot state could not be loaded."""

    pass
