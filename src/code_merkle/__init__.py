"""Code Merkle - Content-addressed fingerprints and diffs for directory trees."""

__version__ = "0.1.0"

# Directory and file constants
CMK_DIR = ".code-merkle"
CONFIG_FILE = "config.json"
STATE_FILE = "state.json"
DEFAULT_IGNORE_FILE = ".cursorignore"
