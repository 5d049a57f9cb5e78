"""
Lore

Durable reasoning notes for code: why a change was made, what alternatives
were rejected, and which file, lines and commit it applies to.

Quick Start:
    from lore import LoreStore, Record, hash_file

    store = LoreStore(".")
    store.init(agent_id="claude")
    record = Record.create("src/auth.py", hash_file("src/auth.py"), "claude",
                           "Add JWT auth", "Sessions don't survive restarts...")
    store.save_record(record)
    store.get_records_for_file("./src/auth.py")

CLI Usage:
    lore init --agent claude
    lore record -m "Add JWT auth" -f src/auth.py -r "Auth0 SDK=vendor lock-in"
    lore explain src/auth.py --all
    lore search jwt --json

Default Store:
    .lore/ in the nearest directory at or above the current one.
    Override with LORE_STORE_PATH or --store.

Environment Variables:
    LORE_STORE_PATH  - Store root (directory containing .lore/)
    LORE_AGENT       - Agent id for `lore record`
    LORE_VERBOSE     - Set to 1 for debug logging
    LORE_ERROR_LOG   - Error log location
"""

from .errors import (
    AlreadyInitializedError,
    DeserializationError,
    GitError,
    LoreError,
    NoChangesError,
    NotARepositoryError,
    NotFoundError,
    NotInitializedError,
    StorageIOError,
)
from .hashing import hash_bytes, hash_file, hash_string
from .index import LoreIndex, build_index, merge_indexes
from .store import LoreStore
from .types import Record, RejectedAlternative, normalize_path

__version__ = "0.1.0"
__all__ = [
    "LoreStore",
    "LoreIndex",
    "Record",
    "RejectedAlternative",
    "normalize_path",
    "hash_bytes",
    "hash_file",
    "hash_string",
    "build_index",
    "merge_indexes",
    "LoreError",
    "NotInitializedError",
    "AlreadyInitializedError",
    "NotFoundError",
    "StorageIOError",
    "DeserializationError",
    "GitError",
    "NotARepositoryError",
    "NoChangesError",
]
