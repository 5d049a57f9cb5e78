"""
Content hashing for file fingerprints.

Digests are recorded as a historical fingerprint of the file at record
time. They are never re-verified.
"""

import hashlib
from pathlib import Path
from typing import Union

from .errors import NotFoundError, StorageIOError

# Read files in chunks so large files don't need to fit in memory
_CHUNK_SIZE = 1 << 16


def hash_bytes(content: bytes) -> str:
    """SHA-256 hex digest of a byte sequence."""
    return hashlib.sha256(content).hexdigest()


def hash_string(content: str) -> str:
    """SHA-256 hex digest of a string's UTF-8 encoding."""
    return hash_bytes(content.encode("utf-8"))


def hash_file(path: Union[str, Path]) -> str:
    """
    SHA-256 hex digest of a file's contents.

    Raises:
        NotFoundError: If the file does not exist
        StorageIOError: If the file cannot be read
    """
    path = Path(path)
    if not path.exists():
        raise NotFoundError(str(path))

    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as e:
        raise StorageIOError(str(e)) from e
    return digest.hexdigest()
