"""
Error types and error logging utilities for lore.

Logs full stack traces for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class LoreError(Exception):
    """Base class for all lore errors."""


class NotInitializedError(LoreError):
    def __init__(self, message: str = "Lore not initialized. Run 'lore init' first."):
        super().__init__(message)


class AlreadyInitializedError(LoreError):
    def __init__(self, message: str = "Lore already initialized"):
        super().__init__(message)


class NotFoundError(LoreError):
    """A record id or plain file that must exist does not."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"File not found: {name}")


class StorageIOError(LoreError):
    """Wraps an underlying filesystem error."""

    def __init__(self, message: str):
        super().__init__(f"IO error: {message}")


class DeserializationError(LoreError, ValueError):
    """Malformed JSON where strict parsing is required."""

    def __init__(self, message: str):
        super().__init__(f"JSON error: {message}")


class GitError(LoreError):
    """Version-control failure. Raised directly for underlying git errors."""


class NotARepositoryError(GitError):
    def __init__(self, message: str = "Not a git repository"):
        super().__init__(message)


class NoChangesError(GitError):
    def __init__(self, message: str = "No changes detected"):
        super().__init__(message)


def _error_log_path() -> Path:
    """Resolve error log path, respecting LORE_ERROR_LOG."""
    override = os.environ.get("LORE_ERROR_LOG")
    if override:
        return Path(override)
    return Path.home() / ".cache" / "lore" / "lore-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write error log; don't crash over it
    return log_path
