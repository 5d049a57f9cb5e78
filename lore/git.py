"""
Git integration for lore.

Supplies the two things recording needs from version control: the head
commit id and the list of changed files. Runs the git command line.
"""

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from .config import LORE_DIR
from .errors import GitError, NoChangesError, NotARepositoryError

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"

    def __str__(self) -> str:
        return self.value


@dataclass
class ChangedFile:
    path: str
    change_type: ChangeType
    staged: bool


def _run_git(args: list[str], cwd: Path) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
    )


def _change_type(x: str, y: str) -> Optional[ChangeType]:
    """Map porcelain XY status columns to a change type.

    Checked in order added, modified, deleted, renamed; anything else
    (type changes, unmerged paths) is not reported.
    """
    if x == "A" or (x, y) == ("?", "?"):
        return ChangeType.ADDED
    if x == "M" or y == "M":
        return ChangeType.MODIFIED
    if x == "D" or y == "D":
        return ChangeType.DELETED
    if x == "R" or y == "R":
        return ChangeType.RENAMED
    return None


def parse_porcelain(output: str) -> list[ChangedFile]:
    """Parse `git status --porcelain -z` output.

    Paths under the store's own directory are excluded.
    """
    changes: list[ChangedFile] = []
    tokens = output.split("\0")
    i = 0
    while i < len(tokens):
        entry = tokens[i]
        i += 1
        if len(entry) < 4:
            continue
        x, y, path = entry[0], entry[1], entry[3:]
        if x in "RC" or y in "RC":
            i += 1  # -z puts the original path of a rename/copy in the next field

        if not path or path.startswith(LORE_DIR + "/"):
            continue

        change_type = _change_type(x, y)
        if change_type is None:
            continue

        changes.append(ChangedFile(
            path=path,
            change_type=change_type,
            staged=x in "AMDR",
        ))
    return changes


class GitContext:
    """A git work tree discovered from a path."""

    def __init__(self, workdir: Path):
        self._workdir = workdir

    @classmethod
    def open(cls, path: Union[str, Path]) -> "GitContext":
        """
        Open the git repository containing `path` (searching upward).

        Raises:
            NotARepositoryError: If `path` is not inside a work tree
                or git is not installed
        """
        try:
            result = _run_git(["rev-parse", "--show-toplevel"], Path(path))
        except OSError as e:
            logger.debug("git unavailable at %s: %s", path, e)
            raise NotARepositoryError() from e
        if result.returncode != 0:
            raise NotARepositoryError()
        return cls(Path(result.stdout.strip()))

    @property
    def workdir(self) -> Path:
        return self._workdir

    def head_commit(self) -> str:
        """Full id of the HEAD commit."""
        result = _run_git(["rev-parse", "--verify", "HEAD"], self._workdir)
        if result.returncode != 0:
            raise GitError(result.stderr.strip() or "HEAD does not point to a commit")
        return result.stdout.strip()

    def changed_files(self) -> list[ChangedFile]:
        """
        Staged, unstaged and untracked changes, excluding .lore/.

        Raises:
            NoChangesError: If nothing has changed
            GitError: If git status fails
        """
        result = _run_git(
            ["status", "--porcelain", "-z", "--untracked-files=all"],
            self._workdir,
        )
        if result.returncode != 0:
            raise GitError(result.stderr.strip() or "git status failed")

        changes = parse_porcelain(result.stdout)
        if not changes:
            raise NoChangesError()
        return changes
