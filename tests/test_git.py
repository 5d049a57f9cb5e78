"""
Tests for git integration.

Repository tests run the real git binary and are skipped without it.
"""

import shutil
import subprocess

import pytest

from lore.errors import GitError, NoChangesError, NotARepositoryError
from lore.git import ChangeType, GitContext, parse_porcelain

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _git(cwd, *args):
    subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
    )


@pytest.fixture
def repo(tmp_path):
    root = tmp_path / "repo"
    root.mkdir()
    _git(root, "init", "-q")
    (root / "tracked.py").write_text("print('v1')\n")
    _git(root, "add", "tracked.py")
    _git(root, "commit", "-q", "-m", "initial")
    return root


# ---------------------------------------------------------------------------
# Porcelain parsing (no git needed)
# ---------------------------------------------------------------------------


class TestParsePorcelain:
    def test_status_codes(self):
        output = "\0".join([
            " M modified.py",
            "A  added.py",
            "?? untracked.py",
            " D deleted.py",
            "",
        ])
        changes = {c.path: c.change_type for c in parse_porcelain(output)}
        assert changes == {
            "modified.py": ChangeType.MODIFIED,
            "added.py": ChangeType.ADDED,
            "untracked.py": ChangeType.ADDED,
            "deleted.py": ChangeType.DELETED,
        }

    def test_rename_skips_original_path(self):
        output = "R  new.py\0old.py\0 M other.py\0"
        changes = parse_porcelain(output)
        assert [(c.path, c.change_type) for c in changes] == [
            ("new.py", ChangeType.RENAMED),
            ("other.py", ChangeType.MODIFIED),
        ]

    def test_excludes_store_directory(self):
        output = "?? .lore/entries/x.json\0 M .lore/index.json\0 M src/a.py\0"
        assert [c.path for c in parse_porcelain(output)] == ["src/a.py"]

    def test_staged_flag(self):
        changes = parse_porcelain("M  staged.py\0 M unstaged.py\0")
        assert [c.staged for c in changes] == [True, False]

    def test_empty(self):
        assert parse_porcelain("") == []

    def test_change_type_str(self):
        assert str(ChangeType.MODIFIED) == "modified"


# ---------------------------------------------------------------------------
# Real repositories
# ---------------------------------------------------------------------------


@requires_git
class TestGitContext:
    def test_open_from_subdirectory(self, repo):
        sub = repo / "pkg"
        sub.mkdir()
        git = GitContext.open(sub)
        assert git.workdir.resolve() == repo.resolve()

    def test_open_outside_repo(self, tmp_path, monkeypatch):
        plain = tmp_path / "plain"
        plain.mkdir()
        # Stop git from discovering a repository above tmp_path
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
        with pytest.raises(NotARepositoryError):
            GitContext.open(plain)

    def test_head_commit(self, repo):
        head = GitContext.open(repo).head_commit()
        assert len(head) == 40
        assert all(c in "0123456789abcdef" for c in head)

    def test_head_commit_without_commits(self, tmp_path):
        root = tmp_path / "fresh"
        root.mkdir()
        _git(root, "init", "-q")
        with pytest.raises(GitError):
            GitContext.open(root).head_commit()

    def test_clean_tree_has_no_changes(self, repo):
        with pytest.raises(NoChangesError):
            GitContext.open(repo).changed_files()

    def test_changed_files(self, repo):
        (repo / "tracked.py").write_text("print('v2')\n")
        (repo / "new.py").write_text("x = 1\n")
        (repo / ".lore").mkdir()
        (repo / ".lore" / "index.json").write_text("{}")

        changes = {c.path: c.change_type for c in GitContext.open(repo).changed_files()}
        assert changes == {
            "tracked.py": ChangeType.MODIFIED,
            "new.py": ChangeType.ADDED,
        }

    def test_deleted_file(self, repo):
        (repo / "tracked.py").unlink()
        changes = GitContext.open(repo).changed_files()
        assert [(c.path, c.change_type) for c in changes] == [("tracked.py", ChangeType.DELETED)]
