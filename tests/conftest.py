"""Shared fixtures: throwaway git repositories laid out like the crates.io index."""

import subprocess
from pathlib import Path

import pytest


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        [
            "git",
            "-c", "user.name=Index Tester",
            "-c", "user.email=tester@example.com",
            "-c", "commit.gpgsign=false",
            "-C", str(cwd),
            *args,
        ],
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


class IndexRepo:
    """A non-bare repository with one JSON-lines file per crate."""

    def __init__(self, path: Path) -> None:
        self.path = path
        path.mkdir(parents=True)
        _git(path, "init", "--quiet")
        _git(path, "symbolic-ref", "HEAD", "refs/heads/master")

    def git(self, *args: str) -> str:
        return _git(self.path, *args)

    def write(self, rel_path: str, *lines: str) -> None:
        """Replace a file's content with *lines*."""
        target = self.path / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("".join(f"{line}\n" for line in lines))

    def append(self, rel_path: str, *lines: str) -> None:
        target = self.path / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "a") as f:
            for line in lines:
                f.write(f"{line}\n")

    def remove(self, rel_path: str) -> None:
        (self.path / rel_path).unlink()

    def commit(self, message: str = "update index") -> str:
        """Commit everything in the work tree and return the commit id."""
        self.git("add", "--all")
        self.git("commit", "--quiet", "--allow-empty", "-m", message)
        return self.git("rev-parse", "HEAD")

    def tree_of(self, rev: str) -> str:
        return self.git("rev-parse", f"{rev}^{{tree}}")


@pytest.fixture
def upstream(tmp_path: Path) -> IndexRepo:
    """An empty index repository standing in for the remote."""
    return IndexRepo(tmp_path / "upstream")
