"""Thin wrapper around the git command line.

Every repository access in crates-index-diff goes through these helpers.
They raise subprocess.CalledProcessError on failure; callers translate that
into the error kinds of crates_index_diff.errors.
"""

import logging
import os
import subprocess
import tempfile
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

# Never block on credential prompts during fetch/clone
_GIT_ENV = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}

# Options shared by every diff-tree invocation so raw and patch output agree
_DIFF_TREE_ARGS = (
    "diff-tree",
    "-r",
    "--no-renames",
    "--no-color",
    "--no-ext-diff",
    "--no-textconv",
)


def run_git(
    repo_path: Path, *args: str, input: str | None = None
) -> subprocess.CompletedProcess[str]:
    """Run a git command in the given repo directory.

    Args:
        repo_path: Path to the git repository (bare or with a work tree).
        *args: Git subcommand and arguments.
        input: Optional text fed to the command's stdin.

    Returns:
        CompletedProcess result.

    Raises:
        subprocess.CalledProcessError: If the git command fails.
    """
    logger.debug("git %s", " ".join(args))
    return subprocess.run(
        ["git", "-C", str(repo_path), *args],
        capture_output=True,
        text=True,
        check=True,
        input=input,
        env=_GIT_ENV,
    )


def git_error_text(e: subprocess.CalledProcessError) -> str:
    """Best human-readable message for a failed git command."""
    stderr = e.stderr
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    return (stderr or "").strip() or str(e)


def absolute_git_dir(path: Path) -> Path | None:
    """Return the git directory that serves *path*, or None if there is none."""
    if not path.is_dir():
        return None
    try:
        result = run_git(path, "rev-parse", "--absolute-git-dir")
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None
    return Path(result.stdout.strip())


def rev_parse(repo_path: Path, rev: str) -> str | None:
    """Resolve a revision to the id of an existing object.

    Returns:
        The full object id, or None if the revision does not name an object.
    """
    try:
        result = run_git(repo_path, "rev-parse", "--verify", "--quiet", rev)
        oid = result.stdout.strip()
        # --verify accepts any well-formed full id, present or not
        run_git(repo_path, "cat-file", "-e", oid)
    except subprocess.CalledProcessError:
        return None
    return oid or None


def ref_target(repo_path: Path, ref_name: str) -> str | None:
    """Return the id stored in a ref, or None if the ref does not exist.

    The id is returned as stored; the object it names may be missing.
    """
    try:
        result = run_git(repo_path, "rev-parse", "--verify", "--quiet", ref_name)
    except subprocess.CalledProcessError:
        return None
    return result.stdout.strip() or None


def object_type(repo_path: Path, oid: str) -> str | None:
    """Return the object kind ("commit", "tree", "blob", "tag") or None if missing."""
    try:
        result = run_git(repo_path, "cat-file", "-t", oid)
    except subprocess.CalledProcessError:
        return None
    return result.stdout.strip()


def commit_tree_id(repo_path: Path, commit_oid: str) -> str:
    """Get the id of the tree a commit points to."""
    result = run_git(repo_path, "rev-parse", "--verify", f"{commit_oid}^{{tree}}")
    return result.stdout.strip()


def write_empty_tree(repo_path: Path) -> str:
    """Write the tree with no entries into the object database and return its id."""
    result = run_git(repo_path, "mktree", input="")
    return result.stdout.strip()


def update_ref(repo_path: Path, ref_name: str, oid: str, message: str) -> None:
    """Create or move a ref to point at *oid*."""
    run_git(repo_path, "update-ref", "-m", message, ref_name, oid)


def remote_url(repo_path: Path, remote_name: str) -> str | None:
    """Return the configured URL of a remote, or None if it has none."""
    try:
        result = run_git(repo_path, "config", "--get", f"remote.{remote_name}.url")
    except subprocess.CalledProcessError:
        return None
    return result.stdout.strip() or None


def fetch(repo_path: Path, remote_name: str, refspec: str) -> None:
    """Fetch *refspec* from a remote into the local repository."""
    run_git(repo_path, "fetch", remote_name, refspec)


def clone_bare(url: str, dest: Path) -> None:
    """Clone *url* into *dest* as a bare repository with full history."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    subprocess.run(
        ["git", "clone", "--bare", "--quiet", url, str(dest)],
        capture_output=True,
        text=True,
        check=True,
        env=_GIT_ENV,
    )


def diff_tree_raw(repo_path: Path, old_tree: str, new_tree: str) -> list[tuple[str, ...]]:
    """Structural diff of two trees in git's raw format.

    Returns:
        One tuple per changed path, in git's path order:
        (old_mode, new_mode, old_id, new_id, status, path).
    """
    result = run_git(repo_path, *_DIFF_TREE_ARGS, "-z", old_tree, new_tree)
    fields = result.stdout.split("\0")

    entries: list[tuple[str, ...]] = []
    i = 0
    while i < len(fields):
        header = fields[i]
        if not header:
            i += 1
            continue
        # ":<old_mode> <new_mode> <old_id> <new_id> <status>" then the path
        old_mode, new_mode, old_id, new_id, status = header.lstrip(":").split(" ")
        path = fields[i + 1]
        entries.append((old_mode, new_mode, old_id, new_id, status, path))
        i += 2
    return entries


def iter_patch_lines(repo_path: Path, old_tree: str, new_tree: str) -> Iterator[bytes]:
    """Stream the textual patch between two trees, one raw line at a time.

    Lines are yielded as bytes including their newline. The index diff can
    be very large, so output is never buffered in full.

    Raises:
        subprocess.CalledProcessError: If git exits non-zero. Raised after
            the last line has been yielded.
    """
    cmd = ["git", "-C", str(repo_path), *_DIFF_TREE_ARGS, "-p", old_tree, new_tree]
    logger.debug("git %s", " ".join(cmd[3:]))
    # stderr goes to a file, never a pipe that nobody drains while streaming
    with tempfile.TemporaryFile() as errors, subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=errors,
        env=_GIT_ENV,
    ) as proc:
        assert proc.stdout is not None
        yield from proc.stdout
        returncode = proc.wait()
        errors.seek(0)
        stderr = errors.read()
    if returncode != 0:
        raise subprocess.CalledProcessError(returncode, cmd, stderr=stderr)
