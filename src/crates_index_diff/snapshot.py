"""Turns revisions and objects into the tree snapshots that get diffed."""

import subprocess
from pathlib import Path

from crates_index_diff import git
from crates_index_diff.errors import ReferenceResolutionError, SnapshotResolutionError
from crates_index_diff.models import CommitLike, SnapshotCandidate, TreeLike


def find_object(repo_path: Path, rev: str) -> SnapshotCandidate:
    """Look up a revision and classify the object it names.

    Args:
        repo_path: Path to the index repository.
        rev: Any revision git understands (object id, ref name, ``HEAD~2``, ...).

    Returns:
        CommitLike for commits, TreeLike for every other kind of object.

    Raises:
        ReferenceResolutionError: If the revision does not name an object.
    """
    oid = git.rev_parse(repo_path, rev)
    kind = git.object_type(repo_path, oid) if oid else None
    if oid is None or kind is None:
        raise ReferenceResolutionError(f"Cannot resolve revision {rev!r}")

    if kind != "commit":
        return TreeLike(oid=oid, kind=kind)

    try:
        tree_id = git.commit_tree_id(repo_path, oid)
    except subprocess.CalledProcessError as e:
        raise SnapshotResolutionError(
            f"Commit {oid[:12]} has no readable tree: {git.git_error_text(e)}"
        ) from e
    return CommitLike(oid=oid, tree_id=tree_id)


def resolve_tree(candidate: SnapshotCandidate) -> str:
    """Return the id of the tree to diff for a snapshot candidate.

    A TreeLike is passed through unchecked; the tree differ rejects it if it
    turns out not to be a tree.
    """
    if isinstance(candidate, CommitLike):
        return candidate.tree_id
    if isinstance(candidate, TreeLike):
        return candidate.oid
    raise TypeError(f"Not a snapshot candidate: {candidate!r}")
