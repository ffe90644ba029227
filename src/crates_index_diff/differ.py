"""Structural tree-to-tree diff, without rename detection."""

import logging
import subprocess
from pathlib import Path

from crates_index_diff import git
from crates_index_diff.errors import DiffComputationError, SnapshotResolutionError
from crates_index_diff.models import DeltaEntry, DeltaStatus

logger = logging.getLogger(__name__)


def find_tree(repo_path: Path, oid: str) -> str:
    """Dereference *oid* as a tree.

    Raises:
        SnapshotResolutionError: If the object is missing or not a tree.
    """
    kind = git.object_type(repo_path, oid)
    if kind is None:
        raise SnapshotResolutionError(f"Object {oid[:12]} does not exist")
    if kind != "tree":
        raise SnapshotResolutionError(f"Object {oid[:12]} is a {kind}, not a tree")
    return oid


def diff_trees(repo_path: Path, old_tree: str, new_tree: str) -> list[DeltaEntry]:
    """Compute the per-path changes between two trees.

    Args:
        repo_path: Path to the index repository.
        old_tree: Id of the "from" tree.
        new_tree: Id of the "to" tree.

    Returns:
        Delta entries in git's path order.

    Raises:
        SnapshotResolutionError: If either id is not a tree.
        DiffComputationError: If git fails to compute the diff.
    """
    find_tree(repo_path, old_tree)
    find_tree(repo_path, new_tree)

    try:
        raw = git.diff_tree_raw(repo_path, old_tree, new_tree)
    except subprocess.CalledProcessError as e:
        raise DiffComputationError(
            f"diff {old_tree[:12]}..{new_tree[:12]} failed: {git.git_error_text(e)}"
        ) from e
    except (ValueError, IndexError) as e:
        raise DiffComputationError(f"Unexpected raw diff output: {e}") from e

    deltas = [
        DeltaEntry(
            path=path,
            status=DeltaStatus.from_letter(status),
            old_mode=old_mode,
            new_mode=new_mode,
            old_id=old_id,
            new_id=new_id,
        )
        for old_mode, new_mode, old_id, new_id, status, path in raw
    ]
    logger.debug(
        "Tree diff %s..%s: %d paths", old_tree[:12], new_tree[:12], len(deltas)
    )
    return deltas
