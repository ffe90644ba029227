"""Pulls newly added index records out of a tree diff's patch.

The patch is scanned line by line. A line becomes a candidate only when it
sits inside a hunk, carries the ``+`` origin marker and belongs to a path
that was added or modified. Candidates that do not parse as a record are
dropped; the index has the occasional blank or half-written line and one of
those must not cost the whole batch.
"""

import logging
import subprocess
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path

from crates_index_diff import git
from crates_index_diff.differ import diff_trees
from crates_index_diff.errors import DiffComputationError, RecordParseError
from crates_index_diff.models import DeltaEntry, DeltaStatus, PackageVersion

logger = logging.getLogger(__name__)

_FILE_HEADER = b"diff --git "
_HUNK_HEADER = b"@@"
_LINE_ADDED = b"+"


def _section_owners(deltas: Sequence[DeltaEntry]) -> Iterator[DeltaEntry]:
    """Yield the delta that owns each file section of the patch, in order."""
    for delta in deltas:
        yield delta
        # git renders a type change as a deletion followed by a creation
        if delta.status is DeltaStatus.TYPECHANGE:
            yield delta


def extract_records(
    deltas: Sequence[DeltaEntry], patch_lines: Iterable[bytes]
) -> list[PackageVersion]:
    """Collect the records added by a patch.

    Args:
        deltas: Structural diff entries, in the order git renders them.
        patch_lines: Raw lines of the textual patch of the same diff.

    Returns:
        Parsed records in encounter order (path order, then line order).

    Raises:
        DiffComputationError: If the patch's file sections do not line up
            with *deltas*.
    """
    owners = _section_owners(deltas)
    owner: DeltaEntry | None = None
    in_hunk = False
    records: list[PackageVersion] = []
    skipped = 0

    for line in patch_lines:
        if line.startswith(_FILE_HEADER):
            owner = next(owners, None)
            if owner is None:
                raise DiffComputationError(
                    "Patch has more file sections than the tree diff has paths"
                )
            in_hunk = False
            continue

        if owner is None:
            continue

        if line.startswith(_HUNK_HEADER):
            in_hunk = True
            continue

        if not owner.is_eligible:
            continue

        if not in_hunk or not line.startswith(_LINE_ADDED):
            continue

        try:
            records.append(PackageVersion.from_json(line[1:]))
        except RecordParseError as e:
            skipped += 1
            logger.debug("Skipping unparseable line in %s: %s", owner.path, e)

    if next(owners, None) is not None:
        raise DiffComputationError(
            "Patch has fewer file sections than the tree diff has paths"
        )

    if skipped:
        logger.info("Skipped %d added line(s) that are not index records", skipped)
    return records


def added_records(repo_path: Path, old_tree: str, new_tree: str) -> list[PackageVersion]:
    """Diff two trees and return the records added between them.

    Raises:
        SnapshotResolutionError: If either id is not a tree.
        DiffComputationError: If the diff or its patch cannot be produced.
    """
    deltas = diff_trees(repo_path, old_tree, new_tree)
    if not deltas:
        return []

    try:
        records = extract_records(
            deltas, git.iter_patch_lines(repo_path, old_tree, new_tree)
        )
    except subprocess.CalledProcessError as e:
        raise DiffComputationError(
            f"Patch {old_tree[:12]}..{new_tree[:12]} failed: {git.git_error_text(e)}"
        ) from e

    logger.info(
        "%d record(s) added across %d changed path(s) in %s..%s",
        len(records),
        len(deltas),
        old_tree[:12],
        new_tree[:12],
    )
    return records
