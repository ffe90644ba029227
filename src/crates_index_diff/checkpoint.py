"""Last-seen checkpoint, stored as a ref in the index repository."""

import logging
import subprocess
from pathlib import Path

from crates_index_diff import git
from crates_index_diff.errors import CheckpointError, ReferenceResolutionError

logger = logging.getLogger(__name__)


class CheckpointStore:
    """Reads and writes the single last-seen ref.

    There is no locking: two processes persisting concurrently can lose one
    of the updates. Callers that persist must serialize their calls.
    """

    def __init__(self, repo_path: Path, ref_name: str) -> None:
        self.repo_path = repo_path
        self.ref_name = ref_name

    def read(self) -> str | None:
        """Return the object id the ref points at, or None if it does not exist.

        Raises:
            ReferenceResolutionError: If the ref exists but names a missing object.
        """
        oid = git.ref_target(self.repo_path, self.ref_name)
        if oid is None:
            return None
        if git.object_type(self.repo_path, oid) is None:
            raise ReferenceResolutionError(
                f"{self.ref_name} points at {oid}, which is not in the repository"
            )
        return oid

    def write(self, point: str) -> str:
        """Create the ref at *point*, or move it there if it already exists.

        Args:
            point: Object id or any revision the engine can resolve.

        Returns:
            The full object id the ref now points at.

        Raises:
            ReferenceResolutionError: If *point* does not name an object.
            CheckpointError: If git refuses to write the ref.
        """
        oid = git.rev_parse(self.repo_path, point)
        if oid is None:
            raise ReferenceResolutionError(f"Cannot resolve checkpoint target {point!r}")

        # a dangling ref may still be repointed
        if git.ref_target(self.repo_path, self.ref_name) is None:
            message = "creating seen-ref at latest fetched commit"
        else:
            message = "updating seen-ref head to latest fetched commit"

        try:
            git.update_ref(self.repo_path, self.ref_name, oid, message)
        except subprocess.CalledProcessError as e:
            raise CheckpointError(
                f"Failed to set {self.ref_name} to {oid[:12]}: {git.git_error_text(e)}"
            ) from e

        logger.info("Checkpoint %s -> %s", self.ref_name, oid[:12])
        return oid
