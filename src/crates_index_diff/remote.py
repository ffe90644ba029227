"""Synchronizes the local mirror with the index's remote."""

import logging
import subprocess
from pathlib import Path

from crates_index_diff import git
from crates_index_diff.errors import FetchError, ReferenceResolutionError

logger = logging.getLogger(__name__)


class RemoteSynchronizer:
    """Fetches a remote and reports the tip of its primary branch."""

    def __init__(
        self, repo_path: Path, remote_name: str, refspec: str, branch_ref: str
    ) -> None:
        self.repo_path = repo_path
        self.remote_name = remote_name
        self.refspec = refspec
        self.branch_ref = branch_ref

    def fetch(self) -> None:
        """Run a fetch against the remote.

        Raises:
            FetchError: If the remote is missing or the transfer fails.
        """
        logger.info("Fetching %s (%s)", self.remote_name, self.refspec)
        try:
            git.fetch(self.repo_path, self.remote_name, self.refspec)
        except subprocess.CalledProcessError as e:
            raise FetchError(
                f"Fetching remote '{self.remote_name}' failed: {git.git_error_text(e)}"
            ) from e

    def latest(self) -> str:
        """Return the commit id of the latest fetched state of the branch.

        Raises:
            ReferenceResolutionError: If the remote branch ref does not exist.
        """
        oid = git.rev_parse(self.repo_path, self.branch_ref)
        if oid is None:
            raise ReferenceResolutionError(f"Cannot resolve {self.branch_ref}")
        return oid

    def fetch_latest(self) -> str:
        """Fetch, then resolve the branch tip. The fetch always completes first."""
        self.fetch()
        oid = self.latest()
        logger.debug("Latest fetched %s: %s", self.branch_ref, oid[:12])
        return oid
