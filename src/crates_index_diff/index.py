"""The crates.io index repository and the changes published to it.

Typical use is a polling loop::

    index = Index.from_path_or_cloned(config=load_config())
    for version in index.fetch_changes():
        ...

Each ``fetch_changes()`` reports the versions published since the previous
call and moves the last-seen reference forward. The reference is a plain git
ref without any locking, so persisting calls against the same repository
must be serialized by the caller; two overlapping calls can both start from
the same checkpoint and report the same versions twice.
"""

import logging
import subprocess
from pathlib import Path

from crates_index_diff import git
from crates_index_diff.checkpoint import CheckpointStore
from crates_index_diff.config import Config
from crates_index_diff.errors import BootstrapError, ReferenceResolutionError
from crates_index_diff.extractor import added_records
from crates_index_diff.models import PackageVersion, SnapshotCandidate
from crates_index_diff.remote import RemoteSynchronizer
from crates_index_diff.snapshot import find_object, resolve_tree

logger = logging.getLogger(__name__)


def _is_repository_root(path: Path) -> bool:
    """True if *path* is itself a repository or the work tree of one.

    Enclosing repositories in parent directories do not count.
    """
    git_dir = git.absolute_git_dir(path)
    if git_dir is None:
        return False
    root = path.resolve()
    return git_dir.resolve() in (root, root / ".git")


class Index:
    """A local mirror of the crates.io index."""

    def __init__(self, repository_path: Path, config: Config | None = None) -> None:
        """Wrap an existing repository without checking its remote.

        Args:
            repository_path: Path to a bare or non-bare clone of the index.
            config: Remote, branch and ref names. Defaults to Config().
        """
        self.repository_path = repository_path.resolve()
        self.config = config or Config(repository_path=self.repository_path)
        self.seen_ref_name = self.config.seen_ref_name
        self._checkpoint = CheckpointStore(self.repository_path, self.seen_ref_name)
        self._remote = RemoteSynchronizer(
            self.repository_path,
            self.config.remote_name,
            self.config.fetch_refspec,
            self.config.remote_branch_ref,
        )

    @classmethod
    def from_path_or_cloned(
        cls, path: Path | None = None, config: Config | None = None
    ) -> "Index":
        """Open the index repository at *path*, cloning it first if needed.

        If there is no repository at *path*, the configured URL is cloned
        there as a bare repository with complete history.

        Args:
            path: Repository location. Defaults to config.repository_path.
            config: Application configuration. Defaults to Config().

        Returns:
            An Index over the opened or freshly cloned repository.

        Raises:
            BootstrapError: If cloning fails, or if the repository exists and
                its remote URL is missing or differs from the configured URL.
        """
        config = config or Config()
        repo_path = (path or config.repository_path).expanduser()

        if _is_repository_root(repo_path):
            actual_url = git.remote_url(repo_path, config.remote_name)
            if actual_url is None:
                raise BootstrapError(
                    f"Did not obtain URL of remote named '{config.remote_name}' "
                    f"in {repo_path}"
                )
            if actual_url != config.repository_url:
                raise BootstrapError(
                    f"Actual '{config.remote_name}' remote url {actual_url!r} did not "
                    f"match desired one at {config.repository_url!r}"
                )
            logger.info("Opened index repository at %s", repo_path)
        else:
            logger.info("Cloning %s into %s", config.repository_url, repo_path)
            try:
                git.clone_bare(config.repository_url, repo_path)
            except (subprocess.CalledProcessError, OSError) as e:
                detail = (
                    git.git_error_text(e)
                    if isinstance(e, subprocess.CalledProcessError)
                    else str(e)
                )
                raise BootstrapError(
                    f"Failed to clone {config.repository_url} into {repo_path}: {detail}"
                ) from e

        return cls(repo_path, config)

    def last_seen_reference(self) -> str | None:
        """Return the commit id recorded by the last persisting call, if any.

        Raises:
            ReferenceResolutionError: If the reference names a missing object.
        """
        return self._checkpoint.read()

    def set_last_seen_reference(self, point: str) -> str:
        """Point the last-seen reference at *point*, creating it if necessary.

        Returns:
            The full object id the reference now points at.
        """
        return self._checkpoint.write(point)

    def find_object(self, rev: str) -> SnapshotCandidate:
        """Resolve a revision to a commit or tree that can be diffed."""
        return find_object(self.repository_path, rev)

    def peek_changes(
        self, from_rev: str | None = None, to_rev: str | None = None
    ) -> tuple[list[PackageVersion], str]:
        """Return the versions published since the last-seen reference.

        Without ``to_rev`` the remote is fetched and the tip of its primary
        branch is used. The last-seen reference is neither created nor moved;
        pointing it at the returned commit id afterwards has the same effect
        as calling fetch_changes().

        Args:
            from_rev: Start point. Defaults to the last-seen reference, or the
                empty tree if there is none.
            to_rev: End point. Defaults to the latest fetched remote state.

        Returns:
            The added versions and the id of the object they lead up to.

        Raises:
            FetchError: If fetching the remote fails.
            ReferenceResolutionError: If a start or end point cannot be resolved,
                including a last-seen reference whose commit is gone.
        """
        from_obj = self._resolve_from(from_rev)

        if to_rev is None:
            to_oid = self._remote.fetch_latest()
        else:
            to_oid = self.find_object(to_rev).oid

        changes = self.changes_from_objects(from_obj, self.find_object(to_oid))
        return changes, to_oid

    def fetch_changes(
        self, from_rev: str | None = None, to_rev: str | None = None
    ) -> list[PackageVersion]:
        """Like peek_changes(), then move the last-seen reference to the end point.

        Consecutive calls report non-overlapping batches as long as no other
        caller persists against the same repository at the same time.
        """
        changes, to_oid = self.peek_changes(from_rev, to_rev)
        self.set_last_seen_reference(to_oid)
        return changes

    def changes(self, from_rev: str, to_rev: str) -> list[PackageVersion]:
        """Return the versions added between two revisions.

        Both revisions may name commits or trees, in any syntax git accepts.
        """
        return self.changes_from_objects(
            self.find_object(from_rev), self.find_object(to_rev)
        )

    def changes_from_objects(
        self, from_obj: SnapshotCandidate, to_obj: SnapshotCandidate
    ) -> list[PackageVersion]:
        """Return the versions added between two already resolved objects."""
        return added_records(
            self.repository_path, resolve_tree(from_obj), resolve_tree(to_obj)
        )

    def _resolve_from(self, from_rev: str | None) -> SnapshotCandidate:
        if from_rev is not None:
            return self.find_object(from_rev)

        seen = self.last_seen_reference()
        if seen is not None:
            logger.debug("Starting from last-seen %s", seen[:12])
            return self.find_object(seen)

        logger.debug("No %s yet, starting from the empty tree", self.seen_ref_name)
        return self._empty_tree()

    def _empty_tree(self) -> SnapshotCandidate:
        sentinel = self.config.empty_tree_hash
        if git.object_type(self.repository_path, sentinel) is None:
            logger.warning("Empty tree %s missing, writing it", sentinel[:12])
            try:
                written = git.write_empty_tree(self.repository_path)
            except subprocess.CalledProcessError as e:
                raise ReferenceResolutionError(
                    f"Cannot create empty tree: {git.git_error_text(e)}"
                ) from e
            if written != sentinel:
                raise ReferenceResolutionError(
                    f"Empty tree is {written}, expected {sentinel}"
                )
        return self.find_object(sentinel)
