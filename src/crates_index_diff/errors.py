"""Exceptions raised by crates-index-diff."""


class IndexDiffError(Exception):
    """Base class for all errors surfaced to callers."""


class BootstrapError(IndexDiffError):
    """Raised when the local index mirror cannot be opened or cloned.

    Also raised when an existing mirror's remote URL does not match the
    configured one.
    """


class FetchError(IndexDiffError):
    """Raised when synchronizing with the remote fails."""


class ReferenceResolutionError(IndexDiffError):
    """Raised when a revision, ref or sentinel does not resolve to an object."""


class SnapshotResolutionError(IndexDiffError):
    """Raised when an object cannot be dereferenced as a tree."""


class DiffComputationError(IndexDiffError):
    """Raised when the tree diff or its patch rendering fails."""


class CheckpointError(IndexDiffError):
    """Raised when the last-seen reference cannot be written."""


class RecordParseError(IndexDiffError, ValueError):
    """Raised when a line is not a structurally valid index record."""
