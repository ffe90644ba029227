"""crates-index-diff: report crate versions newly published to the crates.io index."""

from crates_index_diff.config import Config, load_config
from crates_index_diff.errors import (
    BootstrapError,
    CheckpointError,
    DiffComputationError,
    FetchError,
    IndexDiffError,
    ReferenceResolutionError,
    SnapshotResolutionError,
)
from crates_index_diff.index import Index
from crates_index_diff.models import Dependency, PackageVersion

__all__ = [
    "BootstrapError",
    "CheckpointError",
    "Config",
    "Dependency",
    "DiffComputationError",
    "FetchError",
    "Index",
    "IndexDiffError",
    "PackageVersion",
    "ReferenceResolutionError",
    "SnapshotResolutionError",
    "load_config",
]
