"""Configuration loading and validation for crates-index-diff."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".crates-index-diff"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.json"
DEFAULT_REPOSITORY_PATH = DEFAULT_CONFIG_DIR / "crates.io-index"

INDEX_GIT_URL = "https://github.com/rust-lang/crates.io-index"
LAST_SEEN_REFNAME = "refs/heads/crates-index-diff_last-seen"
# git's well-known id of the tree with no entries
EMPTY_TREE_HASH = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
DEFAULT_REMOTE_NAME = "origin"
DEFAULT_BRANCH = "master"


@dataclass
class Config:
    """Application configuration."""

    repository_path: Path = field(default_factory=lambda: DEFAULT_REPOSITORY_PATH)
    repository_url: str = INDEX_GIT_URL
    remote_name: str = DEFAULT_REMOTE_NAME
    branch: str = DEFAULT_BRANCH
    seen_ref_name: str = LAST_SEEN_REFNAME
    empty_tree_hash: str = EMPTY_TREE_HASH

    @property
    def remote_branch_ref(self) -> str:
        """Ref holding the latest fetched state of the remote's primary branch."""
        return f"refs/remotes/{self.remote_name}/{self.branch}"

    @property
    def fetch_refspec(self) -> str:
        """Refspec mirroring all remote branches under refs/remotes/<remote>/."""
        return f"refs/heads/*:refs/remotes/{self.remote_name}/*"


def _expand_path(p: str | Path) -> Path:
    """Expand ~ in a path."""
    return Path(p).expanduser()


def load_config(path: Path | None = None) -> Config:
    """Load configuration from a JSON file, falling back to defaults.

    Args:
        path: Path to config file. Defaults to ~/.crates-index-diff/config.json.

    Returns:
        Loaded Config instance with the repository path expanded.
    """
    config_path = path or DEFAULT_CONFIG_PATH

    if config_path.exists():
        logger.info("Loading config from %s", config_path)
        with open(config_path) as f:
            data = json.load(f)
    else:
        logger.info("No config file found at %s, using defaults", config_path)
        data = {}

    return Config(
        repository_path=_expand_path(
            data.get("repository_path", str(DEFAULT_REPOSITORY_PATH))
        ),
        repository_url=data.get("repository_url", INDEX_GIT_URL),
        remote_name=data.get("remote_name", DEFAULT_REMOTE_NAME),
        branch=data.get("branch", DEFAULT_BRANCH),
        seen_ref_name=data.get("seen_ref_name", LAST_SEEN_REFNAME),
        empty_tree_hash=data.get("empty_tree_hash", EMPTY_TREE_HASH),
    )


def save_config(config: Config, path: Path | None = None) -> None:
    """Save configuration to a JSON file, preserving unknown keys.

    Args:
        config: The Config instance to persist.
        path: Path to config file. Defaults to ~/.crates-index-diff/config.json.
    """
    config_path = path or DEFAULT_CONFIG_PATH

    existing: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            existing = json.load(f)

    existing["repository_path"] = str(config.repository_path)
    existing["repository_url"] = config.repository_url
    existing["remote_name"] = config.remote_name
    existing["branch"] = config.branch
    existing["seen_ref_name"] = config.seen_ref_name
    existing["empty_tree_hash"] = config.empty_tree_hash

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        json.dump(existing, f, indent=2)
        f.write("\n")

    logger.info("Saved config to %s", config_path)
