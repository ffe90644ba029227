"""Data types shared across crates-index-diff."""

import json
from dataclasses import dataclass, field
from enum import Enum

from crates_index_diff.errors import RecordParseError


@dataclass
class Dependency:
    """A dependency entry of a published crate version."""

    name: str
    req: str
    features: list[str] = field(default_factory=list)
    optional: bool = False
    default_features: bool = True
    target: str | None = None
    kind: str | None = None
    package: str | None = None

    @classmethod
    def from_dict(cls, data: object) -> "Dependency":
        if not isinstance(data, dict):
            raise RecordParseError(f"dependency is not an object: {data!r}")
        name = data.get("name")
        req = data.get("req")
        if not isinstance(name, str) or not isinstance(req, str):
            raise RecordParseError("dependency requires string 'name' and 'req'")
        features = data.get("features") or []
        if not isinstance(features, list) or not all(
            isinstance(f, str) for f in features
        ):
            raise RecordParseError(f"dependency '{name}' has invalid features")
        return cls(
            name=name,
            req=req,
            features=features,
            optional=bool(data.get("optional", False)),
            default_features=bool(data.get("default_features", True)),
            target=data.get("target"),
            kind=data.get("kind"),
            package=data.get("package"),
        )

    def to_dict(self) -> dict:
        data = {
            "name": self.name,
            "req": self.req,
            "features": list(self.features),
            "optional": self.optional,
            "default_features": self.default_features,
            "target": self.target,
            "kind": self.kind,
        }
        if self.package is not None:
            data["package"] = self.package
        return data


@dataclass
class PackageVersion:
    """One published crate version, decoded from a single index line.

    Only ``name`` and ``vers`` are required; every other field of the
    crates.io index format falls back to a default. Unknown keys are ignored.
    """

    name: str
    version: str
    deps: list[Dependency] = field(default_factory=list)
    checksum: str = ""
    features: dict[str, list[str]] = field(default_factory=dict)
    yanked: bool = False
    links: str | None = None

    @classmethod
    def from_json(cls, raw: bytes | str) -> "PackageVersion":
        """Parse one line of index JSON.

        Args:
            raw: Line content, with or without the trailing newline.

        Returns:
            The decoded PackageVersion.

        Raises:
            RecordParseError: If the line is not JSON or not a record.
        """
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise RecordParseError(f"not valid JSON: {e}") from e
        except RecursionError as e:
            raise RecordParseError("JSON nested too deeply") from e
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: object) -> "PackageVersion":
        if not isinstance(data, dict):
            raise RecordParseError(f"record is not an object: {type(data).__name__}")

        name = data.get("name")
        vers = data.get("vers")
        if not isinstance(name, str) or not isinstance(vers, str):
            raise RecordParseError("record requires string 'name' and 'vers'")

        deps = data.get("deps") or []
        if not isinstance(deps, list):
            raise RecordParseError(f"'{name}' has a non-list 'deps'")

        features = data.get("features") or {}
        if not isinstance(features, dict):
            raise RecordParseError(f"'{name}' has a non-object 'features'")

        checksum = data.get("cksum", "")
        if not isinstance(checksum, str):
            raise RecordParseError(f"'{name}' has a non-string 'cksum'")

        yanked = data.get("yanked", False)
        if not isinstance(yanked, bool):
            raise RecordParseError(f"'{name}' has a non-boolean 'yanked'")

        return cls(
            name=name,
            version=vers,
            deps=[Dependency.from_dict(d) for d in deps],
            checksum=checksum,
            features=features,
            yanked=yanked,
            links=data.get("links"),
        )

    def to_dict(self) -> dict:
        """Render the record with the index's own key names."""
        return {
            "name": self.name,
            "vers": self.version,
            "deps": [d.to_dict() for d in self.deps],
            "cksum": self.checksum,
            "features": self.features,
            "yanked": self.yanked,
            "links": self.links,
        }


class DeltaStatus(Enum):
    """Change status of one path in a tree-to-tree diff."""

    ADDED = "A"
    COPIED = "C"
    DELETED = "D"
    MODIFIED = "M"
    RENAMED = "R"
    TYPECHANGE = "T"
    UNMERGED = "U"
    UNKNOWN = "X"

    @classmethod
    def from_letter(cls, letter: str) -> "DeltaStatus":
        # copy/rename letters carry a similarity score, e.g. "R100"
        try:
            return cls(letter[:1])
        except ValueError:
            return cls.UNKNOWN


# Only these can introduce a newly published line
ELIGIBLE_STATUSES = frozenset({DeltaStatus.ADDED, DeltaStatus.MODIFIED})


@dataclass(frozen=True)
class DeltaEntry:
    """A single path entry of a structural tree diff."""

    path: str
    status: DeltaStatus
    old_mode: str
    new_mode: str
    old_id: str
    new_id: str

    @property
    def is_eligible(self) -> bool:
        return self.status in ELIGIBLE_STATUSES


@dataclass(frozen=True)
class CommitLike:
    """A commit, diffed through the tree it points to."""

    oid: str
    tree_id: str


@dataclass(frozen=True)
class TreeLike:
    """Any non-commit object, diffed as if it were a tree.

    ``kind`` is what the engine reported; it is checked only when the object
    is dereferenced as a tree.
    """

    oid: str
    kind: str


SnapshotCandidate = CommitLike | TreeLike
