"""Data models for dependency edges, manifests and resolution results."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from constants import Constants, DependencyKinds


@dataclass(frozen=True)
class DependencySpec:
    """Raw edge from a manifest, before normalization."""
    name: str
    version_range: str


@dataclass(frozen=True)
class ResolvedVersion:
    """A concrete package version produced by the resolver."""
    name: str
    version: str
    is_latest: bool

    @property
    def key(self) -> "PackageKey":
        return (self.name, self.version)


@dataclass(frozen=True)
class Manifest:
    """Package metadata: identity plus its own dependency maps.

    The root manifest of a fetch run (a package.json or a synthesized
    request list) has no name or version.
    """
    name: Optional[str] = None
    version: Optional[str] = None
    is_latest: bool = False
    dependencies: Mapping[str, str] = field(default_factory=dict)
    dev_dependencies: Mapping[str, str] = field(default_factory=dict)
    peer_dependencies: Mapping[str, str] = field(default_factory=dict)
    optional_dependencies: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any], is_latest: bool = False) -> "Manifest":
        """Build from a registry version document or a package.json mapping."""
        return cls(
            name=doc.get("name"),
            version=doc.get("version"),
            is_latest=is_latest,
            dependencies=_string_map(doc.get(DependencyKinds.DEPENDENCIES.value)),
            dev_dependencies=_string_map(doc.get(DependencyKinds.DEV.value)),
            peer_dependencies=_string_map(doc.get(DependencyKinds.PEER.value)),
            optional_dependencies=_string_map(doc.get(DependencyKinds.OPTIONAL.value)),
        )


def _string_map(value: Any) -> Dict[str, str]:
    # Registry documents occasionally carry null or list-shaped maps
    if not isinstance(value, Mapping):
        return {}
    return {str(k): str(v) if v is not None else Constants.LATEST_TAG for k, v in value.items()}


@dataclass(frozen=True)
class ResolutionContext:
    """Per-call resolver settings, passed by value down the recursion."""
    include_dev: bool = False
    include_peer: bool = False
    include_optional: bool = False
    depth: int = 0

    def descend(self) -> "ResolutionContext":
        """Context for the next recursion level."""
        return ResolutionContext(
            include_dev=self.include_dev,
            include_peer=self.include_peer,
            include_optional=self.include_optional,
            depth=self.depth + 1,
        )


# Type alias for stable memo keys.
PackageKey = Tuple[str, str]
