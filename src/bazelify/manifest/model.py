from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class Role(str, Enum):
    NORMAL = "normal"
    DEV = "dev"
    BUILD = "build"


class TargetKind(str, Enum):
    LIBRARY = "library"
    BINARY = "binary"
    TEST = "test"
    BENCH = "bench"
    BUILD_SCRIPT = "build_script"


def crate_ident(name: str) -> str:
    return name.replace("-", "_")


@dataclass(frozen=True)
class VersionEntry:
    """`name = "1.2"`"""

    requirement: str


@dataclass(frozen=True)
class TableEntry:
    """`name = { ... }`"""

    version: str | None = None
    path: str | None = None
    git: str | None = None
    git_ref: str | None = None
    features: tuple[str, ...] = ()
    package: str | None = None
    optional: bool = False
    default_features: bool = True
    proc_macro: bool = False


DependencyEntry = VersionEntry | TableEntry


@dataclass(frozen=True)
class Dependency:
    name: str
    role: Role
    version: str | None = None
    path: str | None = None
    git: str | None = None
    git_ref: str | None = None
    features: tuple[str, ...] = ()
    rename: str | None = None
    optional: bool = False
    proc_macro: bool = False

    @classmethod
    def from_entry(cls, key: str, role: Role, entry: DependencyEntry) -> "Dependency":
        if isinstance(entry, VersionEntry):
            return cls(name=key, role=role, version=entry.requirement)
        return cls(
            name=entry.package or key,
            role=role,
            version=entry.version,
            path=entry.path,
            git=entry.git,
            git_ref=entry.git_ref,
            features=entry.features,
            rename=key if entry.package else None,
            optional=entry.optional,
            proc_macro=entry.proc_macro,
        )

    @property
    def key(self) -> str:
        """Name the depending crate uses for this dependency."""
        return self.rename or self.name


@dataclass(frozen=True)
class TargetDecl:
    kind: TargetKind
    name: str
    path: str | None = None


@dataclass(frozen=True)
class PackageMetadata:
    """`[package.metadata.bazelify]`"""

    library: bool = True
    proc_macro: frozenset[str] = frozenset()
    targets: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class Manifest:
    name: str
    version: str
    edition: str
    targets: tuple[TargetDecl, ...]
    dependencies: tuple[Dependency, ...]
    features: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    lib_name: str | None = None
    lib_proc_macro: bool = False
    build_script: str | None = None
    metadata: PackageMetadata = PackageMetadata()

    @property
    def crate_name(self) -> str:
        return crate_ident(self.lib_name or self.name)

    @property
    def library(self) -> TargetDecl | None:
        for target in self.targets:
            if target.kind is TargetKind.LIBRARY:
                return target
        return None

    def deps_for(self, role: Role) -> tuple[Dependency, ...]:
        return tuple(dep for dep in self.dependencies if dep.role is role)

    def targets_of(self, kind: TargetKind) -> tuple[TargetDecl, ...]:
        return tuple(target for target in self.targets if target.kind is kind)
