from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable

from ..config.loader import PathPrecedence
from ..errors import AmbiguousDependencySourceError, ManifestSchemaError
from ..manifest.model import Dependency, Manifest, PackageMetadata, Role
from ..registry.external import ExternalRegistry

MacroPredicate = Callable[[Dependency], bool]


class SourceKind(str, Enum):
    REGISTRY = "external-registry"
    PATH = "local-path"
    VCS = "vcs-hosted"


@dataclass(frozen=True)
class ClassifiedDependency:
    dependency: Dependency
    source: SourceKind
    macro: bool

    @property
    def role(self) -> Role:
        return self.dependency.role


def default_macro_predicate(registry: ExternalRegistry, metadata: PackageMetadata) -> MacroPredicate:
    """Macro signal: the dependency's own flag, the package metadata list, or the registry list.

    Registry flags only apply to crates that resolve by name.
    """

    def _is_macro(dep: Dependency) -> bool:
        if dep.proc_macro:
            return True
        if dep.key in metadata.proc_macro or dep.name in metadata.proc_macro:
            return True
        return dep.path is None and registry.is_proc_macro(dep.name)

    return _is_macro


def source_kind(dep: Dependency, precedence: PathPrecedence = "path") -> SourceKind:
    if dep.path is not None and dep.git is not None:
        raise AmbiguousDependencySourceError("both `path` and `git` are declared", dependency=dep.key)
    if dep.path is not None:
        if dep.version is None or precedence == "path":
            return SourceKind.PATH
        if precedence == "registry":
            return SourceKind.REGISTRY
        raise AmbiguousDependencySourceError(
            "both `path` and `version` are declared and path precedence is disabled", dependency=dep.key
        )
    if dep.git is not None:
        return SourceKind.VCS
    return SourceKind.REGISTRY


def active_features(manifest: Manifest, requested: Iterable[str] = (), default: bool = True) -> tuple[str, ...]:
    """Expand requested features through `[features]`, keeping first-seen order."""
    optional = {dep.key for dep in manifest.dependencies if dep.optional}
    pending = list(requested)
    for name in pending:
        if name not in manifest.features and name not in optional:
            raise ManifestSchemaError(f"unknown feature `{name}`", field="features")
    if default and "default" in manifest.features:
        pending.insert(0, "default")
    seen: list[str] = []
    while pending:
        item = pending.pop(0)
        if item in seen:
            continue
        seen.append(item)
        pending.extend(manifest.features.get(item, ()))
    return tuple(seen)


def enabled_optional(manifest: Manifest, features: Iterable[str]) -> frozenset[str]:
    optional = {dep.key for dep in manifest.dependencies if dep.optional}
    enabled: set[str] = set()
    for item in features:
        if item.startswith("dep:"):
            enabled.add(item[4:])
        elif "/" in item:
            head = item.split("/", 1)[0]
            if not head.endswith("?"):
                enabled.add(head)
        elif item in optional:
            enabled.add(item)
    return frozenset(enabled & optional)


def crate_features(manifest: Manifest, features: Iterable[str]) -> tuple[str, ...]:
    optional = {dep.key for dep in manifest.dependencies if dep.optional}
    return tuple(sorted({f for f in features if f in manifest.features or f in optional}))


def classify(
    manifest: Manifest,
    is_macro: MacroPredicate,
    precedence: PathPrecedence = "path",
    features: Iterable[str] = (),
) -> tuple[ClassifiedDependency, ...]:
    """Tag every active dependency with its source kind and macro flag.

    Roles are handled independently: a crate listed under both `dependencies`
    and `dev-dependencies` yields two records.
    """
    enabled = enabled_optional(manifest, features)
    out: list[ClassifiedDependency] = []
    for dep in manifest.dependencies:
        if dep.optional and dep.key not in enabled:
            continue
        out.append(ClassifiedDependency(dependency=dep, source=source_kind(dep, precedence), macro=is_macro(dep)))
    return tuple(out)
