from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass, field
from pathlib import Path, PureWindowsPath
from types import MappingProxyType
from typing import Callable, Mapping

from ..config.loader import TargetNaming
from ..errors import UnresolvedPathError
from ..manifest.model import Dependency, crate_ident
from ..registry.external import ExternalRegistry
from .classify import ClassifiedDependency, SourceKind

KnownPackage = Callable[[str], bool]


def _posix(path: str) -> str:
    return path.replace("\\", "/")


def _is_absolute(path: str) -> bool:
    return posixpath.isabs(path) or PureWindowsPath(path).is_absolute()


def relative_package_path(manifest_dir: str, dep_path: str) -> str:
    """Join a manifest-relative dependency path onto the manifest's repository-relative directory.

    Returns the repository-relative package path in posix form, `""` for the
    repository root. Raises `UnresolvedPathError` for absolute paths and for
    paths that climb above the root.
    """
    base = _posix(manifest_dir).strip("/") if manifest_dir not in ("", ".") else ""
    dep = _posix(dep_path)
    if _is_absolute(dep):
        raise UnresolvedPathError(f"absolute path `{dep_path}` cannot be expressed as a label")
    if base.startswith("../") or base == "..":
        raise UnresolvedPathError(f"manifest directory `{manifest_dir}` is outside the repository root")
    joined = posixpath.normpath(posixpath.join(base, dep) if base else dep)
    if joined == ".." or joined.startswith("../"):
        raise UnresolvedPathError(f"path `{dep_path}` escapes the repository root")
    return "" if joined == "." else joined


def path_label(manifest_dir: str, dep_path: str, target: str) -> str:
    return f"//{relative_package_path(manifest_dir, dep_path)}:{target}"


def package_target_name(package_path: str, crate_name: str, naming: TargetNaming) -> str:
    """Conventional library target name of the package living at `package_path`."""
    if naming == "directory":
        return posixpath.basename(package_path) or crate_ident(crate_name)
    return crate_ident(crate_name)


def filesystem_known_package(repo_root: Path) -> KnownPackage:
    def _known(package_path: str) -> bool:
        return (repo_root / package_path / "Cargo.toml").is_file()

    return _known


@dataclass(frozen=True)
class ResolvedDependency:
    classified: ClassifiedDependency
    label: str
    alias: str | None = None

    @property
    def macro(self) -> bool:
        return self.classified.macro


@dataclass(frozen=True)
class LabelResolver:
    registry: ExternalRegistry
    manifest_dir: str = ""
    target_naming: TargetNaming = "package"
    target_overrides: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    known_package: KnownPackage | None = None
    repo_root: Path | None = None

    def _dep_path(self, raw: str) -> tuple[str, str]:
        if self.repo_root is not None and _is_absolute(raw):
            rel = os.path.relpath(raw, self.repo_root)
            return "", rel
        return self.manifest_dir, raw

    def _resolve_path(self, dep: Dependency, raw_path: str) -> str:
        base, raw = self._dep_path(raw_path)
        try:
            package_path = relative_package_path(base, raw)
        except UnresolvedPathError as exc:
            exc.dependency = dep.key
            raise
        if self.known_package is not None and not self.known_package(package_path):
            raise UnresolvedPathError(f"no package found at `//{package_path}`", dependency=dep.key)
        target = self.target_overrides.get(dep.key) or package_target_name(package_path, dep.name, self.target_naming)
        return f"//{package_path}:{target}"

    def resolve(self, item: ClassifiedDependency) -> ResolvedDependency:
        dep = item.dependency
        if item.source is SourceKind.PATH and dep.path is not None:
            label = self._resolve_path(dep, dep.path)
        else:
            label = self.registry.lookup(dep.name)
        alias = None
        if dep.rename is not None and crate_ident(dep.rename) != crate_ident(dep.name):
            alias = crate_ident(dep.rename)
        return ResolvedDependency(classified=item, label=label, alias=alias)

    def resolve_all(self, items: tuple[ClassifiedDependency, ...]) -> tuple[ResolvedDependency, ...]:
        return tuple(self.resolve(item) for item in items)
