"""Cargo manifest reader.

Turns `Cargo.toml` text into an immutable `Manifest`. Keys that do not affect
the generated build graph are ignored; keys that do, but cannot be translated,
are rejected so that no dependency is silently dropped.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from types import MappingProxyType
from typing import Any

from ..errors import ManifestParseError, ManifestSchemaError
from .model import (
    Dependency,
    DependencyEntry,
    Manifest,
    PackageMetadata,
    Role,
    TableEntry,
    TargetDecl,
    TargetKind,
    VersionEntry,
)

ROLE_TABLES: tuple[tuple[str, Role], ...] = (
    ("dependencies", Role.NORMAL),
    ("dev-dependencies", Role.DEV),
    ("build-dependencies", Role.BUILD),
)
TARGET_ARRAYS: tuple[tuple[str, TargetKind], ...] = (
    ("bin", TargetKind.BINARY),
    ("test", TargetKind.TEST),
    ("bench", TargetKind.BENCH),
)
UNSUPPORTED_DEP_KEYS = ("workspace", "registry", "registry-index")
GIT_REF_KEYS = ("branch", "tag", "rev")


def _schema_error(message: str, field: str, source: str, dependency: str | None = None) -> ManifestSchemaError:
    return ManifestSchemaError(message, manifest=source, dependency=dependency, field=field)


def _table(data: dict[str, Any], key: str, field: str, source: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise _schema_error("expected a table", field, source)
    return value


def _opt_str(data: dict[str, Any], key: str, field: str, source: str, dependency: str | None = None) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise _schema_error("expected a string", field, source, dependency)
    return value


def _opt_bool(data: dict[str, Any], keys: tuple[str, ...], field: str, source: str, default: bool, dependency: str | None = None) -> bool:
    for key in keys:
        if key in data:
            value = data[key]
            if not isinstance(value, bool):
                raise _schema_error("expected a boolean", f"{field}.{key}", source, dependency)
            return value
    return default


def _str_list(value: Any, field: str, source: str, dependency: str | None = None) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise _schema_error("expected a list of strings", field, source, dependency)
    return tuple(value)


def _parse_entry(key: str, raw: Any, field: str, source: str) -> DependencyEntry:
    if isinstance(raw, str):
        return VersionEntry(requirement=raw)
    if not isinstance(raw, dict):
        raise _schema_error("dependency must be a version string or a table", field, source, key)
    for unsupported in UNSUPPORTED_DEP_KEYS:
        if unsupported in raw:
            raise _schema_error(f"unsupported dependency source `{unsupported}`", f"{field}.{unsupported}", source, key)
    refs = [ref for ref in GIT_REF_KEYS if ref in raw]
    if len(refs) > 1:
        raise _schema_error(f"only one of {', '.join(GIT_REF_KEYS)} may be given", field, source, key)
    git_ref = _opt_str(raw, refs[0], f"{field}.{refs[0]}", source, key) if refs else None
    entry = TableEntry(
        version=_opt_str(raw, "version", f"{field}.version", source, key),
        path=_opt_str(raw, "path", f"{field}.path", source, key),
        git=_opt_str(raw, "git", f"{field}.git", source, key),
        git_ref=git_ref,
        features=_str_list(raw.get("features", []), f"{field}.features", source, key),
        package=_opt_str(raw, "package", f"{field}.package", source, key),
        optional=_opt_bool(raw, ("optional",), field, source, False, key),
        default_features=_opt_bool(raw, ("default-features", "default_features"), field, source, True, key),
        proc_macro=_opt_bool(raw, ("proc-macro", "proc_macro"), field, source, False, key),
    )
    if entry.version is None and entry.path is None and entry.git is None:
        raise _schema_error("dependency declares no version, path or git source", field, source, key)
    if git_ref is not None and entry.git is None:
        raise _schema_error(f"`{refs[0]}` requires `git`", field, source, key)
    return entry


def _parse_dependencies(data: dict[str, Any], source: str) -> tuple[Dependency, ...]:
    deps: list[Dependency] = []
    for table_name, role in ROLE_TABLES:
        table = _table(data, table_name, table_name, source)
        for key, raw in table.items():
            entry = _parse_entry(key, raw, f"{table_name}.{key}", source)
            deps.append(Dependency.from_entry(key, role, entry))
    for cfg, body in _table(data, "target", "target", source).items():
        if isinstance(body, dict) and any(name in body for name, _ in ROLE_TABLES):
            raise _schema_error("platform-specific dependency tables are not supported", f"target.{cfg}", source)
    return tuple(deps)


def _parse_targets(data: dict[str, Any], package: dict[str, Any], metadata: PackageMetadata, source: str) -> tuple[TargetDecl, ...]:
    targets: list[TargetDecl] = []
    lib = _table(data, "lib", "lib", source)
    autolib = _opt_bool(package, ("autolib",), "package", source, True)
    if metadata.library and ("lib" in data or autolib):
        targets.append(
            TargetDecl(
                kind=TargetKind.LIBRARY,
                name=_opt_str(lib, "name", "lib.name", source) or str(package["name"]),
                path=_opt_str(lib, "path", "lib.path", source),
            )
        )
    for array_name, kind in TARGET_ARRAYS:
        raw = data.get(array_name, [])
        if not isinstance(raw, list):
            raise _schema_error("expected an array of tables", array_name, source)
        for idx, item in enumerate(raw):
            field = f"{array_name}[{idx}]"
            if not isinstance(item, dict):
                raise _schema_error("expected a table", field, source)
            name = _opt_str(item, "name", f"{field}.name", source)
            if not name:
                raise _schema_error("target name is required", f"{field}.name", source)
            targets.append(TargetDecl(kind=kind, name=name, path=_opt_str(item, "path", f"{field}.path", source)))
    return tuple(targets)


def _parse_features(data: dict[str, Any], source: str) -> dict[str, tuple[str, ...]]:
    features = _table(data, "features", "features", source)
    return {name: _str_list(value, f"features.{name}", source) for name, value in features.items()}


def _parse_metadata(package: dict[str, Any], source: str) -> PackageMetadata:
    meta = _table(package, "metadata", "package.metadata", source)
    raw = _table(meta, "bazelify", "package.metadata.bazelify", source)
    field = "package.metadata.bazelify"
    targets = _table(raw, "targets", f"{field}.targets", source)
    for name, value in targets.items():
        if not isinstance(value, str) or not value:
            raise _schema_error("expected a target name", f"{field}.targets.{name}", source)
    return PackageMetadata(
        library=_opt_bool(raw, ("library",), field, source, True),
        proc_macro=frozenset(_str_list(raw.get("proc_macro", []), f"{field}.proc_macro", source)),
        targets=MappingProxyType(dict(targets)),
    )


def _build_script(package: dict[str, Any], source: str) -> str | None:
    value = package.get("build")
    if value is None or value is False:
        return None
    if value is True:
        return "build.rs"
    if not isinstance(value, str):
        raise _schema_error("expected a path or boolean", "package.build", source)
    return value


def parse_manifest(text: str, source: str = "Cargo.toml") -> Manifest:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ManifestParseError(f"invalid toml: {exc}", manifest=source) from exc
    if "package" not in data:
        raise _schema_error("missing [package] table", "package", source)
    package = _table(data, "package", "package", source)
    name = package.get("name")
    if not isinstance(name, str) or not name:
        raise _schema_error("package name is required", "package.name", source)
    metadata = _parse_metadata(package, source)
    lib = _table(data, "lib", "lib", source)
    return Manifest(
        name=name,
        version=_opt_str(package, "version", "package.version", source) or "0.0.0",
        edition=_opt_str(package, "edition", "package.edition", source) or "2015",
        targets=_parse_targets(data, package, metadata, source),
        dependencies=_parse_dependencies(data, source),
        features=MappingProxyType(_parse_features(data, source)),
        lib_name=_opt_str(lib, "name", "lib.name", source),
        lib_proc_macro=_opt_bool(lib, ("proc-macro", "proc_macro"), "lib", source, False),
        build_script=_build_script(package, source),
        metadata=metadata,
    )


def read_manifest_text(path: Path, source: str | None = None) -> str:
    """Read a manifest as text; any failure is a parse error naming `source`."""
    manifest = source or str(path)
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestParseError("manifest not found", manifest=manifest) from exc
    except UnicodeDecodeError as exc:
        raise ManifestParseError(f"manifest is not valid utf-8: {exc}", manifest=manifest) from exc
    except OSError as exc:
        raise ManifestParseError(f"unable to read manifest: {exc}", manifest=manifest) from exc


def read_manifest(path: Path) -> Manifest:
    return parse_manifest(read_manifest_text(path), str(path))
