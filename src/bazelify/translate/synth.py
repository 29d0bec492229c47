from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from ..config.loader import TargetNaming
from ..manifest.model import Manifest, Role, TargetDecl, TargetKind, crate_ident
from .labels import ResolvedDependency

BUILD_SCRIPT_TARGET = "build_script"

RULES: dict[TargetKind, str] = {
    TargetKind.LIBRARY: "rust_library",
    TargetKind.BINARY: "rust_binary",
    TargetKind.TEST: "rust_test",
    TargetKind.BENCH: "rust_binary",
    TargetKind.BUILD_SCRIPT: "cargo_build_script",
}
NAME_SUFFIX: dict[TargetKind, str] = {
    TargetKind.BINARY: "_bin",
    TargetKind.TEST: "_test",
    TargetKind.BENCH: "_bench",
}


@dataclass(frozen=True)
class TargetContext:
    kind: TargetKind
    rule: str
    name: str
    edition: str
    srcs: tuple[str, ...]
    srcs_glob: bool = True
    crate_name: str | None = None
    crate_root: str | None = None
    crate: str | None = None
    testonly: bool = False
    deps: tuple[str, ...] = ()
    proc_macro_deps: tuple[str, ...] = ()
    aliases: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))  # label -> rename
    crate_features: tuple[str, ...] = ()


class _DepSets:
    """Order-preserving, de-duplicated label lists for one target.

    A label flagged as a macro by any role lives in the macro list only.
    Aliases are keyed by label; the first rename of a label is kept.
    """

    def __init__(self) -> None:
        self.deps: list[str] = []
        self.macro: list[str] = []
        self.aliases: dict[str, str] = {}

    def add_label(self, label: str, macro: bool = False) -> None:
        if label in self.macro:
            return
        if macro:
            if label in self.deps:
                self.deps.remove(label)
            self.macro.append(label)
        elif label not in self.deps:
            self.deps.append(label)

    def add(self, items: Iterable[ResolvedDependency]) -> None:
        for item in items:
            self.add_label(item.label, item.macro)
            if item.alias is not None:
                self.aliases.setdefault(item.label, item.alias)

    def freeze(self) -> dict[str, object]:
        return {
            "deps": tuple(self.deps),
            "proc_macro_deps": tuple(self.macro),
            "aliases": MappingProxyType(dict(self.aliases)),
        }


def default_entry(kind: TargetKind, name: str, package_name: str) -> str:
    if kind is TargetKind.LIBRARY:
        return "src/lib.rs"
    if kind is TargetKind.BINARY:
        return "src/main.rs" if name == package_name else f"src/bin/{name}.rs"
    if kind is TargetKind.TEST:
        return f"tests/{name}.rs"
    return f"benches/{name}.rs"


def _glob_for(entry: str) -> str:
    parent = posixpath.dirname(entry)
    return f"{parent}/**" if parent else entry


def _srcs(entry: str) -> tuple[str, ...]:
    if entry.startswith("src/"):
        return ("src/**",)
    return (_glob_for(entry), "src/**")


def library_target_name(manifest: Manifest, manifest_dir: str, naming: TargetNaming) -> str:
    if naming == "directory" and manifest_dir not in ("", "."):
        return posixpath.basename(manifest_dir.rstrip("/"))
    return manifest.crate_name


def _unique_name(name: str, kind: TargetKind, taken: set[str]) -> str:
    candidate = name
    if candidate in taken:
        candidate = f"{name}{NAME_SUFFIX.get(kind, '_' + kind.value)}"
    idx = 2
    base = candidate
    while candidate in taken:
        candidate = f"{base}_{idx}"
        idx += 1
    taken.add(candidate)
    return candidate


def _by_role(resolved: tuple[ResolvedDependency, ...], role: Role) -> list[ResolvedDependency]:
    return [item for item in resolved if item.classified.role is role]


def synthesize(
    manifest: Manifest,
    resolved: tuple[ResolvedDependency, ...],
    manifest_dir: str = "",
    naming: TargetNaming = "package",
    features: tuple[str, ...] = (),
    crate_tests: bool = False,
) -> tuple[TargetContext, ...]:
    """Build one render-ready context per emitted target, in output order.

    The library sees normal dependencies only. Binaries add the library
    itself. Tests and benches add development dependencies. Build-role
    dependencies feed the build script alone.
    """
    normal = _by_role(resolved, Role.NORMAL)
    dev = _by_role(resolved, Role.DEV)
    build = _by_role(resolved, Role.BUILD)
    taken: set[str] = set()
    contexts: list[TargetContext] = []
    common = {"edition": manifest.edition, "crate_features": features}

    has_build_script = manifest.build_script is not None or bool(build)
    build_label = f":{BUILD_SCRIPT_TARGET}" if has_build_script else None
    if has_build_script:
        taken.add(BUILD_SCRIPT_TARGET)
        sets = _DepSets()
        sets.add(build)
        contexts.append(
            TargetContext(
                kind=TargetKind.BUILD_SCRIPT,
                rule=RULES[TargetKind.BUILD_SCRIPT],
                name=BUILD_SCRIPT_TARGET,
                srcs=(manifest.build_script or "build.rs",),
                srcs_glob=False,
                **common,
                **sets.freeze(),
            )
        )

    lib_decl = manifest.library
    lib_label: str | None = None
    if lib_decl is not None:
        lib_name = _unique_name(library_target_name(manifest, manifest_dir, naming), TargetKind.LIBRARY, taken)
        lib_label = f":{lib_name}"
        sets = _DepSets()
        sets.add(normal)
        if build_label:
            sets.add_label(build_label)
        entry = lib_decl.path or "src/lib.rs"
        crate_root = entry if entry != "src/lib.rs" else None
        contexts.append(
            TargetContext(
                kind=TargetKind.LIBRARY,
                rule="rust_proc_macro" if manifest.lib_proc_macro else RULES[TargetKind.LIBRARY],
                name=lib_name,
                srcs=_srcs(entry),
                crate_name=manifest.crate_name,
                crate_root=crate_root,
                **common,
                **sets.freeze(),
            )
        )
        if crate_tests:
            sets = _DepSets()
            sets.add(dev)
            contexts.append(
                TargetContext(
                    kind=TargetKind.TEST,
                    rule=RULES[TargetKind.TEST],
                    name=_unique_name(f"{lib_name}_test", TargetKind.TEST, taken),
                    srcs=(),
                    crate=lib_label,
                    **common,
                    **sets.freeze(),
                )
            )

    for decl in manifest.targets:
        if decl.kind is TargetKind.LIBRARY:
            continue
        contexts.append(_explicit_target(manifest, decl, normal, dev, lib_label, build_label, taken, common))
    return tuple(contexts)


def _explicit_target(
    manifest: Manifest,
    decl: TargetDecl,
    normal: list[ResolvedDependency],
    dev: list[ResolvedDependency],
    lib_label: str | None,
    build_label: str | None,
    taken: set[str],
    common: dict[str, object],
) -> TargetContext:
    sets = _DepSets()
    if lib_label is not None:
        sets.add_label(lib_label, macro=manifest.lib_proc_macro)
    sets.add(normal)
    if decl.kind in (TargetKind.TEST, TargetKind.BENCH):
        sets.add(dev)
    if build_label:
        sets.add_label(build_label)
    entry = decl.path or default_entry(decl.kind, decl.name, manifest.name)
    if decl.kind is TargetKind.BINARY:
        srcs = _srcs(entry)
        crate_root = entry if entry != "src/main.rs" else None
    else:
        srcs = (_glob_for(entry),)
        crate_root = entry
    return TargetContext(
        kind=decl.kind,
        rule=RULES[decl.kind],
        name=_unique_name(decl.name, decl.kind, taken),
        srcs=srcs,
        crate_name=crate_ident(decl.name),
        crate_root=crate_root,
        testonly=decl.kind is TargetKind.BENCH,
        **common,
        **sets.freeze(),
    )
