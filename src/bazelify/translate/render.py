from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterable

from ..manifest.model import TargetKind
from .synth import TargetContext

CARGO_BUILD_SCRIPT_LOAD = "@rules_rust//cargo:cargo_build_script.bzl"
INDENT = "    "


@dataclass(frozen=True)
class RenderOptions:
    rules_load: str = "@rules_rust//rust:defs.bzl"
    visibility: tuple[str, ...] = ("//visibility:public",)
    sources_filegroup: bool = True
    manifest_name: str = "Cargo.toml"


def quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _list_lines(attr: str, items: Iterable[str], indent: str = INDENT) -> list[str]:
    values = list(items)
    if not values:
        return [f"{indent}{attr} = [],"]
    lines = [f"{indent}{attr} = ["]
    lines.extend(f"{indent}{INDENT}{quote(v)}," for v in values)
    lines.append(f"{indent}],")
    return lines


def _srcs_lines(ctx: TargetContext) -> list[str]:
    if not ctx.srcs:
        return []
    if not ctx.srcs_glob:
        if len(ctx.srcs) == 1:
            return [f"{INDENT}srcs = [{quote(ctx.srcs[0])}],"]
        return _list_lines("srcs", ctx.srcs)
    if len(ctx.srcs) == 1:
        return [f"{INDENT}srcs = glob([{quote(ctx.srcs[0])}]),"]
    lines = [f"{INDENT}srcs = glob(["]
    lines.extend(f"{INDENT}{INDENT}{quote(v)}," for v in ctx.srcs)
    lines.append(f"{INDENT}]),")
    return lines


def _aliases_lines(ctx: TargetContext) -> list[str]:
    if not ctx.aliases:
        return []
    lines = [f"{INDENT}aliases = {{"]
    for label, alias in ctx.aliases.items():
        lines.append(f"{INDENT}{INDENT}{quote(label)}: {quote(alias)},")
    lines.append(f"{INDENT}}},")
    return lines


def render_target(ctx: TargetContext) -> str:
    """Render one target call. Identical contexts always give identical text."""
    lines = [f"{ctx.rule}(", f"{INDENT}name = {quote(ctx.name)},"]
    lines.extend(_srcs_lines(ctx))
    lines.extend(_aliases_lines(ctx))
    if ctx.crate_features:
        lines.extend(_list_lines("crate_features", ctx.crate_features))
    if ctx.crate_name is not None:
        lines.append(f"{INDENT}crate_name = {quote(ctx.crate_name)},")
    if ctx.crate_root is not None:
        lines.append(f"{INDENT}crate_root = {quote(ctx.crate_root)},")
    if ctx.crate is not None:
        lines.append(f"{INDENT}crate = {quote(ctx.crate)},")
    lines.append(f"{INDENT}edition = {quote(ctx.edition)},")
    if ctx.testonly:
        lines.append(f"{INDENT}testonly = True,")
    if ctx.proc_macro_deps:
        lines.extend(_list_lines("proc_macro_deps", ctx.proc_macro_deps))
    lines.extend(_list_lines("deps", ctx.deps))
    lines.append(")")
    return "\n".join(lines) + "\n"


def load_statements(contexts: Iterable[TargetContext], rules_load: str) -> list[str]:
    by_file: dict[str, set[str]] = {}
    for ctx in contexts:
        source = CARGO_BUILD_SCRIPT_LOAD if ctx.kind is TargetKind.BUILD_SCRIPT else rules_load
        by_file.setdefault(source, set()).add(ctx.rule)
    out = []
    for source in sorted(by_file):
        symbols = ", ".join(quote(s) for s in sorted(by_file[source]))
        out.append(f"load({quote(source)}, {symbols})")
    return out


def _package_block(visibility: tuple[str, ...]) -> str:
    if len(visibility) == 1:
        return f"package(default_visibility = [{quote(visibility[0])}])\n"
    lines = ["package(", f"{INDENT}default_visibility = ["]
    lines.extend(f"{INDENT}{INDENT}{quote(v)}," for v in visibility)
    lines.extend([f"{INDENT}],", ")"])
    return "\n".join(lines) + "\n"


SOURCES_FILEGROUP = """filegroup(
    name = "sources",
    srcs = glob(
        ["**"],
        exclude = ["target/**"],
    ),
)
"""


def render_build_file(contexts: tuple[TargetContext, ...], options: RenderOptions = RenderOptions()) -> str:
    header = f"# Generated by bazelify from {options.manifest_name}. DO NOT EDIT.\n"
    loads = load_statements(contexts, options.rules_load)
    blocks = [header + "".join(f"{line}\n" for line in loads)]
    blocks.append(_package_block(options.visibility))
    if options.sources_filegroup:
        blocks.append(SOURCES_FILEGROUP)
    blocks.extend(render_target(ctx) for ctx in contexts)
    return "\n".join(blocks)
