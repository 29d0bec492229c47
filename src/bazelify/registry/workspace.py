"""Build an external registry from `crates_repository` calls in a WORKSPACE file.

WORKSPACE files are Starlark, which is close enough to Python that the call
sites we care about parse with `ast`. Only literal keyword arguments are read;
anything computed is ignored.
"""

from __future__ import annotations

import ast
from pathlib import Path

from ..errors import ConfigError
from .external import ExternalRegistry

_RULES = {"crates_repository", "crate_universe"}


def _call_name(node: ast.Call) -> str:
    if isinstance(node.func, ast.Name):
        return node.func.id
    if isinstance(node.func, ast.Attribute):
        return node.func.attr
    return ""


def _keyword(node: ast.Call, name: str) -> ast.expr | None:
    for kw in node.keywords:
        if kw.arg == name:
            return kw.value
    return None


def _literal_str(node: ast.expr | None) -> str | None:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return None


def crate_specs(text: str, source: str = "WORKSPACE") -> dict[str, list[str]]:
    """Return `{repository_name: [crate names]}` for every crates_repository call."""
    try:
        module = ast.parse(text, filename=source)
    except SyntaxError as exc:
        raise ConfigError(f"unable to parse workspace: {exc.msg} (line {exc.lineno})", manifest=source) from exc
    repos: dict[str, list[str]] = {}
    for node in ast.walk(module):
        if not isinstance(node, ast.Call) or _call_name(node) not in _RULES:
            continue
        name = _literal_str(_keyword(node, "name"))
        packages = _keyword(node, "packages")
        if name is None or not isinstance(packages, ast.Dict):
            continue
        crates = repos.setdefault(name, [])
        for key in packages.keys:
            crate = _literal_str(key)
            if crate is not None and crate not in crates:
                crates.append(crate)
    return repos


def import_workspace(path: Path, repository: str | None = None) -> ExternalRegistry:
    if not path.is_file():
        raise ConfigError(f"workspace file not found: {path}")
    repos = crate_specs(path.read_text(encoding="utf-8"), str(path))
    if not repos:
        raise ConfigError("no crates_repository call with literal packages found", manifest=str(path))
    if repository is None:
        if len(repos) > 1:
            names = ", ".join(sorted(repos))
            raise ConfigError(f"several crate repositories found ({names}); pick one with --repository", manifest=str(path))
        repository = next(iter(repos))
    if repository not in repos:
        raise ConfigError(f"crate repository `{repository}` not declared", manifest=str(path))
    return ExternalRegistry.from_payload({"repository": repository, "crates": sorted(repos[repository])})
