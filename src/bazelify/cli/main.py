from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path

from .. import __version__
from ..core.context import RunContext
from ..core.logging import log_event
from ..core.repo_root import current_dir, try_find_repo_root
from ..errors import BazelifyError, ConfigError
from ..exit_codes import ERR_INTERNAL, OK
from .output import build_base_payload, emit, render_error

CONFIGURE_HOOKS: tuple[tuple[str, str], ...] = (
    ("bazelify.commands.generate", "configure_generate_parser"),
    ("bazelify.commands.labels", "configure_labels_parser"),
    ("bazelify.commands.registry", "configure_registry_parser"),
)
RUNNERS: dict[str, tuple[str, str]] = {
    "generate": ("bazelify.commands.generate", "run_generate_command"),
    "check": ("bazelify.commands.generate", "run_generate_command"),
    "labels": ("bazelify.commands.labels", "run_labels_command"),
    "registry": ("bazelify.commands.registry", "run_registry_command"),
}
NEEDS_REPO_ROOT = {"generate", "check", "labels"}


def _import_attr(module_name: str, attr: str):
    return getattr(importlib.import_module(module_name), attr)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="bazelify", description="Generate Bazel BUILD files from Cargo manifests.")
    p.add_argument("--version", action="version", version=f"bazelify {__version__}")
    p.add_argument("--json", action="store_true", help="emit JSON output")
    p.add_argument("--log-json", action="store_true", help="emit structured log events as JSON on stderr")
    p.add_argument("--run-id", help="run identifier attached to log events")
    p.add_argument("--repo-root", help="repository root (default: nearest directory with a WORKSPACE file)")
    p.add_argument("--config", help="translator config JSON (default: configs/bazelify/config.json)")
    p.add_argument("--registry", help="external crate registry JSON/YAML (overrides the config)")
    vg = p.add_mutually_exclusive_group()
    vg.add_argument("--verbose", action="store_true", help="enable debug log events")
    vg.add_argument("--quiet", action="store_true", help="only emit warnings and errors")
    sub = p.add_subparsers(dest="cmd", required=True)
    sub.add_parser("version", help="print the bazelify version")
    for module_name, attr in CONFIGURE_HOOKS:
        _import_attr(module_name, attr)(sub)
    return p


def _repo_root(ns: argparse.Namespace) -> Path:
    if ns.repo_root:
        root = Path(ns.repo_root).resolve()
        if not root.is_dir():
            raise ConfigError(f"repository root does not exist: {root}")
        return root
    found = try_find_repo_root()
    if found is None:
        if ns.cmd in NEEDS_REPO_ROOT:
            raise ConfigError("unable to find a WORKSPACE, WORKSPACE.bazel or MODULE.bazel; pass --repo-root")
        return current_dir()
    return found


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    ns = p.parse_args(argv)
    as_json = bool(ns.json)
    ctx: RunContext | None = None
    try:
        ctx = RunContext.from_args(
            ns.run_id,
            _repo_root(ns),
            "json" if as_json else "text",
            ns.log_json,
            ns.verbose,
            ns.quiet,
        )
        log_event(ctx, "debug", "cli", "start", cmd=ns.cmd, repo_root=str(ctx.repo_root))
        if ns.cmd == "version":
            if as_json:
                emit({**build_base_payload(ctx), "version": __version__}, as_json)
            else:
                print(f"bazelify {__version__}")
            return OK
        module_name, attr = RUNNERS[ns.cmd]
        return int(_import_attr(module_name, attr)(ctx, ns))
    except BazelifyError as exc:
        if ctx is not None:
            log_event(ctx, "error", "cli", "failed", kind=exc.kind, code=exc.code)
        print(render_error(as_json=as_json, message=str(exc), code=exc.code, kind=exc.kind), file=sys.stderr)
        return exc.code
    except Exception as exc:  # pragma: no cover
        print(render_error(as_json=as_json, message=f"internal error: {exc}", code=ERR_INTERNAL), file=sys.stderr)
        return ERR_INTERNAL


if __name__ == "__main__":
    raise SystemExit(main())
