from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from ..cli.output import build_base_payload, echo, emit
from ..core.context import RunContext
from ..core.fs import write_text_atomic
from ..core.logging import log_event
from ..exit_codes import OK
from ..registry.external import ExternalRegistry, load_registry
from ..registry.workspace import import_workspace


def configure_registry_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("registry", help="external crate registry commands")
    p_sub = p.add_subparsers(dest="registry_cmd", required=True)
    imp = p_sub.add_parser("import", help="build a registry from crates_repository calls in a WORKSPACE file")
    imp.add_argument("workspace", help="WORKSPACE or WORKSPACE.bazel file")
    imp.add_argument("--repository", help="crates_repository name to import when several are declared")
    imp.add_argument("--proc-macro", action="append", default=[], help="mark a crate as a procedural macro (repeatable)")
    imp.add_argument("--out", help="write the registry here instead of stdout")
    val = p_sub.add_parser("validate", help="validate a registry document")
    val.add_argument("path", help="registry JSON or YAML file")


def _with_proc_macros(registry: ExternalRegistry, names: list[str]) -> ExternalRegistry:
    if not names:
        return registry
    return ExternalRegistry(labels=registry.labels, proc_macro=registry.proc_macro | frozenset(names))


def run_registry_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    if ns.registry_cmd == "import":
        registry = _with_proc_macros(import_workspace(Path(ns.workspace), ns.repository), ns.proc_macro)
        rendered = json.dumps(registry.to_payload(), indent=2, sort_keys=True) + "\n"
        if ns.out:
            out = write_text_atomic(Path(ns.out), rendered)
            log_event(ctx, "info", "registry", "imported", out=str(out), crates=len(registry.labels))
            echo(f"wrote {len(registry.labels)} crates to {out}", quiet=ctx.quiet)
        else:
            sys.stdout.write(rendered)
        return OK
    registry = load_registry(Path(ns.path))
    payload = build_base_payload(ctx)
    payload["crates"] = len(registry.labels)
    payload["proc_macro"] = sorted(registry.proc_macro)
    if ctx.output_format == "json":
        emit(payload, True)
    else:
        echo(f"ok: {ns.path} maps {len(registry.labels)} crates", quiet=ctx.quiet)
    return OK
