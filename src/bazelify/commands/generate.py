from __future__ import annotations

import argparse
import sys
from pathlib import Path

from ..cli.output import build_base_payload, echo, emit
from ..core.context import RunContext
from ..core.logging import log_event
from ..errors import DriftDetectedError
from ..exit_codes import ERR_DRIFT, OK
from ..translate.pipeline import translate_file
from ..translate.writer import Mode
from ._shared import add_feature_args, load_inputs


def configure_generate_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    gen = sub.add_parser("generate", help="generate BUILD files from Cargo manifests")
    gen.add_argument("manifests", nargs="+", help="Cargo.toml files or crate directories")
    out = gen.add_mutually_exclusive_group()
    out.add_argument("--check", action="store_true", help="compare with the files on disk instead of writing")
    out.add_argument("--stdout", action="store_true", help="print rendered files instead of writing them")
    add_feature_args(gen)
    chk = sub.add_parser("check", help="fail if any generated BUILD file is stale (alias of `generate --check`)")
    chk.add_argument("manifests", nargs="+", help="Cargo.toml files or crate directories")
    add_feature_args(chk)


def run_generate_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    config, registry = load_inputs(ctx, ns)
    to_stdout = bool(getattr(ns, "stdout", False))
    check = ns.cmd == "check" or bool(getattr(ns, "check", False))
    mode = None if to_stdout else (Mode.CHECK if check else Mode.WRITE)
    as_json = ctx.output_format == "json"
    rows: list[dict[str, object]] = []
    drifted: list[DriftDetectedError] = []
    log_event(ctx, "info", "generate", "start", mode=mode.value if mode else "stdout", manifests=len(ns.manifests))
    for raw in ns.manifests:
        try:
            result = translate_file(ctx, Path(raw), registry, config, mode)
        except DriftDetectedError as exc:
            drifted.append(exc)
            rows.append({"manifest": exc.manifest, "output": exc.output, "status": "drift", "diff": exc.diff})
            continue
        if result.write is None:
            rows.append({"manifest": result.manifest, "output": result.output, "status": "rendered", "text": result.text})
            if not as_json:
                sys.stdout.write(result.text)
            continue
        rows.append({"manifest": result.manifest, "output": result.output, "status": result.write.outcome.value})
    status = "drift" if drifted else "ok"
    if as_json:
        payload = build_base_payload(ctx, status)
        payload["mode"] = mode.value if mode else "stdout"
        payload["results"] = rows
        emit(payload, as_json)
    elif mode is not None:
        for row in rows:
            if row["status"] == "drift":
                continue
            echo(f"{row['status']}: {row['output']}", quiet=ctx.quiet)
        for exc in drifted:
            if exc.diff:
                sys.stdout.write(exc.diff)
            print(f"error: {exc}", file=sys.stderr)
    log_event(ctx, "info", "generate", "done", status=status, drifted=len(drifted), total=len(rows))
    if drifted:
        print(f"error: {len(drifted)} of {len(rows)} generated file(s) are stale; run `bazelify generate`", file=sys.stderr)
        return ERR_DRIFT
    return OK
