from __future__ import annotations

import argparse
from pathlib import Path

from ..cli.output import build_base_payload, echo, emit
from ..core.context import RunContext
from ..exit_codes import OK
from ..translate.pipeline import translate_file
from ._shared import add_feature_args, load_inputs


def configure_labels_parser(sub: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    p = sub.add_parser("labels", help="show how each dependency of a manifest resolves")
    p.add_argument("manifests", nargs="+", help="Cargo.toml files or crate directories")
    add_feature_args(p)


def run_labels_command(ctx: RunContext, ns: argparse.Namespace) -> int:
    config, registry = load_inputs(ctx, ns)
    rows: list[dict[str, object]] = []
    for raw in ns.manifests:
        result = translate_file(ctx, Path(raw), registry, config, mode=None)
        for item in result.translation.resolved:
            dep = item.classified.dependency
            rows.append(
                {
                    "manifest": result.manifest,
                    "role": dep.role.value,
                    "name": dep.key,
                    "package": dep.name,
                    "source": item.classified.source.value,
                    "label": item.label,
                    "macro": item.macro,
                    "alias": item.alias,
                    "version": dep.version,
                }
            )
    if ctx.output_format == "json":
        emit({**build_base_payload(ctx), "dependencies": rows}, True)
        return OK
    for row in rows:
        extras = []
        if row["macro"]:
            extras.append("macro")
        if row["alias"]:
            extras.append(f"alias={row['alias']}")
        if row["version"]:
            extras.append(f"version={row['version']}")
        suffix = f" [{' '.join(extras)}]" if extras else ""
        echo(f"{row['manifest']} {row['role']:<6} {row['name']} -> {row['label']}{suffix}", quiet=ctx.quiet)
    return OK
