"""CLI payload output helpers."""

from __future__ import annotations

import sys

from ..core.context import RunContext
from ..core.serialize import dumps_json


def emit(payload: dict[str, object], as_json: bool) -> None:
    print(dumps_json(payload, pretty=not as_json))


def build_base_payload(ctx: RunContext, status: str = "ok") -> dict[str, object]:
    return {
        "schema_version": 1,
        "tool": "bazelify",
        "status": status,
        "run_id": ctx.run_id,
        "repo_root": str(ctx.repo_root),
    }


def render_error(*, as_json: bool, message: str, code: int, kind: str = "generic_error") -> str:
    if as_json:
        return dumps_json(
            {
                "schema_name": "bazelify.error.v1",
                "schema_version": 1,
                "tool": "bazelify",
                "status": "error",
                "errors": [{"code": code, "kind": kind, "message": message}],
            },
            pretty=False,
        )
    return f"error: {message}"


def echo(message: str, quiet: bool = False) -> None:
    if not quiet:
        sys.stdout.write(message + "\n")
