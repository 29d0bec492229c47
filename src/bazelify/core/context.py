from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from .clock import run_stamp
from .env import getenv

OutputFormat = Literal["text", "json"]


@dataclass(frozen=True)
class RunContext:
    run_id: str
    repo_root: Path
    output_format: OutputFormat
    log_json: bool
    verbose: bool
    quiet: bool

    @classmethod
    def from_args(
        cls,
        run_id: str | None,
        repo_root: Path,
        output_format: OutputFormat = "text",
        log_json: bool = False,
        verbose: bool = False,
        quiet: bool = False,
    ) -> "RunContext":
        resolved_run_id = run_id or getenv("RUN_ID") or f"bazelify-{run_stamp()}"
        resolved_log_json = log_json or (getenv("BAZELIFY_LOG_FORMAT", "text") == "json")
        return cls(
            run_id=resolved_run_id,
            repo_root=repo_root.resolve(),
            output_format=output_format,
            log_json=resolved_log_json,
            verbose=verbose,
            quiet=quiet,
        )
