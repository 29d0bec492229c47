from __future__ import annotations

import difflib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..core.fs import read_bytes_or_none, write_text_atomic
from ..errors import DriftDetectedError


class Mode(str, Enum):
    WRITE = "write"
    CHECK = "check"


class Outcome(str, Enum):
    WRITTEN = "written"
    UNCHANGED = "unchanged"
    OK = "ok"


@dataclass(frozen=True)
class WriteResult:
    path: Path
    outcome: Outcome


def unified_diff(current: str, expected: str, path: str) -> str:
    return "".join(
        difflib.unified_diff(
            current.splitlines(keepends=True),
            expected.splitlines(keepends=True),
            fromfile=f"{path} (on disk)",
            tofile=f"{path} (generated)",
        )
    )


def write_output(path: Path, rendered: str, mode: Mode = Mode.WRITE, display: str | None = None) -> WriteResult:
    """Write or verify one build descriptor.

    Check mode never touches the file and raises `DriftDetectedError` when the
    bytes on disk differ from `rendered`. Write mode leaves an identical file
    alone and otherwise replaces it atomically.
    """
    expected = rendered.encode("utf-8")
    current = read_bytes_or_none(path)
    shown = display or str(path)
    if mode is Mode.CHECK:
        if current == expected:
            return WriteResult(path, Outcome.OK)
        if current is None:
            raise DriftDetectedError(f"generated file `{shown}` is missing", output=shown)
        diff = unified_diff(current.decode("utf-8", errors="replace"), rendered, shown)
        raise DriftDetectedError(f"generated file `{shown}` is stale", output=shown, diff=diff)
    if current == expected:
        return WriteResult(path, Outcome.UNCHANGED)
    write_text_atomic(path, rendered)
    return WriteResult(path, Outcome.WRITTEN)
