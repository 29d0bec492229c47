from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path


def _target_mode(path: Path) -> int:
    # Existing files keep their mode; new files get what open() would give them.
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_text_atomic(path: Path, content: str, encoding: str = "utf-8") -> Path:
    """Replace `path` with `content` in one step.

    The text is written to a sibling temporary file first, so a failure never
    leaves a partially written destination behind.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = _target_mode(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    return path


def read_bytes_or_none(path: Path) -> bytes | None:
    if not path.is_file():
        return None
    return path.read_bytes()
