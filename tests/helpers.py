from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
GOLDENS_ROOT = ROOT / "tests/goldens"

CRATES = (
    "assert_matches",
    "derive_more",
    "proptest",
    "prost-build",
    "serde",
    "serde_json",
    "simd-kit",
    "tokio",
)

WIDGETS_MANIFEST = """\
[package]
name = "widgets"
version = "0.1.0"
edition = "2021"

[dependencies]
serde = "1.0"
core_utils = { path = "../core_utils" }

[dev-dependencies]
assert_matches = "1.3"
"""

CORE_UTILS_MANIFEST = """\
[package]
name = "core_utils"
version = "0.1.0"
edition = "2021"
"""


def golden_text(name: str) -> str:
    return (GOLDENS_ROOT / name).read_text(encoding="utf-8")


def write_manifest(root: Path, rel_dir: str, text: str) -> Path:
    path = root / rel_dir / "Cargo.toml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def widgets_repo(root: Path) -> Path:
    """Lay out the widgets/core_utils pair and return the widgets manifest."""
    write_manifest(root, "path/to/core_utils", CORE_UTILS_MANIFEST)
    return write_manifest(root, "path/to/widgets", WIDGETS_MANIFEST)


def run_bazelify(*args: str, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    env["PYTHONPATH"] = str(ROOT / "src") + os.pathsep + env.get("PYTHONPATH", "")
    env.setdefault("RUN_ID", "pytest-run")
    return subprocess.run(
        [sys.executable, "-m", "bazelify.cli", *args],
        cwd=(cwd or ROOT),
        env=env,
        text=True,
        capture_output=True,
        check=False,
    )
