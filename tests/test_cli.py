from __future__ import annotations

import json
from pathlib import Path

import pytest

from bazelify import __version__
from bazelify.cli.main import main
from tests.helpers import golden_text, run_bazelify, widgets_repo, write_manifest

WORKSPACE = 'crates_repository(name = "crate_index", packages = {"serde": crate.spec(version = "1")})\n'


def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["version"]) == 0
    assert capsys.readouterr().out.strip() == f"bazelify {__version__}"


def test_generate_then_check(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manifest = widgets_repo(repo)
    assert main(["--repo-root", str(repo), "generate", str(manifest)]) == 0
    assert capsys.readouterr().out == "written: path/to/widgets/BUILD.bazel\n"
    assert (repo / "path/to/widgets/BUILD.bazel").read_text(encoding="utf-8") == golden_text("widgets.BUILD.bazel")

    assert main(["--repo-root", str(repo), "generate", str(manifest)]) == 0
    assert capsys.readouterr().out == "unchanged: path/to/widgets/BUILD.bazel\n"
    assert main(["--repo-root", str(repo), "check", str(manifest.parent)]) == 0
    assert capsys.readouterr().out == "ok: path/to/widgets/BUILD.bazel\n"


def test_check_reports_drift_with_a_diff(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manifest = widgets_repo(repo)
    out = repo / "path/to/widgets/BUILD.bazel"
    out.write_text("# hand edited\n", encoding="utf-8")
    assert main(["--repo-root", str(repo), "generate", "--check", str(manifest)]) == 10
    captured = capsys.readouterr()
    assert "--- path/to/widgets/BUILD.bazel (on disk)" in captured.out
    assert "-# hand edited" in captured.out
    assert "is stale" in captured.err
    assert out.read_text(encoding="utf-8") == "# hand edited\n"


def test_check_keeps_going_after_drift(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manifest = widgets_repo(repo)
    other = write_manifest(repo, "crates/solo", '[package]\nname = "solo"\n')
    assert main(["--repo-root", str(repo), "generate", str(other)]) == 0
    capsys.readouterr()
    assert main(["--json", "--repo-root", str(repo), "check", str(manifest), str(other)]) == 10
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "drift"
    assert payload["mode"] == "check"
    assert [row["status"] for row in payload["results"]] == ["drift", "ok"]
    assert payload["results"][0]["manifest"] == "path/to/widgets/Cargo.toml"


def test_stdout_mode_prints_without_writing(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manifest = widgets_repo(repo)
    assert main(["--repo-root", str(repo), "generate", "--stdout", str(manifest)]) == 0
    assert capsys.readouterr().out == golden_text("widgets.BUILD.bazel")
    assert not (repo / "path/to/widgets/BUILD.bazel").exists()


def test_features_flags(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    text = (
        '[package]\nname = "app"\n[features]\nsimd = ["dep:simd-kit"]\n'
        '[dependencies]\nsimd-kit = { version = "0.3", optional = true }\n'
    )
    manifest = write_manifest(repo, "crates/app", text)
    assert main(["--repo-root", str(repo), "generate", "--stdout", "--features", "simd", str(manifest)]) == 0
    rendered = capsys.readouterr().out
    assert '"@crate_index//:simd-kit"' in rendered
    assert 'crate_features = [\n        "simd",\n    ],' in rendered


@pytest.mark.parametrize(
    ("dependency", "code", "kind"),
    [
        ('shared = { path = "../../../outside" }', 5, "unresolved_path"),
        ('left-pad = "1"', 5, "unknown_external_dependency"),
        ('x = { path = "../x", git = "https://e/x" }', 4, "ambiguous_dependency_source"),
        ('x = { workspace = true }', 3, "manifest_schema_error"),
    ],
)
def test_failures_map_to_exit_codes(
    repo: Path, capsys: pytest.CaptureFixture[str], dependency: str, code: int, kind: str
) -> None:
    manifest = write_manifest(repo, "crates/a", f'[package]\nname = "a"\n[dependencies]\n{dependency}\n')
    assert main(["--json", "--repo-root", str(repo), "generate", str(manifest)]) == code
    last = capsys.readouterr().err.strip().splitlines()[-1]
    error = json.loads(last)["errors"][0]
    assert error["kind"] == kind
    assert error["code"] == code
    assert error["message"].startswith("crates/a/Cargo.toml: dependency `")
    assert not (repo / "crates/a/BUILD.bazel").exists()


def test_first_fatal_error_stops_the_batch(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    broken = write_manifest(repo, "crates/broken", "[package\n")
    fine = write_manifest(repo, "crates/fine", '[package]\nname = "fine"\n')
    assert main(["--repo-root", str(repo), "generate", str(broken), str(fine)]) == 3
    assert capsys.readouterr().err.strip().splitlines()[-1].startswith("error: crates/broken/Cargo.toml")
    assert not (repo / "crates/fine/BUILD.bazel").exists()


def test_missing_repository_root_is_a_config_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["generate", "Cargo.toml"]) == 6
    assert "pass --repo-root" in capsys.readouterr().err


def test_missing_registry_is_a_config_error(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manifest = widgets_repo(repo)
    assert main(["--repo-root", str(repo), "--registry", "nope.json", "generate", str(manifest)]) == 6
    assert "external registry not found" in capsys.readouterr().err


def test_usage_errors_exit_with_two() -> None:
    with pytest.raises(SystemExit) as exc:
        main(["generate"])
    assert exc.value.code == 2
    with pytest.raises(SystemExit) as exc:
        main(["generate", "--check", "--stdout", "Cargo.toml"])
    assert exc.value.code == 2


def test_labels_command(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manifest = widgets_repo(repo)
    assert main(["--repo-root", str(repo), "labels", str(manifest)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "path/to/widgets/Cargo.toml normal serde -> @crates//:serde [version=1.0]",
        "path/to/widgets/Cargo.toml normal core_utils -> //path/to/core_utils:core_utils",
        "path/to/widgets/Cargo.toml dev    assert_matches -> @crates//:assert_matches [version=1.3]",
    ]
    assert main(["--json", "--repo-root", str(repo), "labels", str(manifest)]) == 0
    rows = json.loads(capsys.readouterr().out)["dependencies"]
    assert [(r["name"], r["source"]) for r in rows] == [
        ("serde", "external-registry"),
        ("core_utils", "local-path"),
        ("assert_matches", "external-registry"),
    ]


def test_registry_import_and_validate(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    ws = tmp_path / "WORKSPACE"
    ws.write_text(WORKSPACE, encoding="utf-8")
    out = tmp_path / "configs/bazelify/external-crates.json"
    assert main(["--repo-root", str(tmp_path), "registry", "import", str(ws), "--proc-macro", "serde", "--out", str(out)]) == 0
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload == {"labels": {"serde": "@crate_index//:serde"}, "proc_macro": ["serde"], "schema_version": 1}
    capsys.readouterr()
    assert main(["--repo-root", str(tmp_path), "registry", "validate", str(out)]) == 0
    assert capsys.readouterr().out == f"ok: {out} maps 1 crates\n"


def test_log_events_go_to_stderr_as_json(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manifest = widgets_repo(repo)
    assert main(["--log-json", "--run-id", "r-1", "--repo-root", str(repo), "generate", str(manifest)]) == 0
    events = [json.loads(line) for line in capsys.readouterr().err.splitlines()]
    assert events
    assert {e["run_id"] for e in events} == {"r-1"}
    assert {"component", "action", "level", "ts"} <= set(events[0])
    assert not any(e["level"] == "debug" for e in events)


def test_quiet_suppresses_progress(repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manifest = widgets_repo(repo)
    assert main(["--quiet", "--repo-root", str(repo), "generate", str(manifest)]) == 0
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == ""


@pytest.mark.integration
def test_module_entrypoint_generates(repo: Path) -> None:
    manifest = widgets_repo(repo)
    proc = run_bazelify("generate", str(manifest), cwd=repo / "path/to/widgets")
    assert proc.returncode == 0, proc.stderr
    assert (repo / "path/to/widgets/BUILD.bazel").read_text(encoding="utf-8") == golden_text("widgets.BUILD.bazel")
    proc = run_bazelify("check", "Cargo.toml", cwd=repo / "path/to/widgets")
    assert proc.returncode == 0, proc.stderr
