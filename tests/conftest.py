from __future__ import annotations

import json
import socket
from pathlib import Path
from typing import NoReturn

import pytest

from bazelify.registry.external import ExternalRegistry
from tests.helpers import CRATES

_ALLOWED_MARKERS = {"unit", "integration", "slow"}


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        names = {mark.name for mark in item.iter_markers()}
        if not names.intersection(_ALLOWED_MARKERS):
            item.add_marker("unit")


@pytest.fixture(autouse=True)
def no_network_for_unit(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> None:
    if request.node.get_closest_marker("integration") or request.node.get_closest_marker("slow"):
        return

    def _blocked(*_args: object, **_kwargs: object) -> NoReturn:
        raise RuntimeError("network disabled in unit tests")

    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket.socket, "connect", _blocked)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("RUN_ID", "BAZELIFY_CONFIG", "BAZELIFY_LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def registry_payload() -> dict[str, object]:
    return {
        "schema_version": 1,
        "repository": "crate_index",
        "crates": list(CRATES),
        "labels": {"serde": "@crates//:serde", "assert_matches": "@crates//:assert_matches"},
        "proc_macro": ["derive_more"],
    }


@pytest.fixture
def registry(registry_payload: dict[str, object]) -> ExternalRegistry:
    return ExternalRegistry.from_payload(registry_payload)


@pytest.fixture
def repo(tmp_path: Path, registry_payload: dict[str, object]) -> Path:
    root = tmp_path / "repo"
    root.mkdir()
    (root / "WORKSPACE.bazel").write_text('workspace(name = "example")\n', encoding="utf-8")
    cfg = root / "configs/bazelify"
    cfg.mkdir(parents=True)
    (cfg / "external-crates.json").write_text(json.dumps(registry_payload, indent=2) + "\n", encoding="utf-8")
    return root
