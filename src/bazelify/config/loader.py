from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Literal

from ..core.env import getenv
from ..core.schema import validate_payload
from ..errors import ConfigError

PathPrecedence = Literal["path", "registry", "error"]
TargetNaming = Literal["package", "directory"]

DEFAULT_CONFIG_PATH = "configs/bazelify/config.json"
DEFAULT_REGISTRY_PATH = "configs/bazelify/external-crates.json"


@dataclass(frozen=True)
class TranslatorConfig:
    registry: str = DEFAULT_REGISTRY_PATH
    build_file_name: str = "BUILD.bazel"
    rules_load: str = "@rules_rust//rust:defs.bzl"
    visibility: tuple[str, ...] = ("//visibility:public",)
    path_precedence: PathPrecedence = "path"
    target_naming: TargetNaming = "package"
    sources_filegroup: bool = True
    crate_tests: bool = False
    features: tuple[str, ...] = field(default=())
    default_features: bool = True

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> "TranslatorConfig":
        values = {k: v for k, v in payload.items() if k != "schema_version"}
        if "visibility" in values:
            values["visibility"] = tuple(values["visibility"])
        return cls(**values)

    def with_features(self, features: list[str], default_features: bool) -> "TranslatorConfig":
        return replace(self, features=tuple(features), default_features=default_features)

    def registry_path(self, repo_root: Path) -> Path:
        path = Path(self.registry)
        return path if path.is_absolute() else repo_root / path


def load_config(repo_root: Path, config_path: str | None = None) -> TranslatorConfig:
    """Load the translator configuration for `repo_root`.

    An explicit path (argument or `BAZELIFY_CONFIG`) must exist; the default
    location is optional and falls back to built-in defaults.
    """
    explicit = config_path or getenv("BAZELIFY_CONFIG")
    path = Path(explicit) if explicit else repo_root / DEFAULT_CONFIG_PATH
    if not path.is_absolute():
        path = repo_root / path
    if not path.is_file():
        if explicit:
            raise ConfigError(f"config file not found: {path}")
        return TranslatorConfig()
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid json ({exc})", manifest=str(path)) from exc
    validate_payload(payload, "config.schema.json", str(path))
    return TranslatorConfig.from_json(payload)
