from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from ..core.schema import validate_payload
from ..errors import ConfigError, UnknownExternalDependencyError


@dataclass(frozen=True)
class ExternalRegistry:
    """Immutable name -> label mapping for crates that live outside the repository."""

    labels: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    proc_macro: frozenset[str] = frozenset()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ExternalRegistry":
        repository = str(payload.get("repository", ""))
        labels: dict[str, str] = {}
        for name in payload.get("crates", []):
            labels[str(name)] = f"@{repository}//:{name}"
        for name, label in sorted(payload.get("labels", {}).items()):
            labels[str(name)] = str(label)
        return cls(
            labels=MappingProxyType(dict(sorted(labels.items()))),
            proc_macro=frozenset(str(name) for name in payload.get("proc_macro", [])),
        )

    def lookup(self, name: str) -> str:
        try:
            return self.labels[name]
        except KeyError:
            raise UnknownExternalDependencyError(
                "no external label is registered for this crate", dependency=name
            ) from None

    def is_proc_macro(self, name: str) -> bool:
        return name in self.proc_macro

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"schema_version": 1, "labels": dict(self.labels)}
        if self.proc_macro:
            payload["proc_macro"] = sorted(self.proc_macro)
        return payload


def _parse_document(path: Path) -> object:
    text = path.read_text(encoding="utf-8")
    if path.suffix in {".yaml", ".yml"}:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"invalid yaml ({exc})", manifest=str(path)) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid json ({exc})", manifest=str(path)) from exc


def load_registry(path: Path) -> ExternalRegistry:
    if not path.is_file():
        raise ConfigError(f"external registry not found: {path}")
    payload = _parse_document(path)
    validate_payload(payload, "registry.schema.json", str(path))
    if not isinstance(payload, dict):
        raise ConfigError("registry must be a mapping", manifest=str(path))
    return ExternalRegistry.from_payload(payload)
