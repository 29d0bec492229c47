from __future__ import annotations

from dataclasses import dataclass

from .exit_codes import ERR_AMBIGUOUS, ERR_CONFIG, ERR_DRIFT, ERR_INTERNAL, ERR_MANIFEST, ERR_RESOLUTION


@dataclass
class BazelifyError(Exception):
    message: str
    code: int = ERR_INTERNAL
    kind: str = "generic_error"
    manifest: str | None = None
    dependency: str | None = None

    def __str__(self) -> str:
        where = []
        if self.manifest:
            where.append(self.manifest)
        if self.dependency:
            where.append(f"dependency `{self.dependency}`")
        if not where:
            return self.message
        return f"{': '.join(where)}: {self.message}"

    def with_manifest(self, manifest: str) -> "BazelifyError":
        if self.manifest is None:
            self.manifest = manifest
        return self


@dataclass
class ConfigError(BazelifyError):
    code: int = ERR_CONFIG
    kind: str = "config_error"


@dataclass
class ManifestParseError(BazelifyError):
    code: int = ERR_MANIFEST
    kind: str = "manifest_parse_error"


@dataclass
class ManifestSchemaError(BazelifyError):
    code: int = ERR_MANIFEST
    kind: str = "manifest_schema_error"
    field: str | None = None

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (field `{self.field}`)" if self.field else base


@dataclass
class AmbiguousDependencySourceError(BazelifyError):
    code: int = ERR_AMBIGUOUS
    kind: str = "ambiguous_dependency_source"


@dataclass
class UnresolvedPathError(BazelifyError):
    code: int = ERR_RESOLUTION
    kind: str = "unresolved_path"


@dataclass
class UnknownExternalDependencyError(BazelifyError):
    code: int = ERR_RESOLUTION
    kind: str = "unknown_external_dependency"


@dataclass
class DriftDetectedError(BazelifyError):
    code: int = ERR_DRIFT
    kind: str = "drift_detected"
    output: str | None = None
    diff: str = ""
