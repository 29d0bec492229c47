"""Manifest -> build descriptor pipeline.

`translate` is the pure core: manifest text and an external registry in,
rendered descriptor out. `translate_file` adds the file system around it:
locating the manifest inside the repository, checking path dependencies
against real packages, and writing or checking the output.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..config.loader import TranslatorConfig
from ..core.context import RunContext
from ..core.logging import log_event
from ..errors import BazelifyError, DriftDetectedError, UnresolvedPathError
from ..manifest.model import Manifest
from ..manifest.reader import parse_manifest, read_manifest_text
from ..registry.external import ExternalRegistry
from .classify import MacroPredicate, active_features, classify, crate_features, default_macro_predicate
from .labels import KnownPackage, LabelResolver, ResolvedDependency, filesystem_known_package
from .render import RenderOptions, render_build_file
from .synth import TargetContext, synthesize
from .writer import Mode, WriteResult, write_output

MANIFEST_NAME = "Cargo.toml"


@dataclass(frozen=True)
class Translation:
    manifest: Manifest
    manifest_dir: str
    resolved: tuple[ResolvedDependency, ...]
    targets: tuple[TargetContext, ...]
    text: str


def translate(
    text: str,
    registry: ExternalRegistry,
    config: TranslatorConfig = TranslatorConfig(),
    manifest_dir: str = "",
    source: str = MANIFEST_NAME,
    is_macro: MacroPredicate | None = None,
    known_package: KnownPackage | None = None,
    repo_root: Path | None = None,
) -> Translation:
    try:
        manifest = parse_manifest(text, source)
        features = active_features(manifest, config.features, config.default_features)
        predicate = is_macro or default_macro_predicate(registry, manifest.metadata)
        classified = classify(manifest, predicate, config.path_precedence, features)
        resolver = LabelResolver(
            registry=registry,
            manifest_dir=manifest_dir,
            target_naming=config.target_naming,
            target_overrides=manifest.metadata.targets,
            known_package=known_package,
            repo_root=repo_root,
        )
        resolved = resolver.resolve_all(classified)
        targets = synthesize(
            manifest,
            resolved,
            manifest_dir=manifest_dir,
            naming=config.target_naming,
            features=crate_features(manifest, features),
            crate_tests=config.crate_tests,
        )
    except BazelifyError as exc:
        exc.with_manifest(source)
        raise
    options = RenderOptions(
        rules_load=config.rules_load,
        visibility=config.visibility,
        sources_filegroup=config.sources_filegroup,
        manifest_name=Path(source).name,
    )
    return Translation(manifest, manifest_dir, resolved, targets, render_build_file(targets, options))


def locate_manifest(repo_root: Path, path: Path) -> tuple[Path, str]:
    """Return the absolute manifest path and its repository-relative directory."""
    resolved = path.resolve()
    if resolved.is_dir():
        resolved = resolved / MANIFEST_NAME
    try:
        rel_dir = resolved.parent.relative_to(repo_root.resolve())
    except ValueError:
        raise UnresolvedPathError("manifest is outside the repository root", manifest=str(path)) from None
    return resolved, rel_dir.as_posix() if rel_dir.parts else ""


@dataclass(frozen=True)
class FileResult:
    manifest: str
    output: str
    write: WriteResult | None
    translation: Translation

    @property
    def text(self) -> str:
        return self.translation.text


def translate_file(
    ctx: RunContext,
    path: Path,
    registry: ExternalRegistry,
    config: TranslatorConfig,
    mode: Mode | None = Mode.WRITE,
    is_macro: MacroPredicate | None = None,
) -> FileResult:
    """Translate one manifest on disk. `mode=None` renders without touching the output."""
    manifest_path, manifest_dir = locate_manifest(ctx.repo_root, path)
    rel_manifest = manifest_path.relative_to(ctx.repo_root).as_posix()
    output_path = manifest_path.parent / config.build_file_name
    rel_output = output_path.relative_to(ctx.repo_root).as_posix()
    log_event(ctx, "debug", "pipeline", "read", manifest=rel_manifest)
    text = read_manifest_text(manifest_path, rel_manifest)
    result = translate(
        text,
        registry,
        config,
        manifest_dir=manifest_dir,
        source=rel_manifest,
        is_macro=is_macro,
        known_package=filesystem_known_package(ctx.repo_root),
        repo_root=ctx.repo_root,
    )
    log_event(
        ctx,
        "debug",
        "pipeline",
        "rendered",
        manifest=rel_manifest,
        targets=",".join(t.name for t in result.targets),
        dependencies=len(result.resolved),
    )
    if mode is None:
        return FileResult(rel_manifest, rel_output, None, result)
    try:
        written = write_output(output_path, result.text, mode, display=rel_output)
    except DriftDetectedError as exc:
        exc.with_manifest(rel_manifest)
        log_event(ctx, "warn", "writer", "drift", manifest=rel_manifest, output=rel_output)
        raise
    log_event(ctx, "info", "writer", written.outcome.value, manifest=rel_manifest, output=rel_output)
    return FileResult(rel_manifest, rel_output, written, result)
