from __future__ import annotations

import argparse
from pathlib import Path

from ..config.loader import TranslatorConfig, load_config
from ..core.context import RunContext
from ..core.logging import log_event
from ..registry.external import ExternalRegistry, load_registry


def add_feature_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--features", default="", help="comma-separated extra cargo features to enable")
    parser.add_argument("--no-default-features", action="store_true", help="do not activate the `default` feature")


def split_features(raw: str) -> list[str]:
    return [item.strip() for item in raw.replace(" ", ",").split(",") if item.strip()]


def load_inputs(ctx: RunContext, ns: argparse.Namespace) -> tuple[TranslatorConfig, ExternalRegistry]:
    config = load_config(ctx.repo_root, getattr(ns, "config", None))
    if hasattr(ns, "features"):
        config = config.with_features(split_features(ns.features), not ns.no_default_features)
    registry_path = Path(ns.registry) if getattr(ns, "registry", None) else config.registry_path(ctx.repo_root)
    if not registry_path.is_absolute():
        registry_path = ctx.repo_root / registry_path
    registry = load_registry(registry_path)
    log_event(
        ctx,
        "debug",
        "config",
        "loaded",
        registry=str(registry_path),
        crates=len(registry.labels),
        precedence=config.path_precedence,
        naming=config.target_naming,
    )
    return config, registry
