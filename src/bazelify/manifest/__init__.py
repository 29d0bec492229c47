from .model import Dependency, Manifest, Role, TargetDecl, TargetKind, crate_ident
from .reader import parse_manifest, read_manifest, read_manifest_text

__all__ = [
    "Dependency",
    "Manifest",
    "Role",
    "TargetDecl",
    "TargetKind",
    "crate_ident",
    "parse_manifest",
    "read_manifest",
    "read_manifest_text",
]
