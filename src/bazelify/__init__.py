__version__ = "0.1.0"

__all__ = [
    "__version__",
    "cli",
    "commands",
    "config",
    "core",
    "errors",
    "exit_codes",
    "manifest",
    "registry",
    "translate",
]
