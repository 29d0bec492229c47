from .external import ExternalRegistry, load_registry
from .workspace import import_workspace

__all__ = ["ExternalRegistry", "import_workspace", "load_registry"]
