from .pipeline import FileResult, Translation, locate_manifest, translate, translate_file
from .writer import Mode, Outcome

__all__ = ["FileResult", "Mode", "Outcome", "Translation", "locate_manifest", "translate", "translate_file"]
