from .loader import DEFAULT_CONFIG_PATH, TranslatorConfig, load_config

__all__ = ["DEFAULT_CONFIG_PATH", "TranslatorConfig", "load_config"]
