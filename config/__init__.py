import importlib
import os
from types import ModuleType


def get_settings_module() -> str:
    # APP_ENV selects the settings module; anything unknown means development.
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "config.production"

    if env in {"test", "testing"}:
        return "config.testing"

    return "config.development"


def load_settings() -> ModuleType:
    """Settings module for APP_ENV; read by create_app() and the scripts."""
    return importlib.import_module(get_settings_module())
