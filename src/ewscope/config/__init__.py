"""Layered configuration: `load_config(defaults, file_path)` returns a plain dict."""

from __future__ import annotations

from .loader import load_config  # noqa: F401
from .providers import (  # noqa: F401
    ENV_PREFIX,
    ConfigError,
    ConfigManager,
    ConfigProvider,
    EnvProvider,
    FileProvider,
)

__all__ = [
    "load_config",
    "ENV_PREFIX",
    "ConfigError",
    "ConfigProvider",
    "ConfigManager",
    "EnvProvider",
    "FileProvider",
]
