from __future__ import annotations

from typing import Any, Dict, List, Optional

from .providers import ENV_PREFIX, ConfigManager, ConfigProvider, EnvProvider, FileProvider


def load_config(
    defaults: Optional[Dict[str, Any]] = None,
    file_path: Optional[str] = None,
    *,
    use_env: bool = True,
    env_prefix: str = ENV_PREFIX,
) -> Dict[str, Any]:
    """defaults < file < env. A file named explicitly must exist."""
    layers: List[ConfigProvider] = [FileProvider(file_path or "")]
    if use_env:
        layers.append(EnvProvider(prefix=env_prefix))
    return ConfigManager(layers, defaults=dict(defaults or {})).load()
