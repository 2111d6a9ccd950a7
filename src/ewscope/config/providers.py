"""Config providers.

Each layer is a provider returning a plain dict. ConfigManager starts from the
defaults and folds the layers in order, so later layers win:

    defaults < config file < EWSCOPE_* environment
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Protocol, runtime_checkable

from ewscope.errors import EwscopeError

ENV_PREFIX = "EWSCOPE_"

_TRUE_WORDS = frozenset({"yes", "on"})
_FALSE_WORDS = frozenset({"no", "off"})


class ConfigError(EwscopeError, ValueError):
    pass


@runtime_checkable
class ConfigProvider(Protocol):
    name: str

    def load(self) -> Dict[str, Any]:
        ...


def _parse_env_value(raw: str) -> Any:
    # JSON covers numbers, true/false and inline lists/tables
    text = raw.strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    word = text.lower()
    if word in ("true", *_TRUE_WORDS):
        return True
    if word in ("false", *_FALSE_WORDS):
        return False
    return text


@dataclass
class EnvProvider:
    """EWSCOPE_* variables, nested on '__' with lowercased keys.

    EWSCOPE_ANALYSIS__MAX_SCENARIOS=3 -> {"analysis": {"max_scenarios": 3}}

    EWSCOPE_CONFIG and EWSCOPE_LOG_LEVEL belong to the CLI and are skipped.
    """

    name: str = "env"
    prefix: str = ENV_PREFIX
    sep: str = "__"
    skip: tuple = ("CONFIG", "LOG_LEVEL")

    def load(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for var, raw in os.environ.items():
            if not var.startswith(self.prefix) or var[len(self.prefix):] in self.skip:
                continue
            path = [p.strip().lower() for p in var[len(self.prefix):].split(self.sep) if p.strip()]
            if not path:
                continue
            node = out
            for key in path[:-1]:
                child = node.get(key)
                if not isinstance(child, dict):
                    child = node[key] = {}
                node = child
            node[path[-1]] = _parse_env_value(raw)
        return out


@dataclass
class FileProvider:
    """A .toml or .json config file; an empty path contributes nothing."""

    path: str = ""
    name: str = "file"

    def load(self) -> Dict[str, Any]:
        if not self.path:
            return {}
        suffix = os.path.splitext(self.path)[1].lower()
        if suffix not in (".toml", ".json"):
            raise ConfigError(f"Unsupported config format for {self.path} (use .toml or .json)")
        with open(self.path, "rb") as f:
            text = f.read().decode("utf-8")
        try:
            data = tomllib.loads(text) if suffix == ".toml" else json.loads(text)
        except (json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Invalid config file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {self.path} must hold a table at the top level")
        return data


def merge_into(target: Dict[str, Any], layer: Mapping[str, Any]) -> Dict[str, Any]:
    """Fold `layer` into `target`; nested tables merge key by key."""
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            target[key] = merge_into(dict(current), value)
        else:
            target[key] = value
    return target


@dataclass
class ConfigManager:
    providers: List[ConfigProvider]
    defaults: Dict[str, Any] = field(default_factory=dict)

    def load(self) -> Dict[str, Any]:
        merged = merge_into({}, self.defaults)
        for provider in self.providers:
            merge_into(merged, provider.load())
        return merged
