"""Logging setup for ewscope.

Library modules only create loggers (`get_logger("ewscope.<area>")`) and attach
structured fields via `extra=`. Handlers are installed by applications (the CLI)
through `setup_logging`.
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

# LogRecord attributes that are never copied into the JSON payload.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}

ROOT_LOGGER = "ewscope"


@dataclass(frozen=True)
class LogConfig:
    level: str = "info"
    json: bool = False
    to_file: Optional[str] = None
    utc: bool = True

    @staticmethod
    def from_dict(section: Mapping[str, Any]) -> "LogConfig":
        """Build from the `logging` section of a loaded config dict."""
        return LogConfig(
            level=str(section.get("level", "info")),
            json=bool(section.get("json", False)),
            to_file=section.get("to_file") or None,
            utc=bool(section.get("utc", True)),
        )


def _json_safe(v: Any) -> Any:
    if isinstance(v, float) and math.isnan(v):
        return None
    if isinstance(v, (str, int, float, bool)) or v is None:
        return v
    if isinstance(v, (list, tuple)):
        return [_json_safe(x) for x in v]
    if isinstance(v, dict):
        return {str(k): _json_safe(x) for k, x in v.items()}
    return str(v)


class _JsonFormatter(logging.Formatter):
    def __init__(self, utc: bool = True):
        super().__init__()
        self.utc = utc

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc if self.utc else None)
        payload: Dict[str, Any] = {
            "ts": ts.isoformat(),
            "level": record.levelname.lower(),
            "name": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for k, v in record.__dict__.items():
            if k.startswith("_") or k in _RECORD_ATTRS or k in payload:
                continue
            payload[k] = _json_safe(v)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(cfg: LogConfig) -> None:
    """Install stream (and optional file) handlers on the root logger."""
    lvl = _LEVELS.get(cfg.level.lower().strip(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    if cfg.json:
        fmt: logging.Formatter = _JsonFormatter(utc=cfg.utc)
    else:
        fmt = logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    sh = logging.StreamHandler()
    sh.setLevel(lvl)
    sh.setFormatter(fmt)
    root.addHandler(sh)

    if cfg.to_file:
        os.makedirs(os.path.dirname(cfg.to_file) or ".", exist_ok=True)
        fh = logging.FileHandler(cfg.to_file, encoding="utf-8")
        fh.setLevel(lvl)
        fh.setFormatter(fmt)
        root.addHandler(fh)


def get_logger(name: str) -> logging.Logger:
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
