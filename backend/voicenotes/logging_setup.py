from __future__ import annotations

import logging

from .config import Config

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _resolve_level(default: int = logging.INFO) -> int:
    env_level = (Config.LOG_LEVEL or "").strip()
    if not env_level:
        return default
    if env_level.isdigit():
        return int(env_level)
    lvl = logging.getLevelName(env_level.upper())
    if isinstance(lvl, str):
        return default
    return int(lvl)


def configure_logging(level: int | None = None) -> None:
    """Install a single stream handler on the root logger."""
    resolved_level = level if level is not None else _resolve_level()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(resolved_level)
    logging.getLogger("voicenotes").setLevel(resolved_level)
    # boto's wire-level debug output drowns out everything else
    logging.getLogger("botocore").setLevel(max(resolved_level, logging.WARNING))
