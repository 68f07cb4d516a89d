"""
Module 09D - API Dependencies

Dependency injection for the API.
Provides the process-wide Exchange.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from core.config.runtime import RuntimeConfig
from core.redemption.exchange import Exchange

logger = logging.getLogger(__name__)

_exchange: Optional[Exchange] = None
_exchange_lock = threading.Lock()


def _load_runtime_config() -> RuntimeConfig:
    """Load RuntimeConfig from a config file, then overlay environment variables.

    Search order for config file:
      1. ./divtokens.yaml
      2. ~/.config/divtokens/config.yaml

    Environment variables ALWAYS override config file values.
    The .env file is loaded automatically by core.config.runtime on import.
    """
    search_paths = [
        Path.cwd() / "divtokens.yaml",
        Path.home() / ".config" / "divtokens" / "config.yaml",
    ]

    config: RuntimeConfig | None = None
    for path in search_paths:
        if path.exists():
            config = RuntimeConfig.from_yaml(path)
            logger.info("Loaded config from %s", path)
            break

    if config is None:
        config = RuntimeConfig()

    return config.with_env_overrides()


def get_exchange() -> Exchange:
    """Return the process-wide Exchange, building it from config on first use."""
    global _exchange
    with _exchange_lock:
        if _exchange is None:
            _exchange = Exchange.from_config(_load_runtime_config())
        return _exchange


def set_exchange(exchange: Optional[Exchange]) -> None:
    """Install (or clear) the process-wide Exchange. Used by tests and embedding code."""
    global _exchange
    with _exchange_lock:
        _exchange = exchange
