"""
Module 09C - CLI Configuration

Locates the YAML configuration file and overlays DIVTOKENS_* environment
variables on it.
"""

from __future__ import annotations

from pathlib import Path

from core.config.runtime import RuntimeConfig


DEFAULT_CONFIG_PATHS = (
    Path("divtokens.yaml"),
    Path.home() / ".config" / "divtokens" / "config.yaml",
)


def find_config_file() -> Path | None:
    """Return the first existing default config path, if any."""
    for path in DEFAULT_CONFIG_PATHS:
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> RuntimeConfig:
    """
    Load configuration for a CLI run.

    Args:
        path: Explicit YAML path. Must exist when given.

    Returns:
        RuntimeConfig with environment overrides applied
    """
    if path is None:
        path = find_config_file()
    config = RuntimeConfig.from_yaml(path) if path is not None else RuntimeConfig()
    return config.with_env_overrides()


def get_default_config_template() -> str:
    """Return a YAML config template with the default values."""
    import yaml

    return yaml.safe_dump(RuntimeConfig().to_dict(), sort_keys=False)
