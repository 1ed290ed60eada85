import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_CONFIG_PATH = Path("folio.config.yaml")
DATABASE_URL_ENV = "FOLIO_DATABASE_URL"

BASE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "storage": {
        "database_url": "sqlite:///folio.db",
    },
    "query": {
        "slow_query_ms": 1000,
    },
    "revalidation": {
        "url": None,
        "secret_env": "FOLIO_REVALIDATE_SECRET",
        "timeout_seconds": 10,
    },
    "logging": {
        "level": "INFO",
    },
}


def _merge_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay user sections on the built-in defaults, one section at a time."""
    merged = deepcopy(BASE_DEFAULTS)
    for section, values in config.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def load_config(path: Path | None = None) -> Dict[str, Any]:
    """
    Load runtime configuration from YAML.

    Args:
        path: Optional path to the config file. Defaults to folio.config.yaml

    Returns:
        Config dict with every known section present

    Raises:
        FileNotFoundError: If an explicit path was given and does not exist
        ValueError: If the file does not contain a mapping
    """
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        if path is not None:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        # No config file in the working directory: run on defaults
        return _merge_defaults({})
    with cfg_path.open("r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError("Config must be a dictionary")
    return _merge_defaults(config)


def get_database_url(config: Dict[str, Any]) -> str:
    """Database URL from the environment, falling back to storage.database_url."""
    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        return env_url
    url = (config.get("storage") or {}).get("database_url")
    if not url:
        raise ValueError("storage.database_url must be set")
    return url


def get_slow_query_threshold_ms(config: Dict[str, Any]) -> float:
    value = (config.get("query") or {}).get("slow_query_ms", 1000)
    try:
        threshold = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"query.slow_query_ms must be a number, got {value!r}")
    if threshold < 0:
        raise ValueError("query.slow_query_ms must be >= 0")
    return threshold


def get_revalidation_settings(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Resolve revalidation webhook settings.

    The secret itself is never stored in the config file; ``secret_env`` names
    the environment variable holding it.

    Returns:
        Dict with url, secret (or None) and timeout_seconds
    """
    section = {**BASE_DEFAULTS["revalidation"], **(config.get("revalidation") or {})}
    secret_env = section.get("secret_env")
    return {
        "url": section.get("url"),
        "secret": os.environ.get(secret_env) if secret_env else None,
        "timeout_seconds": float(section.get("timeout_seconds") or 10),
    }


def get_log_level(config: Dict[str, Any]) -> str:
    return str((config.get("logging") or {}).get("level", "INFO")).upper()
