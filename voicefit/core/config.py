"""Configuration loading."""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # Python 3.10
    import tomli as tomllib  # type: ignore[no-redef]

from voicefit.core.constants import DEFAULT_ANALYTICS, DEFAULT_MODEL, GEMINI_API_BASE, SESSIONS_FILENAME


class ConfigError(RuntimeError):
    """Raised when config file parsing fails."""


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def expand_path(path_str: str) -> Path:
    """Expand user/env vars and return absolute path."""
    return Path(os.path.expandvars(path_str)).expanduser().resolve()


def default_data_dir() -> Path:
    """Resolve XDG-style data directory with env override."""
    raw = os.getenv("VOICEFIT_DATA_DIR", "~/.local/share/voicefit")
    return expand_path(raw)


def default_config_path() -> Path:
    """Get default config file path."""
    raw = os.getenv("VOICEFIT_CONFIG_FILE", "~/.config/voicefit/config.toml")
    return expand_path(raw)


def _default_config() -> Dict[str, Any]:
    return {
        "storage": {
            "sessions_file": str(default_data_dir() / SESSIONS_FILENAME),
        },
        "gateway": {
            "model": DEFAULT_MODEL,
            "base_url": GEMINI_API_BASE,
            "api_key_env": "GEMINI_API_KEY",
            "timeout_seconds": 60,
        },
        "recording": {
            "sample_rate": 16000,
            "channels": 1,
            "device": None,
            "refresh_per_second": 30,
        },
        "analytics": dict(DEFAULT_ANALYTICS),
        "history": {
            "transcript_chars": 120,
        },
    }


def _read_config(path: Path) -> Dict[str, Any]:
    suffix = path.suffix.lower()
    text = path.read_text()
    try:
        if suffix in {".toml", ""}:
            loaded = tomllib.loads(text)
        else:
            loaded = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain an object/table at the root")
    return loaded


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from disk, merged with defaults."""
    cfg_path = path or default_config_path()
    cfg = _default_config()
    if cfg_path.exists():
        cfg = _deep_merge(cfg, _read_config(cfg_path))
    return cfg


def resolve_sessions_file(config: Dict[str, Any]) -> Path:
    """Resolve the sessions document path from env/config."""
    raw = os.getenv("VOICEFIT_SESSIONS_FILE") or config.get("storage", {}).get("sessions_file")
    if not raw:
        raw = str(default_data_dir() / SESSIONS_FILENAME)
    return expand_path(raw)


def resolve_api_key(config: Dict[str, Any]) -> Optional[str]:
    """Read the gateway credential from the configured env var, then API_KEY."""
    env_name = config.get("gateway", {}).get("api_key_env") or "GEMINI_API_KEY"
    return os.getenv(str(env_name)) or os.getenv("API_KEY") or None
