"""Process-wide settings, built once at startup from env and optional YAML."""
from __future__ import annotations
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

import yaml

from gemini_gateway.common.errors import ConfigError

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash"

@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    host: str = "0.0.0.0"
    port: int = 3000
    timeout: float = 120.0
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    log_level: str = "INFO"

    def generation_config(self) -> dict[str, Any]:
        """Gemini ``generationConfig`` for the sampling params that are set."""
        cfg: dict[str, Any] = {}
        if self.temperature is not None:
            cfg["temperature"] = self.temperature
        if self.top_p is not None:
            cfg["topP"] = self.top_p
        if self.max_tokens is not None:
            cfg["maxOutputTokens"] = self.max_tokens
        return cfg

# env var -> (field, caster)
_ENV_FIELDS: dict[str, tuple[str, type]] = {
    "MODEL": ("model", str),
    "GEMINI_BASE_URL": ("base_url", str),
    "HOST": ("host", str),
    "PORT": ("port", int),
    "REQUEST_TIMEOUT": ("timeout", float),
    "TEMPERATURE": ("temperature", float),
    "TOP_P": ("top_p", float),
    "MAX_TOKENS": ("max_tokens", int),
    "LOG_LEVEL": ("log_level", str),
}

_CASTERS: dict[str, type] = {name: caster for name, caster in _ENV_FIELDS.values()}
_CASTERS["api_key"] = str

# sampling params are left out of generationConfig when unset
_OPTIONAL = {"temperature", "top_p", "max_tokens"}

def _cast(name: str, value: Any) -> Any:
    caster = _CASTERS[name]
    if value is None:
        if name in _OPTIONAL:
            return None
        raise ConfigError(f"Missing value for {name}")
    if caster in (int, float) and (isinstance(value, bool) or (caster is int and isinstance(value, float))):
        raise ConfigError(f"Invalid value for {name}: {value!r}")
    try:
        return caster(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e

def load_cfg(path: str) -> dict[str, Any]:
    """Read a YAML settings file; an empty file yields no overrides."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping")
    return data

def load_settings(env: Mapping[str, str] | None = None, cfg_path: str | None = None) -> Settings:
    """
    Build settings from environment variables, then YAML overrides.

    Args:
        env: Environment mapping; defaults to ``os.environ``.
        cfg_path: Optional YAML path; falls back to ``GATEWAY_CONFIG``.

    Raises:
        ConfigError: On unreadable YAML, unknown keys, or bad numbers.
    """
    env = os.environ if env is None else env
    values: dict[str, Any] = {}

    api_key = env.get("API_KEY") or env.get("GEMINI_API_KEY")
    if api_key:
        values["api_key"] = api_key
    for var, (name, _) in _ENV_FIELDS.items():
        raw = env.get(var)
        if raw not in (None, ""):
            values[name] = _cast(name, raw)

    settings = Settings(**values)

    cfg_path = cfg_path or env.get("GATEWAY_CONFIG")
    if cfg_path:
        overrides = load_cfg(cfg_path)
        known = {f.name for f in fields(Settings)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys in {cfg_path}: {', '.join(unknown)}")
        settings = replace(settings, **{k: _cast(k, v) for k, v in overrides.items()})
    return settings
