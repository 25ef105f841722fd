"""Configuration management."""
import os
import yaml
from pathlib import Path

from models.health import AlertThresholds

_config = None
_DEFAULT_CONFIG = Path(__file__).parent / "default_config.yaml"

REQUIRED_SECTIONS = ["database", "monitoring", "thresholds", "alerts", "dashboard", "web", "logging"]

ENV_OVERRIDES = {
    "WORDWISE_DB_PATH": ("database", "path"),
    "WORDWISE_LOG_LEVEL": ("logging", "level"),
    "WORDWISE_PORT": ("web", "port"),
    "WORDWISE_PROBE_TIMEOUT": ("monitoring", "probe_timeout_seconds"),
}


def load_config(path=None):
    """Load config from YAML, merging defaults with optional overrides."""
    global _config

    with open(_DEFAULT_CONFIG) as f:
        config = yaml.safe_load(f)

    if path and Path(path).exists():
        with open(path) as f:
            overrides = yaml.safe_load(f) or {}
        config = _deep_merge(config, overrides)

    # Environment variable overrides
    for env_key, config_path in ENV_OVERRIDES.items():
        val = os.environ.get(env_key)
        if val:
            d = config
            for k in config_path[:-1]:
                d = d.setdefault(k, {})
            d[config_path[-1]] = _coerce(val)

    _validate_config(config)
    _config = config
    return config


def get_config():
    """Return cached config, loading defaults if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def _coerce(val):
    for cast in (int, float):
        try:
            return cast(val)
        except ValueError:
            continue
    return val


def _deep_merge(base, override):
    """Recursively merge override into base dict."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _validate_config(config):
    """Basic config validation."""
    for section in REQUIRED_SECTIONS:
        if section not in config:
            raise ValueError(f"Missing required config section: {section}")

    thresholds = AlertThresholds.from_dict(config["thresholds"])
    for name, value in vars(thresholds).items():
        if value <= 0:
            raise ValueError(f"Threshold {name} must be positive, got {value}")

    if config["monitoring"]["probe_timeout_seconds"] <= 0:
        raise ValueError("probe_timeout_seconds must be > 0")

    if config["dashboard"]["history_size"] < 1:
        raise ValueError("history_size must be >= 1")
