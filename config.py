"""
Configuration system for the Target-Size Image Compressor.
Provides defaults that work out-of-the-box plus environment overrides.
"""

import copy
import os
from typing import Dict, Any, Optional


# Default configuration
DEFAULT_CONFIG = {
    # Size-targeting search
    "search": {
        "max_iterations": 12,
        "tolerance_fraction": 0.05,  # Fraction of target bytes
        "precheck_quality": 0.9,
        "floor_quality": 0.1,
        "ceiling_quality": 1.0,
        "bisection_margin": 0.01,
    },

    # Upload validation
    "upload": {
        "max_bytes": 50 * 1024 * 1024,  # 50MB
        "allowed_types": ["image/jpeg", "image/jpg", "image/png", "image/webp"],
    },

    # UI defaults
    "output": {
        "format": "image/jpeg",
        "target_size": 500,
        "size_unit": "KB",  # KB | MB
        "scale_percentage": 75,
    },

    "encoder": {
        "png_compression": 9,
    },

    "log_level": "INFO",
}

# Environment variable -> (section, key, type)
ENV_OVERRIDES = {
    "TARGETSIZE_MAX_ITERATIONS": ("search", "max_iterations", int),
    "TARGETSIZE_TOLERANCE": ("search", "tolerance_fraction", float),
    "TARGETSIZE_MAX_UPLOAD_BYTES": ("upload", "max_bytes", int),
    "TARGETSIZE_LOG_LEVEL": (None, "log_level", str),
}


def get_default_config() -> Dict[str, Any]:
    """Return a copy of the default configuration."""
    return copy.deepcopy(DEFAULT_CONFIG)


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge override config into base config.

    Args:
        base: Base configuration dictionary
        override: Override values to apply

    Returns:
        Merged configuration
    """
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = copy.deepcopy(value)

    return result


def env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Collect configuration overrides from environment variables.

    Args:
        environ: Mapping to read from (default: os.environ)

    Returns:
        Partial configuration suitable for merge_configs
    """
    if environ is None:
        environ = os.environ

    overrides: Dict[str, Any] = {}
    for name, (section, key, cast) in ENV_OVERRIDES.items():
        raw = environ.get(name)
        if raw is None or raw == "":
            continue
        try:
            value = cast(raw)
        except ValueError:
            raise ValueError(f"Invalid value for {name}: {raw!r}")
        if section is None:
            overrides[key] = value
        else:
            overrides.setdefault(section, {})[key] = value

    return overrides


def load_config(override: Optional[Dict[str, Any]] = None,
                environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Build the effective configuration.

    Precedence: explicit override > environment > defaults.
    """
    config = merge_configs(get_default_config(), env_overrides(environ))
    if override:
        config = merge_configs(config, override)
    return config
