"""
Configuration management for orbmatch
"""

import copy
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from orbmatch.errors import InvalidFormat

DEFAULT_CONFIG = {
    "orb": {
        "nfeatures": 1200,
        "scale_factor": 1.2,
        "nlevels": 8,
        "edge_threshold": 31,
        "first_level": 0,
        "wta_k": 2,
        "score_type": "harris",
        "patch_size": 31,
        "fast_threshold": 20
    },
    "matching": {
        "ratio": 0.75,
        "ransac_threshold": 3.0,
        "ransac_iterations": 2000
    },
    "export": {
        "version": 1,
        "type": "ORB"
    },
    "logging": {
        "level": "INFO",
        "log_dir": None
    }
}


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load a YAML configuration file on top of the defaults.

    Args:
        path: YAML file path. ``None`` returns a copy of the defaults.

    Returns:
        Merged configuration dictionary
    """
    if path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(path, 'r') as f:
        user_config = yaml.safe_load(f)

    if user_config is None:
        return copy.deepcopy(DEFAULT_CONFIG)
    if not isinstance(user_config, dict):
        raise InvalidFormat(f"Config file {path} must contain a mapping")

    return merge_config(DEFAULT_CONFIG, user_config)
