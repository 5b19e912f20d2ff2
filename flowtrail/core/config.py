"""
Configuration management for flowtrail.

Provides a dataclass-based tracker configuration that can be stored as
JSON and overridden from environment variables.
"""

import json
import os
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path
from typing import Any


ENV_PREFIX = "FLOWTRAIL_"


@dataclass
class TrackerConfig:
    """
    Parameters for feature detection, optical flow and trail drawing.

    Example:
        config = TrackerConfig.load("tracker.json")
        controller = FlowTrailController(config=config)
    """
    # Shi-Tomasi corner detection
    max_corners: int = 100
    quality_level: float = 0.3
    min_distance: float = 7.0
    block_size: int = 7

    # Lucas-Kanade optical flow
    win_size: tuple[int, int] = (15, 15)
    max_level: int = 2
    criteria_count: int = 10
    criteria_eps: float = 0.03

    # Drawing
    line_thickness: int = 2
    marker_radius: int = 5

    seed: int | None = None
    timer_interval: int = 100

    def __post_init__(self):
        self.win_size = tuple(int(v) for v in self.win_size)
        if len(self.win_size) != 2:
            raise ValueError(f"win_size must have two values, got {self.win_size}")
        if self.max_corners < 0:
            raise ValueError(f"max_corners must be >= 0, got {self.max_corners}")
        if not 0 < self.quality_level <= 1:
            raise ValueError(
                f"quality_level must be in (0, 1], got {self.quality_level}"
            )
        if self.min_distance < 0:
            raise ValueError(f"min_distance must be >= 0, got {self.min_distance}")
        if self.block_size < 1:
            raise ValueError(f"block_size must be >= 1, got {self.block_size}")
        if self.max_level < 0:
            raise ValueError(f"max_level must be >= 0, got {self.max_level}")
        if self.line_thickness < 1 or self.marker_radius < 0:
            raise ValueError("line_thickness must be >= 1 and marker_radius >= 0")
        if self.timer_interval < 1:
            raise ValueError(f"timer_interval must be >= 1, got {self.timer_interval}")

    @classmethod
    def load(cls, path: str | Path) -> "TrackerConfig":
        """Load configuration from a JSON file."""
        return load_config(path)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackerConfig":
        """Build a config from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def save(self, path: str | Path) -> None:
        """Save configuration to a JSON file."""
        save_config(self, path)

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        data = asdict(self)
        data["win_size"] = list(self.win_size)
        return data

    def with_overrides(self, **overrides) -> "TrackerConfig":
        """Return a copy with the given fields replaced, skipping None values."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


def load_config(path: str | Path) -> TrackerConfig:
    """
    Load configuration from a JSON file.

    Args:
        path: Path to the JSON configuration file

    Returns:
        Parsed TrackerConfig object

    Raises:
        FileNotFoundError: If the config file doesn't exist
        json.JSONDecodeError: If the JSON is invalid
        ValueError: If a value is out of range
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r") as f:
        data = json.load(f)

    return TrackerConfig.from_dict(data.get("tracker", data))


def save_config(config: TrackerConfig, path: str | Path) -> None:
    """
    Save configuration to a JSON file.

    Args:
        config: Configuration object to save
        path: Output path for the JSON file
    """
    path = Path(path)
    with open(path, "w") as f:
        json.dump({"tracker": config.to_dict()}, f, indent=2)


def get_env_config(prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """
    Get configuration from environment variables.

    All environment variables starting with the prefix will be included.
    Variable names are converted to lowercase with the prefix removed.

    Example:
        FLOWTRAIL_MAX_CORNERS=50 -> {"max_corners": "50"}
    """
    config = {}
    for key, value in os.environ.items():
        if key.startswith(prefix):
            config_key = key[len(prefix):].lower()
            config[config_key] = value
    return config


def apply_env_config(config: TrackerConfig, prefix: str = ENV_PREFIX) -> TrackerConfig:
    """
    Apply environment overrides to a config, coercing to each field's type.

    Unknown variables are ignored.
    """
    env = get_env_config(prefix)
    changes: dict[str, Any] = {}
    for f in fields(config):
        if f.name not in env:
            continue
        raw = env[f.name]
        current = getattr(config, f.name)
        if f.name == "win_size":
            changes[f.name] = tuple(int(v) for v in raw.replace("x", ",").split(","))
        elif f.name == "seed":
            changes[f.name] = None if raw.lower() in ("", "none") else int(raw)
        elif isinstance(current, int):
            changes[f.name] = int(raw)
        else:
            changes[f.name] = float(raw)
    return replace(config, **changes)
