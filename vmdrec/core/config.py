"""Configuration management system"""

import copy
from pathlib import Path
from typing import Any, Optional
import yaml


DEFAULT_CONFIG: dict = {
    "app": {
        "version": "0.3.0",
        "log_level": "INFO",
        "log_file": None,
        "log_dir": "logs",
        "log_levels": {"motion.clip": "INFO"},
        "export_worker_log_level": "WARNING",
    },
    "recorder": {
        "fps": 30,
        "use_parent_of_all": True,
        "use_center_as_parent_of_all": True,
        "use_absolute_coordinate_system": True,
        "ignore_initial_position": False,
        "ignore_initial_rotation": False,
        "use_bottom_center": False,
        "trim_morph_number": True,
        "key_reduction_level": 3,
        "parent_of_all_offset": [0.0, 0.0, 0.0],
        "enforce_a_pose": True,
        "a_pose_degrees": 30.0,
    },
    "sampler": {
        "bone_amplifier": 12.5,
        "morph_amplifier": 0.01,
        "right_foot_ik_offset": [0.05238038, 0.115296, -0.02825557],
        "left_foot_ik_offset": [-0.05238038, 0.115296, -0.02825557],
        "left_toe_ik_offset": [-0.001641536, -0.07096878, 0.1238693],
        "right_toe_ik_offset": [0.001641536, -0.07096878, 0.1238693],
    },
    "retarget": {
        "face_camera": False,
        "apply_root_motion": True,
        "grounding": {
            "enabled": True,
            "target_height": 0.0,
            "foot_radius": 0.08,
            "large_threshold": 0.05,
            "large_damping": 0.5,
            "small_damping": 0.1,
            "epsilon": 1e-5,
        },
    },
    "export": {
        "output_dir": "./output",
        "model_name": "",
    },
}


class Config:
    """Centralized configuration manager with dot-notation access."""

    _instance: Optional["Config"] = None
    _config: dict = {}

    def __new__(cls, config_path: Optional[str] = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        if self._initialized and config_path is None:
            return

        if config_path is None:
            config_path = self._find_config()

        self._load(config_path)
        self._initialized = True

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """
        Build a standalone config (not the shared instance).

        Missing keys fall back to DEFAULT_CONFIG.
        """
        config = object.__new__(cls)
        config._config = _merge(copy.deepcopy(DEFAULT_CONFIG), data)
        config._config_path = None
        config._initialized = True
        return config

    def _find_config(self) -> Optional[str]:
        """Find config.yaml in project root."""
        current = Path(__file__).parent
        for _ in range(5):
            config_file = current / "config.yaml"
            if config_file.exists():
                return str(config_file)
            current = current.parent

        return None

    def _load(self, config_path: Optional[str]) -> None:
        """Load configuration from YAML file, layered over the defaults."""
        data = {}
        if config_path is not None:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        self._config = _merge(copy.deepcopy(DEFAULT_CONFIG), data)
        self._config_path = config_path

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get config value using dot notation.

        Example:
            config.get("recorder.fps", 30)
            config.get("retarget.grounding.foot_radius")
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set config value using dot notation (runtime only, not persisted)."""
        keys = key.split(".")
        config = self._config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def save(self, path: Optional[str] = None) -> None:
        """Save current configuration to file."""
        save_path = path or self._config_path
        if save_path is None:
            raise ValueError("No path to save configuration to")
        with open(save_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self._config, f, default_flow_style=False, allow_unicode=True)

    @property
    def recorder(self) -> dict:
        return self._config.get("recorder", {})

    @property
    def sampler(self) -> dict:
        return self._config.get("sampler", {})

    @property
    def retarget(self) -> dict:
        return self._config.get("retarget", {})

    @property
    def export(self) -> dict:
        return self._config.get("export", {})

    def __repr__(self) -> str:
        return f"Config({self._config_path})"


def _merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base (in place) and return base."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base
