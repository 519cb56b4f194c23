#!/usr/bin/env python3
"""
Configuration Management Module
Handles loading and validating configuration files

Created: 2025
"""

import copy
import json
import os
import shutil
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from .exceptions import ConfigError

DEFAULT_CONFIG: Dict[str, Any] = {
    "quality": {
        "min_brightness": 50.0,
        "max_brightness": 200.0,
        "min_sharpness": 100.0,
    },
    "recognition": {
        "threshold": 0.8,
    },
    "enrollment": {
        "required_frames_per_position": 3,
        "min_frames_per_position": 2,
        "auto_advance": True,
        "front_camera": True,
    },
    "extractor": {
        "model_path": "models/mobilefacenet.onnx",
        "input_size": 112,
        "embedding_dim": 192,
        "padding": 20,
    },
    "storage": {
        "path": "face_store.json",
        "key": "registered_faces",
    },
    "session": {
        "capture_interval_ms": 500,
    },
}


NUMERIC_KEYS = (
    "quality.min_brightness",
    "quality.max_brightness",
    "quality.min_sharpness",
    "recognition.threshold",
    "enrollment.required_frames_per_position",
    "enrollment.min_frames_per_position",
    "extractor.input_size",
    "extractor.embedding_dim",
    "extractor.padding",
    "session.capture_interval_ms",
)


class ConfigManager:
    """Configuration manager for the face enrollment system"""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration manager
        Args:
            config_path: Path to configuration file
        """
        self.config_path = config_path or "config.json"
        self.config = copy.deepcopy(DEFAULT_CONFIG)

        if os.path.exists(self.config_path):
            self.load_config()

    def load_config(self) -> bool:
        """
        Load configuration from file
        Returns:
            True if loaded successfully
        """
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                loaded_config = json.load(f)
        except (OSError, ValueError) as e:
            print(f"Error loading configuration: {e}", file=sys.stderr)
            return False

        if not isinstance(loaded_config, dict):
            print(f"Error loading configuration: {self.config_path} is not a JSON object", file=sys.stderr)
            return False

        self._deep_update(self.config, loaded_config)
        print(f"Configuration loaded from {self.config_path}")
        return True

    def save_config(self) -> bool:
        """
        Save current configuration to file, backing up any existing one
        Returns:
            True if saved successfully
        """
        try:
            if os.path.exists(self.config_path):
                timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
                backup_path = f"{self.config_path}.backup.{timestamp}"
                shutil.copy2(self.config_path, backup_path)
                print(f"📁 Backup created: {backup_path}")

            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self.config, f, indent=2)
        except OSError as e:
            print(f"Error saving configuration: {e}", file=sys.stderr)
            return False

        print(f"Configuration saved to {self.config_path}")
        return True

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value
        Args:
            key: Configuration key (supports dot notation, e.g. 'quality.min_sharpness')
            default: Default value if key not found
        Returns:
            Configuration value or default
        """
        value: Any = self.config
        try:
            for k in key.split("."):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value
        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        config = self.config

        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def _deep_update(self, base_dict: Dict, update_dict: Dict) -> None:
        for key, value in update_dict.items():
            if key in base_dict and isinstance(base_dict[key], dict) and isinstance(value, dict):
                self._deep_update(base_dict[key], value)
            else:
                base_dict[key] = value

    def validation_errors(self) -> List[str]:
        """List every problem with the current values"""
        errors = []

        values: Dict[str, float] = {}
        for key in NUMERIC_KEYS:
            value = self.get(key, 0)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                errors.append(f"{key} must be a number, got {type(value).__name__}")
            else:
                values[key] = value

        def known(*keys: str) -> bool:
            return all(key in values for key in keys)

        if known("quality.min_brightness", "quality.max_brightness"):
            if not 0 <= values["quality.min_brightness"] < values["quality.max_brightness"] <= 255:
                errors.append("quality brightness bounds must satisfy 0 <= min < max <= 255")

        if known("quality.min_sharpness") and values["quality.min_sharpness"] < 0:
            errors.append("quality.min_sharpness must not be negative")

        if known("recognition.threshold") and not -1 <= values["recognition.threshold"] <= 1:
            errors.append("recognition.threshold must be between -1 and 1")

        required_key = "enrollment.required_frames_per_position"
        minimum_key = "enrollment.min_frames_per_position"
        if known(minimum_key) and values[minimum_key] <= 0:
            errors.append(f"{minimum_key} must be positive")
        if known(required_key, minimum_key) and values[required_key] < values[minimum_key]:
            errors.append(f"{required_key} must be >= min_frames_per_position")

        for key in ("extractor.input_size", "extractor.embedding_dim", "session.capture_interval_ms"):
            if known(key) and values[key] <= 0:
                errors.append(f"{key} must be positive")

        if known("extractor.padding") and values["extractor.padding"] < 0:
            errors.append("extractor.padding must not be negative")

        storage_path = self.get("storage.path")
        if storage_path is not None and not isinstance(storage_path, str):
            errors.append(f"storage.path must be a string, got {type(storage_path).__name__}")
        elif storage_path:
            storage_dir = os.path.dirname(storage_path)
            if storage_dir and not os.path.exists(storage_dir):
                errors.append(f"Storage directory does not exist: {storage_dir}")

        return errors

    def validate_config(self) -> bool:
        """
        Validate configuration values
        Returns:
            True if configuration is valid
        """
        errors = self.validation_errors()
        if errors:
            print("Configuration validation errors:")
            for error in errors:
                print(f"  - {error}")
            return False
        return True

    def require_valid(self) -> None:
        """Raise ConfigError unless the configuration is valid"""
        errors = self.validation_errors()
        if errors:
            raise ConfigError("; ".join(errors))

    def print_config(self) -> None:
        print("=== Current Configuration ===")
        self._print_dict(self.config, indent=0)

    def _print_dict(self, d: Dict, indent: int) -> None:
        for key, value in d.items():
            if isinstance(value, dict):
                print("  " * indent + f"{key}:")
                self._print_dict(value, indent + 1)
            else:
                print("  " * indent + f"{key}: {value}")
