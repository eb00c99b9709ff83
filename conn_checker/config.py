"""
Probe policy configuration and settings file loading
"""

import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class ProbeConfig:
    """Process-wide probe policy, constant for a run"""

    # Probe policy
    connect_timeout: float = 5.0
    retry_count: int = 3  # total attempts, 0 means a single attempt
    retry_delay: float = 1.0
    concurrency_limit: int = 10

    # Global deadline in seconds, cancels pending retries when reached
    deadline: Optional[float] = None

    # Output
    log_dir: str = "."
    log_level: str = "INFO"
    show_colors: bool = True
    save_raw_results: bool = False
    raw_results_file: str = "raw_results.json"

    def __post_init__(self):
        """Validate values after initialisation"""
        self._validate_values()

    def _validate_types(self):
        """Settings files can carry any YAML type, reject the wrong ones early"""
        for name in ("connect_timeout", "retry_delay", "deadline"):
            value = getattr(self, name)
            if name == "deadline" and value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")

        for name in ("retry_count", "concurrency_limit"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")

        for name in ("log_dir", "log_level", "raw_results_file"):
            if not isinstance(getattr(self, name), str):
                raise ValueError(f"{name} must be a string, got {getattr(self, name)!r}")

        for name in ("show_colors", "save_raw_results"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be true or false, got {getattr(self, name)!r}")

    def _validate_values(self):
        self._validate_types()

        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be a positive number")
        if self.retry_count < 0:
            raise ValueError("retry_count must not be negative")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must not be negative")
        if self.concurrency_limit <= 0:
            raise ValueError("concurrency_limit must be a positive number")
        if self.deadline is not None and self.deadline <= 0:
            raise ValueError("deadline must be a positive number")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_log_levels:
            raise ValueError(f"log_level must be one of: {valid_log_levels}")

    @property
    def total_attempts(self) -> int:
        return max(self.retry_count, 1)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProbeConfig":
        """Create from a dictionary, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown settings: {', '.join(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})


class SettingsLoader:
    """Loads ProbeConfig from defaults, a settings file and overrides"""

    SETTINGS_FILES = [
        "conn_checker.yaml",
        "conn_checker.yml",
        "conn_checker.json",
    ]

    @classmethod
    def load(cls, settings_path: Optional[str] = None,
             overrides: Optional[Dict[str, Any]] = None) -> ProbeConfig:
        """
        Build the probe configuration

        Args:
            settings_path: Explicit settings file (optional)
            overrides: Values that win over the file, None values are skipped

        Returns:
            Validated configuration
        """
        config_dict = ProbeConfig().to_dict()

        found = cls._find_settings_file(settings_path)
        if found:
            config_dict.update(cls._load_settings_file(found))
            logger.info(f"Loaded settings from {found}")
        else:
            logger.debug("No settings file found, using defaults")

        if overrides:
            config_dict.update({k: v for k, v in overrides.items() if v is not None})

        return ProbeConfig.from_dict(config_dict)

    @classmethod
    def _find_settings_file(cls, settings_path: Optional[str] = None) -> Optional[Path]:
        if settings_path:
            path = Path(settings_path)
            if not path.is_file():
                raise ConfigError(f"Settings file not found: {settings_path}")
            return path

        for settings_file in cls.SETTINGS_FILES:
            path = Path(settings_file)
            if path.is_file():
                return path

        return None

    @staticmethod
    def _load_settings_file(filepath: Path) -> Dict[str, Any]:
        """Read a YAML or JSON mapping"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                if filepath.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read settings file {filepath}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file {filepath} must contain a mapping")
        return data
