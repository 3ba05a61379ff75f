"""
Configuration Management System for SafeSignal

Handles loading configuration from environment variables, config files,
and provides validation and runtime updates.
"""

import os
import json
import yaml
import logging
from typing import Any, Dict, List, Optional, Callable
from pathlib import Path
from dataclasses import dataclass

from safesignal.models.alert import WAVEFORMS


@dataclass
class ConfigSource:
    """Configuration source definition"""
    name: str
    priority: int
    loader: Callable
    path: Optional[str] = None


class ConfigurationError(Exception):
    """Configuration-related errors"""
    pass


DEFAULT_CONFIG: Dict[str, Any] = {
    "app": {
        "name": "SafeSignal",
        "version": "1.0.0",
        "debug": False
    },
    "location": {
        "once_timeout": 5.0,
        "watch_max_age": 2.0,
        "watch_timeout": 10.0
    },
    "dispatch": {
        "share_title": "SOS",
        "chat_service": "wa.me",
        "map_service": "maps.google.com"
    },
    "siren": {
        "waveform": "sawtooth",
        "base_frequency": 600.0,
        "sweep_amplitude": 400.0,
        "phase_step": 0.25,
        "tick_interval": 0.08,
        "gain": 0.05
    },
    "fake_call": {
        "default_delay": 10,
        "min_delay": 3,
        "max_delay": 60,
        "beep_waveform": "square",
        "beep_frequency": 880.0,
        "beep_duration": 1.2,
        "beep_gain": 0.1
    },
    "audio": {
        "sample_rate": 44100,
        "block_size": 512
    },
    "storage": {
        "path": "data/safesignal.json"
    },
    "logging": {
        "level": "INFO",
        "file": "logs/safesignal.log",
        "max_size": "10MB",
        "backup_count": 5
    }
}


class ConfigurationManager:
    """
    Manages system configuration with support for multiple sources,
    validation, and runtime updates.
    """

    def __init__(self, config_dir: str = "config"):
        self.config_dir = Path(config_dir)
        self.config: Dict[str, Any] = {}
        self.watchers: Dict[str, List[Callable]] = {}
        self.sources: List[ConfigSource] = []
        self.logger = logging.getLogger(__name__)

        self.defaults = json.loads(json.dumps(DEFAULT_CONFIG))

        self._setup_sources()

    def _setup_sources(self):
        """Set up configuration sources in priority order"""
        # Environment variables (highest priority)
        self.sources.append(ConfigSource(
            name="environment",
            priority=4,
            loader=self._load_from_env
        ))

        local_config_path = str(self.config_dir / "config.yaml")
        self.sources.append(ConfigSource(
            name="local_config",
            priority=3,
            loader=lambda: self._load_from_file(local_config_path),
            path=local_config_path
        ))

        default_config_path = str(self.config_dir / "default.yaml")
        self.sources.append(ConfigSource(
            name="default_config",
            priority=2,
            loader=lambda: self._load_from_file(default_config_path),
            path=default_config_path
        ))

        # Built-in defaults (lowest priority)
        self.sources.append(ConfigSource(
            name="defaults",
            priority=1,
            loader=lambda: self.defaults
        ))

    def load_config(self) -> None:
        """Load configuration from all sources"""
        self.logger.info("Loading configuration from all sources")

        merged_config = {}

        # Lowest priority first so later sources override
        for source in sorted(self.sources, key=lambda x: x.priority):
            try:
                source_config = source.loader()
                if source_config:
                    merged_config = self._deep_merge(merged_config, source_config)
                    self.logger.debug(f"Loaded configuration from {source.name}")
            except Exception as e:
                self.logger.warning(f"Failed to load config from {source.name}: {e}")

        self.config = merged_config
        self._validate_config()
        self.logger.info("Configuration loaded successfully")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        config = {}

        env_mappings = {
            "SAFESIGNAL_DEBUG": "app.debug",
            "SAFESIGNAL_LOG_LEVEL": "logging.level",
            "SAFESIGNAL_STORAGE_PATH": "storage.path",
            "SAFESIGNAL_FAKE_CALL_DELAY": "fake_call.default_delay"
        }

        for env_var, config_key in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                if value.lower() in ('true', 'false'):
                    value = value.lower() == 'true'
                elif value.isdigit():
                    value = int(value)

                self._set_nested_value(config, config_key, value)

        return config

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file"""
        path = Path(file_path)

        if not path.exists():
            return {}

        try:
            with open(path, 'r') as f:
                if path.suffix.lower() in ['.yaml', '.yml']:
                    return yaml.safe_load(f) or {}
                elif path.suffix.lower() == '.json':
                    return json.load(f)
                else:
                    self.logger.warning(f"Unsupported config file format: {path}")
                    return {}
        except Exception as e:
            self.logger.error(f"Error loading config file {path}: {e}")
            return {}

    def _deep_merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _set_nested_value(self, config: Dict, key_path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation"""
        keys = key_path.split('.')
        current = config

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def _validate_config(self) -> None:
        """Validate configuration values"""
        errors = []

        required_sections = ['app', 'location', 'siren', 'fake_call']
        for section in required_sections:
            if section not in self.config:
                errors.append(f"Missing required configuration section: {section}")

        log_level = str(self.get('logging.level', 'INFO'))
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if log_level.upper() not in valid_levels:
            errors.append(f"Invalid log level: {log_level}")

        for key in ('location.once_timeout', 'location.watch_max_age',
                    'location.watch_timeout', 'siren.tick_interval',
                    'fake_call.beep_duration'):
            value = self.get(key)
            if value is not None and (not isinstance(value, (int, float)) or value <= 0):
                errors.append(f"Invalid value for {key}: {value}")

        for key in ('siren.gain', 'fake_call.beep_gain'):
            gain = self.get(key)
            if gain is not None and (not isinstance(gain, (int, float)) or not 0 < gain <= 1):
                errors.append(f"Gain out of range for {key}: {gain}")

        for key in ('siren.waveform', 'fake_call.beep_waveform'):
            waveform = self.get(key)
            if waveform is not None and waveform not in WAVEFORMS:
                errors.append(f"Unknown waveform for {key}: {waveform} (expected one of {', '.join(WAVEFORMS)})")

        min_delay = self.get('fake_call.min_delay', 3)
        max_delay = self.get('fake_call.max_delay', 60)
        default_delay = self.get('fake_call.default_delay', 10)
        try:
            if not 3 <= min_delay <= default_delay <= max_delay <= 60:
                errors.append(
                    f"Fake call delays must satisfy 3 <= min <= default <= max <= 60, "
                    f"got min={min_delay} default={default_delay} max={max_delay}"
                )
        except TypeError:
            errors.append("Fake call delays must be integers")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation"""
        keys = key.split('.')
        current = self.config

        try:
            for k in keys:
                current = current[k]
            return current
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation"""
        self._set_nested_value(self.config, key, value)

        if key in self.watchers:
            for callback in self.watchers[key]:
                try:
                    callback(key, value)
                except Exception as e:
                    self.logger.error(f"Error in config watcher for {key}: {e}")

    def watch(self, key: str, callback: Callable[[str, Any], None]) -> None:
        """Watch for configuration changes"""
        if key not in self.watchers:
            self.watchers[key] = []
        self.watchers[key].append(callback)

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section"""
        return self.get(section, {})

    def export_config(self, file_path: str) -> None:
        """Export current configuration to file"""
        path = Path(file_path)

        try:
            with open(path, 'w') as f:
                if path.suffix.lower() in ['.yaml', '.yml']:
                    yaml.dump(self.config, f, default_flow_style=False, indent=2)
                elif path.suffix.lower() == '.json':
                    json.dump(self.config, f, indent=2)
                else:
                    raise ValueError(f"Unsupported file format: {path.suffix}")

            self.logger.info(f"Configuration exported to {path}")
        except Exception as e:
            self.logger.error(f"Failed to export configuration: {e}")
            raise ConfigurationError(f"Export failed: {e}")
