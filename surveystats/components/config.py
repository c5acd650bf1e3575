"""
Configuration management for surveystats.

This module provides functionality for managing configuration,
including loading from environment variables, files and default values.
"""

import os
import json
import logging
import threading
from typing import Any, Dict, Optional
from copy import deepcopy
import yaml

# Set up logging
logger = logging.getLogger(__name__)


def to_int(value: Any) -> Optional[int]:
    """
    Convert a value to an integer.

    Args:
        value: Value to convert

    Returns:
        Integer value, or None if conversion failed
    """
    if value is None:
        return None

    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def to_float(value: Any) -> Optional[float]:
    """
    Convert a value to a float.

    Args:
        value: Value to convert

    Returns:
        Float value, or None if conversion failed
    """
    if value is None:
        return None

    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def to_bool(value: Any) -> Optional[bool]:
    """
    Convert a value to a boolean.

    Args:
        value: Value to convert

    Returns:
        Boolean value, or None if conversion failed
    """
    if value is None:
        return None

    if isinstance(value, bool):
        return value

    if isinstance(value, (int, float)):
        return bool(value)

    if isinstance(value, str):
        value = value.lower().strip()
        if value in ('true', 'yes', 'y', '1', 't'):
            return True
        if value in ('false', 'no', 'n', '0', 'f'):
            return False

    return None


def _env(name: str, convert, default: Any) -> Any:
    """Read an environment variable, keeping the default if it is unset or invalid."""
    if name not in os.environ:
        return default
    value = convert(os.environ[name])
    if value is None:
        logger.warning(f"Ignoring invalid value for {name}: {os.environ[name]!r}")
        return default
    return value


class Config:
    """
    Configuration manager for surveystats.
    """

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            overrides: Optional configuration overrides
        """
        self._lock = threading.RLock()
        self._config = {}
        self._initialized = False

        self.load_config(overrides)

    def load_config(self, overrides: Optional[Dict[str, Any]] = None) -> None:
        """
        Load configuration from all sources.

        Args:
            overrides: Optional configuration overrides
        """
        with self._lock:
            config = self._get_defaults()
            config = self._apply_env_vars(config)

            if overrides:
                config = self._apply_overrides(config, overrides)

            self._config = config
            self._initialized = True

            logger.info("Configuration loaded")

    def _get_defaults(self) -> Dict[str, Any]:
        """
        Get default configuration values.

        Returns:
            Default configuration
        """
        return {
            # Analysis
            'analysis': {
                'critical-value': 1.96,       # z multiplier for 95% intervals
                'min-cases': 3,               # complete cases for a correlation matrix
                'fa-cases-per-variable': 5,   # auto-mode factor analysis gate
                'power-iterations': 100,      # per eigenpair
                'rotation': 'varimax',        # varimax | none
                'varimax-max-iter': 100,
                'varimax-tolerance': 1e-6,
                'kmo-method': 'proxy',        # proxy | anti-image
                'exact-distributions': False  # scipy p-values instead of approximations
            },

            # Logging
            'logging': {
                'level': 'warn'
            }
        }

    def _apply_env_vars(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variables to configuration.

        Args:
            config: Current configuration

        Returns:
            Updated configuration
        """
        config = deepcopy(config)
        analysis = config['analysis']

        analysis['critical-value'] = _env('SURVEYSTATS_CRITICAL_VALUE', to_float, analysis['critical-value'])
        analysis['min-cases'] = _env('SURVEYSTATS_MIN_CASES', to_int, analysis['min-cases'])
        analysis['fa-cases-per-variable'] = _env('SURVEYSTATS_FA_CASES_PER_VARIABLE', to_int,
                                                 analysis['fa-cases-per-variable'])
        analysis['power-iterations'] = _env('SURVEYSTATS_POWER_ITERATIONS', to_int,
                                            analysis['power-iterations'])
        analysis['rotation'] = os.environ.get('SURVEYSTATS_ROTATION', analysis['rotation']).lower()
        analysis['kmo-method'] = os.environ.get('SURVEYSTATS_KMO_METHOD', analysis['kmo-method']).lower()
        analysis['exact-distributions'] = _env('SURVEYSTATS_EXACT_DISTRIBUTIONS', to_bool,
                                               analysis['exact-distributions'])

        config['logging']['level'] = os.environ.get('LOG_LEVEL', config['logging']['level']).lower()

        return config

    def _apply_overrides(self, config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply configuration overrides.

        Args:
            config: Current configuration
            overrides: Configuration overrides

        Returns:
            Updated configuration
        """
        config = deepcopy(config)

        def deep_update(d, u):
            for k, v in u.items():
                if isinstance(v, dict) and k in d and isinstance(d[k], dict):
                    d[k] = deep_update(d[k], v)
                else:
                    d[k] = v
            return d

        return deep_update(config, overrides)

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            path: Configuration path (dot-separated)
            default: Default value if not found

        Returns:
            Configuration value, or default if not found
        """
        if not self._initialized:
            self.load_config()

        value = self._config
        for component in path.split('.'):
            if isinstance(value, dict) and component in value:
                value = value[component]
            else:
                return default

        return value

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            path: Configuration path (dot-separated)
            value: Configuration value
        """
        with self._lock:
            if not self._initialized:
                self.load_config()

            components = path.split('.')
            config = self._config
            for component in components[:-1]:
                if component not in config:
                    config[component] = {}
                config = config[component]

            config[components[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert configuration to a dictionary.

        Returns:
            Configuration dictionary
        """
        if not self._initialized:
            self.load_config()

        return deepcopy(self._config)

    def save_to_file(self, filepath: str) -> None:
        """
        Save configuration to a file.

        Args:
            filepath: Path to save configuration (.json, .yaml or .yml)
        """
        if not self._initialized:
            self.load_config()

        if filepath.endswith('.json'):
            with open(filepath, 'w') as f:
                json.dump(self._config, f, indent=2)
        elif filepath.endswith('.yaml') or filepath.endswith('.yml'):
            with open(filepath, 'w') as f:
                yaml.dump(self._config, f, default_flow_style=False)
        else:
            raise ValueError(f"Unsupported file format: {filepath}")

    def load_from_file(self, filepath: str) -> None:
        """
        Load configuration from a file.

        Args:
            filepath: Path to load configuration from (.json, .yaml or .yml)
        """
        self.load_config(load_config_file(filepath))


def load_config_file(filepath: str) -> Dict[str, Any]:
    """
    Read configuration overrides from a JSON or YAML file.

    Args:
        filepath: Path to configuration file

    Returns:
        Configuration dictionary
    """
    if filepath.endswith('.json'):
        with open(filepath, 'r') as f:
            return json.load(f)
    elif filepath.endswith('.yaml') or filepath.endswith('.yml'):
        with open(filepath, 'r') as f:
            return yaml.safe_load(f) or {}
    else:
        raise ValueError(f"Unsupported configuration file format: {filepath}")


class ConfigManager:
    """
    Singleton manager for configuration.
    """

    _instance = None
    _lock = threading.RLock()

    @classmethod
    def get_config(cls, overrides: Optional[Dict[str, Any]] = None) -> Config:
        """
        Get the configuration instance.

        Args:
            overrides: Optional configuration overrides

        Returns:
            Config instance
        """
        with cls._lock:
            if cls._instance is None:
                cls._instance = Config(overrides)
            elif overrides:
                cls._instance.load_config(overrides)

            return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton so the next get_config() starts from scratch."""
        with cls._lock:
            cls._instance = None
