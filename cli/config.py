#!/usr/bin/env python3
"""
Configuration Management Module for the Airdrop CLI

Handles hierarchical configuration loading (defaults, profile, file,
environment) and conversion into validated build settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List, Union

import yaml
from pydantic import ValidationError

from registry.schema import BuildSettings

# Configuration file locations in order of precedence (highest to lowest)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / '.airdrop.yml',
    Path.cwd() / '.airdrop.json',
    Path.cwd() / 'airdrop.config.yml',
    Path.cwd() / 'airdrop.config.json',
]

# Environment variable prefix; double underscores separate nesting levels
ENV_PREFIX = 'AIRDROP_'
ENV_NESTING = '__'

DEFAULT_CONFIG = {
    'network': 'mainnet',  # mainnet, testnet, regtest

    'faucet': {
        'unit_reward': 1,
    },

    'tree': {
        'count_byte_order': 'big',  # big, little
    },

    'derive': {
        'workers': 1,
    },

    'output': {
        'tree_file': 'tree.bin',
        'proof_file': 'proofs.json',
        'summary_file': 'summary.json',
    },

    'cli': {
        'output_format': 'table',  # table, json, yaml
    },
}

# Configuration profiles
PROFILES = {
    'production': {
        'network': 'mainnet',
        'derive': {'workers': 4},
    },
    'testnet': {
        'network': 'testnet',
    },
    'development': {
        'network': 'regtest',
        'cli': {'output_format': 'json'},
    },
}


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or validated."""
    pass


class ConfigurationManager:
    """Manages hierarchical configuration with environment variable support."""

    def __init__(self, config_file: Optional[str] = None, profile: Optional[str] = None,
                 search_paths: Optional[List[Path]] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit configuration file path
            profile: Configuration profile to apply (production, testnet, development)
            search_paths: Locations searched when no explicit file is given
        """
        self.logger = logging.getLogger('airdrop-cli.config')
        self.config_file = config_file
        self.profile = profile
        self.search_paths = CONFIG_SEARCH_PATHS if search_paths is None else search_paths
        self._config_cache = None
        self._config_sources = []

    @property
    def sources(self) -> List[str]:
        return list(self._config_sources)

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from all sources in hierarchical order.

        Returns:
            Merged configuration dictionary

        Raises:
            ConfigError: If an explicit file is missing or unreadable, or the
                profile is unknown
        """
        if self._config_cache is not None:
            return self._config_cache

        configs = [DEFAULT_CONFIG]
        self._config_sources = ["defaults"]

        if self.profile:
            if self.profile not in PROFILES:
                raise ConfigError(f"Unknown profile: {self.profile}")
            configs.append(PROFILES[self.profile])
            self._config_sources.append(f"profile:{self.profile}")
            self.logger.debug(f"Applied profile: {self.profile}")

        if self.config_file:
            path = Path(self.config_file)
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            configs.append(self._load_config_file(path))
            self._config_sources.append(f"file:{path}")
        else:
            for config_path in self.search_paths:
                if config_path.exists():
                    configs.append(self._load_config_file(config_path))
                    self._config_sources.append(f"file:{config_path}")
                    self.logger.debug(f"Loaded config from {config_path}")
                    break  # Use first found config file

        env_config = self._load_environment_variables()
        if env_config:
            configs.append(env_config)
            self._config_sources.append("environment")

        self._config_cache = self._deep_merge(*configs)
        return self._config_cache

    def _load_config_file(self, path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML or JSON file."""
        try:
            with open(path, 'r') as f:
                if path.suffix in ['.yml', '.yaml']:
                    data = yaml.safe_load(f)
                elif path.suffix == '.json':
                    data = json.load(f)
                else:
                    raise ConfigError(f"Unknown config file format: {path}")
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        env_config = {}

        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                # e.g., AIRDROP_FAUCET__UNIT_REWARD -> {'faucet': {'unit_reward': value}}
                parts = key[len(ENV_PREFIX):].lower().split(ENV_NESTING)
                current = env_config

                for part in parts[:-1]:
                    current = current.setdefault(part, {})

                current[parts[-1]] = self._parse_env_value(value)

        return env_config

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool]:
        """Parse environment variable value to appropriate type."""
        # JSON covers numbers, booleans and nested values
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

        if value.lower() in ['true', 'yes']:
            return True
        elif value.lower() in ['false', 'no']:
            return False

        return value

    def _deep_merge(self, *dicts: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple dictionaries."""
        result = {}

        for dictionary in dicts:
            for key, value in dictionary.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = self._deep_merge(result[key], value)
                elif isinstance(value, dict):
                    result[key] = self._deep_merge(value)
                else:
                    result[key] = value

        return result

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        Args:
            key_path: Dot-separated path (e.g., 'faucet.unit_reward')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self.load()

        for key in key_path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def build_settings(self, **overrides: Any) -> BuildSettings:
        """
        Convert the merged configuration into validated build settings.

        Args:
            **overrides: Setting values taking precedence (None values are ignored)

        Raises:
            ConfigError: If the resulting settings are invalid
        """
        values = {
            'network': self.get('network'),
            'unit_reward': self.get('faucet.unit_reward'),
            'count_byte_order': self.get('tree.count_byte_order'),
            'derive_workers': self.get('derive.workers'),
            'tree_file': self.get('output.tree_file'),
            'proof_file': self.get('output.proof_file'),
            'summary_file': self.get('output.summary_file'),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        values = {k: v for k, v in values.items() if v is not None}

        try:
            return BuildSettings(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
