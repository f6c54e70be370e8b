"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict
from urllib.parse import urlparse

import yaml

from importers.batch_writer import MAX_BATCH_SIZE

DEFAULTS: Dict[str, Any] = {
    'source': {
        'base_url': None
    },
    'target': {
        'base_url': None,
        'credentials_path': None,
        'storage_bucket': None,
        'collections': {
            'pages': 'pages',
            'menu_sections': 'menuSections',
            'media': 'media'
        }
    },
    'cleaner': {
        'keep_classes': [],
        'keep_class_patterns': [],
        'remove_empty': True,
        'semanticize': True
    },
    'media': {
        'concurrency': 5,
        'timeout': 30,
        'max_retries': 3,
        'skip_existing': True,
        'max_redirects': 5,
        'download_dir': None,
        'public_path_prefix': '/images',
        'url_map_path': None
    },
    'migration': {
        'dry_run': False,
        'download_media': False,
        'upload_media': False,
        'output_directory': './migration/output',
        'batch_size': MAX_BATCH_SIZE
    },
    'logging': {
        'level': None,
        'file': None,
        'progress_bars': True
    }
}


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def defaults(cls) -> Dict[str, Any]:
        """Fresh copy of the default configuration."""
        return copy.deepcopy(DEFAULTS)

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        Values from the file are layered over the defaults.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        config_data = cls._substitute_env_vars_recursive(config_data)

        return cls._deep_merge(cls.defaults(), config_data)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ValueError: If validation fails
        """
        for field in ('source.base_url', 'target.base_url'):
            url = get_nested(config, field)
            if url:
                cls._validate_url(url, field)

        source_base = (get_nested(config, 'source.base_url') or '').rstrip('/')
        target_base = (get_nested(config, 'target.base_url') or '').rstrip('/')
        if source_base and target_base != source_base and target_base.startswith(source_base):
            # Links on the new base would also match the old one and never be rewritten
            raise ValueError(
                f"target.base_url must not extend source.base_url: {target_base} starts with {source_base}"
            )

        batch_size = get_nested(config, 'migration.batch_size', MAX_BATCH_SIZE)
        if not isinstance(batch_size, int) or isinstance(batch_size, bool) or not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"migration.batch_size must be an integer between 1 and {MAX_BATCH_SIZE}")

        concurrency = get_nested(config, 'media.concurrency', 5)
        if not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency < 1:
            raise ValueError("media.concurrency must be a positive integer")

        timeout = get_nested(config, 'media.timeout', 30)
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
            raise ValueError("media.timeout must be a positive number")

        max_redirects = get_nested(config, 'media.max_redirects', 5)
        if not isinstance(max_redirects, int) or isinstance(max_redirects, bool) or max_redirects < 0:
            raise ValueError("media.max_redirects must be a non-negative integer")

        for field in ('cleaner.keep_classes', 'cleaner.keep_class_patterns'):
            value = get_nested(config, field, [])
            if value is not None and not isinstance(value, list):
                raise ValueError(f"{field} must be a list")

        for pattern in get_nested(config, 'cleaner.keep_class_patterns', None) or []:
            try:
                re.compile(pattern)
            except (re.error, TypeError) as e:
                raise ValueError(f"cleaner.keep_class_patterns has an invalid pattern {pattern!r}: {e}")

        for field in ('cleaner.remove_empty', 'cleaner.semanticize', 'media.skip_existing'):
            value = get_nested(config, field, True)
            if not isinstance(value, bool):
                raise ValueError(f"{field} must be a boolean")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration file with CLI arguments.
        CLI arguments take precedence over config file values.

        Args:
            config: Base configuration dictionary
            args: Parsed CLI arguments

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        for section in ('migration', 'media', 'logging'):
            if not isinstance(merged.get(section), dict):
                merged[section] = {}

        if getattr(args, 'dry_run', False):
            merged['migration']['dry_run'] = True

        if getattr(args, 'download_media', False):
            merged['migration']['download_media'] = True

        if getattr(args, 'upload_media', False):
            merged['migration']['upload_media'] = True

        if getattr(args, 'output', None):
            merged['migration']['output_directory'] = args.output

        if getattr(args, 'url_map', None):
            merged['media']['url_map_path'] = args.url_map

        if getattr(args, 'verbose', 0):
            merged['logging']['level'] = 'DEBUG'

        return merged

    @classmethod
    def _deep_merge(cls, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively layer ``override`` over ``base``."""
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                base[key] = cls._deep_merge(base[key], value)
            else:
                base[key] = value
        return base

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        else:
            return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute environment variables in a string value."""
        def replace_match(match):
            env_value = os.getenv(match.group(1))
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @staticmethod
    def _validate_url(url: str, field_name: str) -> None:
        """Validate URL format."""
        parsed = urlparse(url)
        if not parsed.scheme or parsed.scheme not in ['http', 'https']:
            raise ValueError(f"{field_name} must use http or https scheme: {url}")
        if not parsed.netloc:
            raise ValueError(f"{field_name} missing hostname: {url}")


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "media.timeout")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    value = config
    for key in path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


__all__ = ['ConfigLoader', 'DEFAULTS', 'get_nested']
