"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict, List, Optional

import yaml

from errors import ConfigurationError

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

DEFAULT_CONFIG: Dict[str, Any] = {
    'notion': {
        'token': None,
        'database_id': None,
        'required_tags': [],
        'api_version': '2022-06-28',
    },
    'output': {
        'content_directory': 'src/content/blog',
        'images_directory': 'public/images/notion',
        'image_url_prefix': '/images/notion',
        'progress_bars': True,
    },
    'advanced': {
        'request_timeout': 30,
        'max_retries': 3,
        'retry_backoff_factor': 2.0,
        'rate_limit': 0.34,
        'tag_batch_size': 10,
        'tag_batch_delay': 0.1,
        'resolve_tag_names': False,
        'image_workers': 4,
    },
    'logging': {
        'level': 'INFO',
        'file': None,
    },
    'report': {
        'path': None,
    },
}


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    ENV_OVERRIDES = {
        'NOTION_TOKEN': 'notion.token',
        'NOTION_DATABASE_ID': 'notion.database_id',
        'NOTION_REQUIRED_TAGS': 'notion.required_tags',
    }

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        Values missing from the file are filled from DEFAULT_CONFIG. Without a
        path the defaults alone are returned.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Parsed configuration dictionary

        Raises:
            ConfigurationError: If the file is missing, unreadable or not a mapping
        """
        config = copy.deepcopy(DEFAULT_CONFIG)
        if not config_path:
            return config

        if not os.path.exists(config_path):
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse {config_path}: {e}") from e

        if config_data is None:
            return config

        if not isinstance(config_data, dict):
            raise ConfigurationError("Configuration file must contain a dictionary")

        config_data = cls._substitute_env_vars_recursive(config_data)
        config = _deep_merge(config, config_data)

        # required_tags may be written as "A,B" in YAML
        tags = get_nested(config, 'notion.required_tags')
        if tags is None or isinstance(tags, str):
            _set_nested(config, 'notion.required_tags', parse_tag_list(tags or ''))

        return config

    @classmethod
    def from_environment(cls, config: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Overlay the NOTION_* environment variables onto a configuration.

        Args:
            config: Base configuration dictionary
            environ: Environment mapping (defaults to os.environ)

        Returns:
            New configuration dictionary
        """
        environ = os.environ if environ is None else environ
        merged = copy.deepcopy(config)

        for var_name, path in cls.ENV_OVERRIDES.items():
            value = environ.get(var_name)
            if value is None or value == '':
                continue
            if var_name == 'NOTION_REQUIRED_TAGS':
                value = parse_tag_list(value)
            _set_nested(merged, path, value)

        return merged

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration for required fields and correct values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ConfigurationError: If validation fails
        """
        cls._validate_required_field(config, 'notion.token')
        cls._validate_required_field(config, 'notion.database_id')

        required_tags = get_nested(config, 'notion.required_tags', [])
        if not isinstance(required_tags, list) or not all(isinstance(t, str) for t in required_tags):
            raise ConfigurationError("notion.required_tags must be a list of strings")

        cls._validate_required_field(config, 'output.content_directory')
        cls._validate_required_field(config, 'output.images_directory')

        content_dir = get_nested(config, 'output.content_directory')
        if os.path.exists(content_dir) and not os.path.isdir(content_dir):
            raise ConfigurationError(f"output.content_directory '{content_dir}' is not a directory")

        prefix = get_nested(config, 'output.image_url_prefix', '/images/notion')
        if not isinstance(prefix, str) or not prefix.startswith('/'):
            raise ConfigurationError("output.image_url_prefix must be an absolute path starting with /")

        for field in ('request_timeout', 'rate_limit', 'tag_batch_delay', 'retry_backoff_factor'):
            value = get_nested(config, f'advanced.{field}')
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                raise ConfigurationError(f"advanced.{field} must be a non-negative number")

        timeout = get_nested(config, 'advanced.request_timeout')
        if timeout <= 0:
            raise ConfigurationError("advanced.request_timeout must be a positive number")

        for field in ('tag_batch_size', 'image_workers'):
            value = get_nested(config, f'advanced.{field}')
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(f"advanced.{field} must be a positive integer")

        max_retries = get_nested(config, 'advanced.max_retries')
        if not isinstance(max_retries, int) or isinstance(max_retries, bool) or max_retries < 0:
            raise ConfigurationError("advanced.max_retries must be a non-negative integer")

        level = get_nested(config, 'logging.level', 'INFO')
        if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
            raise ConfigurationError(f"logging.level must be one of: {', '.join(LOG_LEVELS)}")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration file with CLI arguments.
        CLI arguments take precedence over config file values.

        Args:
            config: Base configuration dictionary
            args: CLI arguments with attributes matching config keys

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        for section in ('notion', 'output', 'logging', 'report'):
            if section not in merged:
                merged[section] = {}

        if getattr(args, 'tags', None):
            merged['notion']['required_tags'] = parse_tag_list(args.tags)

        if getattr(args, 'output_dir', None):
            merged['output']['content_directory'] = args.output_dir

        if getattr(args, 'images_dir', None):
            merged['output']['images_directory'] = args.images_dir

        if getattr(args, 'report', None):
            merged['report']['path'] = args.report

        if getattr(args, 'no_progress', False):
            merged['output']['progress_bars'] = False

        verbose = getattr(args, 'verbose', 0) or 0
        if verbose >= 2:
            merged['logging']['level'] = 'DEBUG'
        elif verbose == 1:
            merged['logging']['level'] = 'INFO'

        return merged

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
            var_name = match.group(1)
            env_value = os.getenv(var_name)
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @staticmethod
    def _validate_required_field(config: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config, field)
        if value is None or value == '':
            raise ConfigurationError(f"Missing required configuration: {field}")

        if isinstance(value, str) and '${' in value:
            match = ConfigLoader.ENV_VAR_PATTERN.search(value)
            var_name = match.group(1) if match else value
            raise ConfigurationError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Please set the {var_name} environment variable or provide a value in config file."
            )


def parse_tag_list(value: Any) -> List[str]:
    """Split a comma separated tag string into trimmed, non-empty names."""
    if isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        items = str(value).split(',')
    return [item.strip() for item in items if item.strip()]


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "notion.database_id")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    keys = path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


def _set_nested(config: dict, path: str, value: Any) -> None:
    keys = path.split('.')
    target = config
    for key in keys[:-1]:
        target = target.setdefault(key, {})
    target[keys[-1]] = value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


__all__ = ['ConfigLoader', 'DEFAULT_CONFIG', 'get_nested', 'parse_tag_list']
