"""
Permission Controller Configuration Loader

Loads configuration from YAML files with environment variable interpolation.

Environment Variable Interpolation:
- ${VAR_NAME} - Required variable, raises error if not set
- ${VAR_NAME:-default} - Optional variable with default value

Example:
```yaml
permissions:
  method_prefix: "${PERMISSIONS_METHOD_PREFIX:-wallet_}"
subject_metadata:
  cache_limit: 100
```
"""

import os
import re
from pathlib import Path
from typing import Any, Optional, Union
import logging

import yaml

from .schema import ControllerConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "permissions.yaml"

# Pattern for environment variable substitution: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r'\$\{([^}:]+)(?::-([^}]*))?\}')


def _lookup_env_var(match: "re.Match") -> str:
    name, default = match.group(1), match.group(2)
    if name in os.environ:
        return os.environ[name]
    if default is not None:
        return default
    raise KeyError(f"Environment variable '{name}' is not set and has no default (use ${{{name}:-default}})")


def interpolate_env_vars(value: Any) -> Any:
    """
    Substitute ${VAR} and ${VAR:-default} references in every string of a
    parsed YAML tree. Non-string scalars are returned unchanged.

    Raises:
        KeyError: If a referenced variable is unset and has no default
    """
    if isinstance(value, str):
        return ENV_VAR_PATTERN.sub(_lookup_env_var, value)
    if isinstance(value, dict):
        return {key: interpolate_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def _coerce_cache_limit(raw_config: dict) -> None:
    # Interpolated values arrive as strings
    metadata = raw_config.get("subject_metadata")
    if isinstance(metadata, dict) and isinstance(metadata.get("cache_limit"), str):
        try:
            metadata["cache_limit"] = int(metadata["cache_limit"])
        except ValueError:
            raise ValueError(
                f"subject_metadata.cache_limit must be an integer, got {metadata['cache_limit']!r}"
            )


def load_config_from_file(
    config_path: Union[str, Path],
    interpolate: bool = True
) -> ControllerConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to permissions.yaml
        interpolate: Whether to interpolate environment variables (default: True)

    Returns:
        ControllerConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        KeyError: If required environment variable is not set
        ValueError: If a configuration value is invalid
        yaml.YAMLError: If YAML is malformed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ValueError(f"Configuration root must be a mapping: {config_path}")

    # Interpolate environment variables
    if interpolate:
        try:
            raw_config = interpolate_env_vars(raw_config)
        except KeyError as e:
            logger.error(f"Configuration error: {e}")
            raise
        _coerce_cache_limit(raw_config)

    return ControllerConfig.from_dict(raw_config)


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    working_dir: Optional[Union[str, Path]] = None,
) -> ControllerConfig:
    """
    Load configuration with sensible defaults.

    Search order for configuration:
    1. Explicit config_path if provided
    2. permissions.yaml (or config/permissions.yaml) in working_dir
    3. permissions.yaml (or config/permissions.yaml) in current directory
    4. Default configuration

    Args:
        config_path: Explicit path to configuration file
        working_dir: Working directory to search for permissions.yaml

    Returns:
        ControllerConfig instance
    """
    # If explicit path provided, use it
    if config_path:
        return load_config_from_file(config_path)

    search_paths = []

    if working_dir:
        working_dir = Path(working_dir)
        search_paths.append(working_dir / CONFIG_FILENAME)
        search_paths.append(working_dir / "config" / CONFIG_FILENAME)

    # Current directory
    cwd = Path.cwd()
    search_paths.append(cwd / CONFIG_FILENAME)
    search_paths.append(cwd / "config" / CONFIG_FILENAME)

    # Try each path
    for path in search_paths:
        if path.exists():
            logger.info(f"Found configuration at {path}")
            return load_config_from_file(path)

    # No config file found - return defaults
    logger.info(f"No {CONFIG_FILENAME} found, using default configuration")
    return ControllerConfig()


def create_default_config(output_path: Optional[Union[str, Path]] = None) -> Path:
    """
    Create a default permissions.yaml configuration file.

    Args:
        output_path: Where to write the config (default: ./permissions.yaml)

    Returns:
        Path to created configuration file
    """
    output_path = Path(output_path) if output_path else Path(CONFIG_FILENAME)

    default_config = """# Permission Controller Configuration
# Environment variables can be used: ${VAR_NAME} or ${VAR_NAME:-default}

permissions:
  # Internal methods become <prefix>getPermissions and <prefix>requestPermissions
  method_prefix: "wallet_"
  namespace_separator: "_"
  wildcard: "*"

  # Methods callable without any permission
  safe_methods: []

  # Enabled caveat types (omit or null for all built-in types)
  # caveat_types:
  #   - requireParamsIsSubset
  #   - requireParamsIsSuperset
  #   - forceParams
  #   - filterResponse
  #   - limitResponseLength

subject_metadata:
  # Distinct subjects tracked before metadata of unpermissioned ones is evicted
  cache_limit: 100

logging:
  level: "INFO"
"""

    with open(output_path, 'w') as f:
        f.write(default_config)

    logger.info(f"Created default configuration at {output_path}")
    return output_path
