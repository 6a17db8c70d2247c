"""
Permission Controller Configuration Module

Provides centralized configuration management for the permission system.
"""

from .schema import ControllerConfig, PermissionsConfig, SubjectMetadataConfig, LoggingConfig
from .loader import load_config, load_config_from_file, create_default_config

__all__ = [
    "ControllerConfig",
    "PermissionsConfig",
    "SubjectMetadataConfig",
    "LoggingConfig",
    "load_config",
    "load_config_from_file",
    "create_default_config",
]
