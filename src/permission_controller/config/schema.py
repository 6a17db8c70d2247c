"""
Permission Controller Configuration Schema

Defines the configuration structure for the permission system.
All configuration can be specified via permissions.yaml or environment
variables (see loader.py).
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Optional

from ..core.caveat_functions import BUILTIN_CAVEAT_GENERATORS


@dataclass
class PermissionsConfig:
    """Configuration for the permission store"""
    method_prefix: str = "wallet_"
    namespace_separator: str = "_"
    wildcard: str = "*"
    safe_methods: List[str] = field(default_factory=list)
    # None enables every built-in caveat type
    caveat_types: Optional[List[str]] = None


@dataclass
class SubjectMetadataConfig:
    """Configuration for the subject metadata cache"""
    cache_limit: int = 100


@dataclass
class LoggingConfig:
    """Configuration for logging"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class ControllerConfig:
    """
    Central configuration for the permission system.

    Example permissions.yaml:
    ```yaml
    permissions:
      method_prefix: "wallet_"
      safe_methods:
        - eth_blockNumber
      caveat_types:
        - filterResponse
        - limitResponseLength

    subject_metadata:
      cache_limit: 100

    logging:
      level: INFO
    ```
    """
    permissions: PermissionsConfig = field(default_factory=PermissionsConfig)
    subject_metadata: SubjectMetadataConfig = field(default_factory=SubjectMetadataConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Additional metadata
    metadata: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        """
        Check configuration values.

        Raises:
            ValueError: On the first invalid value found
        """
        permissions = self.permissions
        if not isinstance(permissions.method_prefix, str):
            raise ValueError(f"permissions.method_prefix must be a string, got {permissions.method_prefix!r}")
        if not permissions.namespace_separator or not isinstance(permissions.namespace_separator, str):
            raise ValueError("permissions.namespace_separator must be a non-empty string")
        if not permissions.wildcard or not isinstance(permissions.wildcard, str):
            raise ValueError("permissions.wildcard must be a non-empty string")
        if not all(isinstance(m, str) and m for m in permissions.safe_methods):
            raise ValueError("permissions.safe_methods must be a list of method names")

        if permissions.caveat_types is not None:
            unknown = [t for t in permissions.caveat_types if t not in BUILTIN_CAVEAT_GENERATORS]
            if unknown:
                raise ValueError(f"Unknown caveat types in permissions.caveat_types: {unknown}")

        cache_limit = self.subject_metadata.cache_limit
        if not isinstance(cache_limit, int) or isinstance(cache_limit, bool) or cache_limit < 1:
            raise ValueError(f"subject_metadata.cache_limit must be a positive integer, got {cache_limit!r}")

        if not isinstance(logging.getLevelName(str(self.logging.level).upper()), int):
            raise ValueError(f"logging.level must be a logging level name, got {self.logging.level!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ControllerConfig":
        """Create ControllerConfig from dictionary (e.g., parsed YAML)"""
        permissions_data = data.get("permissions") or {}
        caveat_types = permissions_data.get("caveat_types")
        permissions_config = PermissionsConfig(
            method_prefix=permissions_data.get("method_prefix", "wallet_"),
            namespace_separator=permissions_data.get("namespace_separator", "_"),
            wildcard=permissions_data.get("wildcard", "*"),
            safe_methods=list(permissions_data.get("safe_methods") or []),
            caveat_types=list(caveat_types) if caveat_types is not None else None,
        )

        metadata_data = data.get("subject_metadata") or {}
        subject_metadata_config = SubjectMetadataConfig(
            cache_limit=metadata_data.get("cache_limit", 100),
        )

        logging_data = data.get("logging") or {}
        logging_config = LoggingConfig(
            level=str(logging_data.get("level", "INFO")).upper(),
            format=logging_data.get("format", LoggingConfig.format),
        )

        config = cls(
            permissions=permissions_config,
            subject_metadata=subject_metadata_config,
            logging=logging_config,
            metadata=data.get("metadata", {}),
        )
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (for serialization)"""
        return {
            "permissions": {
                "method_prefix": self.permissions.method_prefix,
                "namespace_separator": self.permissions.namespace_separator,
                "wildcard": self.permissions.wildcard,
                "safe_methods": list(self.permissions.safe_methods),
                "caveat_types": (
                    list(self.permissions.caveat_types)
                    if self.permissions.caveat_types is not None else None
                ),
            },
            "subject_metadata": {
                "cache_limit": self.subject_metadata.cache_limit,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
            },
            "metadata": self.metadata,
        }
