"""
Bootstrap for the permission system

Wires a messenger, the permission controller, the subject metadata
controller and the permission middleware from one ControllerConfig.

Restricted method implementations and the approval hook are code, not
configuration, so they are passed in alongside the config:

    system = create_permission_system(
        load_config(),
        restricted_methods={"eth_accounts": get_accounts, "snap_*": run_snap},
        request_user_approval=ask_user,
    )
    response = system.middleware.handle(request, origin)
"""

from dataclasses import dataclass
from typing import Mapping, Optional
import logging

from .config import ControllerConfig, LoggingConfig
from .core.caveat import CaveatSpecifications
from .core.caveat_functions import create_builtin_caveat_specifications
from .core.messenger import Messenger
from .core.permission_controller import PermissionController
from .core.permission_middleware import ApprovalHook, PermissionMiddleware
from .core.rpc import RequestHandler, RestrictedMethodImplementation
from .core.state import State
from .core.subject_metadata import SubjectMetadataController

logger = logging.getLogger(__name__)


@dataclass
class PermissionSystem:
    """Everything create_permission_system() builds"""
    config: ControllerConfig
    messenger: Messenger
    permission_controller: PermissionController
    subject_metadata_controller: SubjectMetadataController
    middleware: PermissionMiddleware


def configure_logging(config: LoggingConfig) -> None:
    """
    Configure root logging from config.

    Installs a handler with the configured format if the root logger has
    none yet; the level is applied either way.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.format)
    logging.getLogger().setLevel(level)


def create_permission_system(
    config: ControllerConfig,
    restricted_methods: Mapping[str, RestrictedMethodImplementation],
    request_user_approval: Optional[ApprovalHook] = None,
    caveat_specifications: Optional[CaveatSpecifications] = None,
    messenger: Optional[Messenger] = None,
    downstream: Optional[RequestHandler] = None,
    permission_state: Optional[State] = None,
    subject_metadata_state: Optional[State] = None,
    apply_logging_config: bool = True,
) -> PermissionSystem:
    """
    Build a ready-to-use permission system.

    Args:
        config: Loaded configuration
        restricted_methods: Method name (or "namespace_*") -> implementation
        request_user_approval: Hook deciding permission requests
        caveat_specifications: Caveat types; defaults to the built-ins
            enabled by config.permissions.caveat_types
        messenger: Shared messenger (a new one if omitted)
        downstream: Handler for safe methods
        permission_state: Permission state to rehydrate
        subject_metadata_state: Subject metadata state to rehydrate
        apply_logging_config: Apply config.logging to the root logger

    Returns:
        PermissionSystem bundling the wired components
    """
    config.validate()
    if apply_logging_config:
        configure_logging(config.logging)

    messenger = messenger or Messenger()

    if caveat_specifications is None:
        caveat_specifications = create_builtin_caveat_specifications(config.permissions.caveat_types)

    permission_controller = PermissionController(
        messenger=messenger,
        caveat_specifications=caveat_specifications,
        method_prefix=config.permissions.method_prefix,
        restricted_methods=restricted_methods,
        safe_methods=config.permissions.safe_methods,
        state=permission_state,
        namespace_separator=config.permissions.namespace_separator,
        wildcard=config.permissions.wildcard,
    )

    subject_metadata_controller = SubjectMetadataController(
        messenger=messenger,
        has_permissions=permission_controller.has_permissions,
        subject_cache_limit=config.subject_metadata.cache_limit,
        state=subject_metadata_state,
    )

    middleware = PermissionMiddleware(
        permission_controller,
        request_user_approval=request_user_approval,
        downstream=downstream,
    )

    logger.info(
        f"Permission system ready (prefix={config.permissions.method_prefix!r}, "
        f"cache_limit={config.subject_metadata.cache_limit})"
    )

    return PermissionSystem(
        config=config,
        messenger=messenger,
        permission_controller=permission_controller,
        subject_metadata_controller=subject_metadata_controller,
        middleware=middleware,
    )
