"""
Permission Controller

Grants, stores, queries and revokes caveat-constrained permissions held by
untrusted callers over a catalog of restricted methods, and caches
descriptive metadata about those callers.
"""

__version__ = "0.1.0"

from .bootstrap import PermissionSystem, configure_logging, create_permission_system
from .core import (
    Caveat,
    JsonRpcRequest,
    JsonRpcResponse,
    Messenger,
    Permission,
    PermissionController,
    PermissionControllerError,
    PermissionMiddleware,
    SubjectMetadataController,
)

__all__ = [
    "__version__",
    "PermissionSystem",
    "configure_logging",
    "create_permission_system",
    "Caveat",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "Messenger",
    "Permission",
    "PermissionController",
    "PermissionControllerError",
    "PermissionMiddleware",
    "SubjectMetadataController",
]
