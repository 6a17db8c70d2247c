"""
Permission Controller Core

Permission state, caveat processing, method resolution and enforcement.
"""

from .caveat import Caveat, CaveatEngine, CaveatSpecification
from .caveat_functions import (
    CaveatChain,
    CaveatMiddlewareFactory,
    CaveatStage,
    CaveatType,
    create_builtin_caveat_specifications,
)
from .errors import (
    AuthorizationDenied,
    CaveatMissingValue,
    CaveatNotFound,
    CaveatTypeNotFound,
    InvalidCaveatFields,
    InvalidCaveatJson,
    InvalidCaveatValue,
    InvalidParams,
    InvalidSubjectIdentifier,
    MethodNotFound,
    PermissionControllerError,
    PermissionHasNoCaveats,
    PermissionNotFound,
    PermissionTargetNotFound,
    UnrecognizedSubject,
    UserRejectedRequest,
)
from .messenger import Messenger
from .method_resolver import MethodResolver
from .permission import Permission, PermissionsRequest
from .permission_controller import PermissionController
from .permission_middleware import PermissionMiddleware
from .rpc import JsonRpcRequest, JsonRpcResponse, RestrictedMethodContext
from .state import Patch, StateController
from .subject_metadata import SubjectMetadataController

__all__ = [
    # Caveats
    "Caveat",
    "CaveatEngine",
    "CaveatSpecification",
    "CaveatChain",
    "CaveatMiddlewareFactory",
    "CaveatStage",
    "CaveatType",
    "create_builtin_caveat_specifications",
    # Errors
    "PermissionControllerError",
    "AuthorizationDenied",
    "CaveatMissingValue",
    "CaveatNotFound",
    "CaveatTypeNotFound",
    "InvalidCaveatFields",
    "InvalidCaveatJson",
    "InvalidCaveatValue",
    "InvalidParams",
    "InvalidSubjectIdentifier",
    "MethodNotFound",
    "PermissionHasNoCaveats",
    "PermissionNotFound",
    "PermissionTargetNotFound",
    "UnrecognizedSubject",
    "UserRejectedRequest",
    # Controllers
    "Messenger",
    "MethodResolver",
    "Permission",
    "PermissionsRequest",
    "PermissionController",
    "PermissionMiddleware",
    "SubjectMetadataController",
    "StateController",
    "Patch",
    # RPC
    "JsonRpcRequest",
    "JsonRpcResponse",
    "RestrictedMethodContext",
]
