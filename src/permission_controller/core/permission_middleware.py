"""
Permission Middleware

Enforces permissions on incoming method calls:

1. Internal methods (<prefix>getPermissions, <prefix>requestPermissions)
   are served by the permission system itself
2. Safe methods pass straight through to the downstream handler
3. Everything else must resolve to a restricted method the caller holds a
   permission for; the call then runs through the permission's caveat chain

Permission errors come back as JSON-RPC error responses.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional
import logging

from .caveat_functions import CaveatMiddlewareFactory
from .errors import (
    AuthorizationDenied,
    InvalidParams,
    MethodNotFound,
    PermissionControllerError,
    UserRejectedRequest,
)
from .permission import Permission, PermissionsRequest
from .permission_controller import PermissionController
from .rpc import JsonRpcRequest, JsonRpcResponse, RequestHandler, RestrictedMethodContext

logger = logging.getLogger(__name__)

# Receives a pending request; returns the approved requested-permissions
# mapping, or None to reject it.
ApprovalHook = Callable[[PermissionsRequest], Optional[Mapping[str, Any]]]


class PermissionMiddleware:
    """
    RPC-side enforcement point for a PermissionController.

    Args:
        controller: The permission store to consult
        request_user_approval: Hook deciding permission requests
        downstream: Handler for safe methods
    """

    def __init__(
        self,
        controller: PermissionController,
        request_user_approval: Optional[ApprovalHook] = None,
        downstream: Optional[RequestHandler] = None,
    ):
        self.controller = controller
        self.request_user_approval = request_user_approval
        self.downstream = downstream
        self.caveat_factory = CaveatMiddlewareFactory(controller.caveat_specifications)

        prefix = controller.method_prefix
        self._internal_handlers: Dict[str, Callable[[JsonRpcRequest, str], Any]] = {
            f"{prefix}getPermissions": self._get_permissions,
            f"{prefix}requestPermissions": self._request_permissions,
        }

    def handle(self, request: JsonRpcRequest, origin: str) -> JsonRpcResponse:
        """
        Handle one request from a subject.

        Returns:
            Response with a result, or with an error for any
            PermissionControllerError raised along the way
        """
        try:
            return self._dispatch(request, origin)
        except PermissionControllerError as e:
            logger.warning(f"{request.method} from {origin} failed: {e.message}")
            return JsonRpcResponse(id=request.id, error=e.to_dict())

    def _dispatch(self, request: JsonRpcRequest, origin: str) -> JsonRpcResponse:
        internal_handler = self._internal_handlers.get(request.method)
        if internal_handler is not None:
            return JsonRpcResponse(id=request.id, result=internal_handler(request, origin))

        if request.method in self.controller.safe_methods:
            if self.downstream is None:
                raise MethodNotFound(request.method)
            return JsonRpcResponse(id=request.id, result=self.downstream(request))

        return self.execute_restricted_method(request, origin)

    # =========================================================================
    # Restricted methods
    # =========================================================================

    def get_governing_permission(self, origin: str, method: str) -> Optional[Permission]:
        """
        Permission authorizing a method call: the one held for the exact
        method name, else the one held for its resolved key.
        """
        permission = self.controller.get_permission(origin, method)
        if permission is not None:
            return permission

        method_key = self.controller.get_method_key_for(method)
        if method_key and method_key != method:
            return self.controller.get_permission(origin, method_key)
        return None

    def execute_restricted_method(self, request: JsonRpcRequest, origin: str) -> JsonRpcResponse:
        """
        Run a restricted method for a subject through its caveat chain.

        Raises:
            MethodNotFound: If no restricted method governs the method
            AuthorizationDenied: If the subject lacks permission, or a
                caveat denies the call
        """
        method_key = self.controller.get_method_key_for(request.method)
        implementation = self.controller.restricted_methods.get(method_key)
        if implementation is None:
            raise MethodNotFound(request.method)

        permission = self.get_governing_permission(origin, request.method)
        if permission is None:
            raise AuthorizationDenied(data={"origin": origin, "method": request.method})

        chain = self.caveat_factory.create_chain(permission.caveats, origin, permission.target)
        context = RestrictedMethodContext(origin=origin)

        logger.debug(f"Executing {request.method} ({method_key}) for {origin} with {len(chain)} caveat(s)")
        return chain.run(request, lambda req: implementation(req, context))

    # =========================================================================
    # Internal methods
    # =========================================================================

    def _get_permissions(self, _request: JsonRpcRequest, origin: str) -> List[Dict[str, Any]]:
        permissions = self.controller.get_permissions(origin) or {}
        return [permission.to_dict() for permission in permissions.values()]

    def _request_permissions(self, request: JsonRpcRequest, origin: str) -> List[Dict[str, Any]]:
        params = request.params
        if not isinstance(params, list) or not params or not isinstance(params[0], Mapping):
            raise InvalidParams(
                "Expected params to be a single-element array of requested permissions.",
                {"params": params},
            )

        requested = params[0]
        if not all(value is None or isinstance(value, Mapping) for value in requested.values()):
            raise InvalidParams("Each requested permission must be an object.", {"params": params})

        permissions_request = PermissionsRequest(
            origin=origin,
            permissions={method: dict(value or {}) for method, value in requested.items()},
        )
        if request.id is not None:
            permissions_request.id = str(request.id)

        if self.request_user_approval is None:
            raise UserRejectedRequest({"origin": origin})

        approved = self.request_user_approval(permissions_request)
        if approved is None:
            logger.info(f"Permission request {permissions_request.id} from {origin} rejected")
            raise UserRejectedRequest({"origin": origin})

        granted = self.controller.grant_permissions({"origin": origin}, approved)
        return [permission.to_dict() for permission in granted.values()]
