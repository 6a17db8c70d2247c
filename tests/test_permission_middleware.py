"""
Test Permission Middleware

Verifies request dispatch: internal permission methods, safe methods,
and restricted methods run through their permission's caveat chain.
"""

import pytest
from unittest.mock import MagicMock

from permission_controller.core.caveat import Caveat
from permission_controller.core.caveat_functions import create_builtin_caveat_specifications
from permission_controller.core.errors import (
    AuthorizationDenied,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    MethodNotFound,
    UNAUTHORIZED,
    USER_REJECTED_REQUEST,
)
from permission_controller.core.messenger import Messenger
from permission_controller.core.permission_controller import PermissionController
from permission_controller.core.permission_middleware import PermissionMiddleware
from permission_controller.core.rpc import JsonRpcRequest


ORIGIN = "https://dapp.example"


def get_accounts(request, context):
    return ["0xa", "0xb", "0xc"]


def echo_params(request, context):
    return {"params": request.params, "origin": context.origin}


class TestPermissionMiddleware:
    """Test suite for PermissionMiddleware"""

    def setup_method(self):
        """Setup for each test"""
        self.controller = PermissionController(
            messenger=Messenger(),
            caveat_specifications=create_builtin_caveat_specifications(),
            method_prefix="wallet_",
            restricted_methods={
                "eth_accounts": get_accounts,
                "eth_sign": echo_params,
                "snap_*": echo_params,
            },
            safe_methods=["eth_blockNumber"],
        )
        self.approve = MagicMock(side_effect=lambda request: request.permissions)
        self.downstream = MagicMock(return_value="0x10")
        self.middleware = PermissionMiddleware(
            self.controller,
            request_user_approval=self.approve,
            downstream=self.downstream,
        )

    def call(self, method, params=None, request_id=1, origin=ORIGIN):
        return self.middleware.handle(JsonRpcRequest(method=method, params=params, id=request_id), origin)

    # Internal methods

    def test_get_permissions_empty(self):
        response = self.call("wallet_getPermissions")
        assert not response.is_error
        assert response.result == []

    def test_request_permissions_approved(self):
        response = self.call("wallet_requestPermissions", [{"eth_accounts": {}}], request_id="req-1")

        assert not response.is_error
        assert [p["target"] for p in response.result] == ["eth_accounts"]
        assert self.controller.has_permission(ORIGIN, "eth_accounts")

        pending = self.approve.call_args.args[0]
        assert pending.origin == ORIGIN
        assert pending.id == "req-1"
        assert pending.permissions == {"eth_accounts": {}}

    def test_request_permissions_rejected(self):
        self.approve.side_effect = lambda request: None
        response = self.call("wallet_requestPermissions", [{"eth_accounts": {}}])

        assert response.error["code"] == USER_REJECTED_REQUEST
        assert not self.controller.has_permissions(ORIGIN)

    def test_request_permissions_without_hook(self):
        middleware = PermissionMiddleware(self.controller)
        response = middleware.handle(
            JsonRpcRequest("wallet_requestPermissions", [{"eth_accounts": {}}], 1),
            ORIGIN,
        )
        assert response.error["code"] == USER_REJECTED_REQUEST

    @pytest.mark.parametrize("params", [None, [], {"eth_accounts": {}}, ["eth_accounts"], [{"eth_accounts": 1}]])
    def test_request_permissions_invalid_params(self, params):
        response = self.call("wallet_requestPermissions", params)
        assert response.error["code"] == INVALID_PARAMS
        self.approve.assert_not_called()

    def test_request_unknown_method(self):
        response = self.call("wallet_requestPermissions", [{"unknown_op": {}}])
        assert response.error["code"] == METHOD_NOT_FOUND

    def test_get_permissions_after_grant(self):
        self.call("wallet_requestPermissions", [{"eth_accounts": {}}])
        response = self.call("wallet_getPermissions")
        assert [p["invoker"] for p in response.result] == [ORIGIN]

    # Safe methods

    def test_safe_method_passes_through(self):
        response = self.call("eth_blockNumber")
        assert response.result == "0x10"
        self.downstream.assert_called_once()

    def test_safe_method_without_downstream(self):
        middleware = PermissionMiddleware(self.controller)
        response = middleware.handle(JsonRpcRequest("eth_blockNumber", id=1), ORIGIN)
        assert response.error["code"] == METHOD_NOT_FOUND

    # Restricted methods

    def test_restricted_without_permission(self):
        response = self.call("eth_accounts")
        assert response.error["code"] == UNAUTHORIZED
        assert response.id == 1

    def test_unknown_method(self):
        response = self.call("unknown_op")
        assert response.error["code"] == METHOD_NOT_FOUND

    def test_restricted_with_permission(self):
        self.controller.grant_permissions({"origin": ORIGIN}, {"eth_accounts": {}})
        response = self.call("eth_accounts")
        assert response.result == ["0xa", "0xb", "0xc"]

    def test_wildcard_permission_governs_namespace(self):
        """A permission held for "snap_*" authorizes any snap_ method"""
        self.controller.grant_permissions({"origin": ORIGIN}, {"snap_*": {}})
        response = self.call("snap_getState", ["key"])
        assert response.result == {"params": ["key"], "origin": ORIGIN}

    def test_exact_permission_within_namespace(self):
        self.controller.grant_permissions({"origin": ORIGIN}, {"snap_getState": {}})
        assert not self.call("snap_getState").is_error
        assert self.call("snap_setState").error["code"] == UNAUTHORIZED

    def test_response_caveats_applied(self):
        self.controller.grant_permissions({"origin": ORIGIN}, {"eth_accounts": {"caveats": [
            {"type": "filterResponse", "value": ["0xa", "0xc"]},
            {"type": "limitResponseLength", "value": 1},
        ]}})
        assert self.call("eth_accounts").result == ["0xa"]

    def test_params_caveat_denies(self):
        self.controller.grant_permissions({"origin": ORIGIN}, {"eth_sign": {"caveats": [
            {"type": "requireParamsIsSubset", "value": ["0xa", "hello"]},
        ]}})
        assert not self.call("eth_sign", ["0xa"]).is_error

        response = self.call("eth_sign", ["0xb"])
        assert response.error["code"] == UNAUTHORIZED

    def test_force_params_caveat(self):
        self.controller.grant_permissions({"origin": ORIGIN}, {"eth_sign": {"caveats": [
            {"type": "forceParams", "value": ["0xa", "fixed"]},
        ]}})
        assert self.call("eth_sign", ["0xb", "other"]).result["params"] == ["0xa", "fixed"]

    def test_caveat_changes_take_effect(self):
        self.controller.grant_permissions({"origin": ORIGIN}, {"eth_accounts": {}})
        self.controller.set_caveat(ORIGIN, "eth_accounts", Caveat("limitResponseLength", 2))
        assert self.call("eth_accounts").result == ["0xa", "0xb"]

        self.controller.remove_caveat(ORIGIN, "eth_accounts", "limitResponseLength")
        assert len(self.call("eth_accounts").result) == 3

    def test_malformed_stored_caveat_is_an_error_response(self):
        """A bad caveat value loaded from saved state fails cleanly at call time"""
        state = {"subjects": {ORIGIN: {"origin": ORIGIN, "permissions": {"eth_accounts": {
            "id": "p1",
            "target": "eth_accounts",
            "invoker": ORIGIN,
            "caveats": [{"type": "limitResponseLength", "value": 1.5}],
            "date": 1,
        }}}}}
        controller = PermissionController(
            messenger=Messenger(),
            caveat_specifications=create_builtin_caveat_specifications(),
            method_prefix="wallet_",
            restricted_methods={"eth_accounts": get_accounts},
            state=state,
        )

        response = PermissionMiddleware(controller).handle(JsonRpcRequest("eth_accounts", id=1), ORIGIN)
        assert response.error["code"] == INTERNAL_ERROR

    def test_execute_restricted_method_raises(self):
        with pytest.raises(AuthorizationDenied):
            self.middleware.execute_restricted_method(JsonRpcRequest("eth_accounts", id=1), ORIGIN)
        with pytest.raises(MethodNotFound):
            self.middleware.execute_restricted_method(JsonRpcRequest("unknown_op", id=1), ORIGIN)

    def test_implementation_errors_propagate(self):
        """Only permission errors become error responses"""
        def broken(request, context):
            raise RuntimeError("boom")

        controller = PermissionController(
            messenger=Messenger(),
            caveat_specifications=create_builtin_caveat_specifications(),
            method_prefix="wallet_",
            restricted_methods={"eth_accounts": broken},
        )
        controller.grant_permissions({"origin": ORIGIN}, {"eth_accounts": {}})

        with pytest.raises(RuntimeError):
            PermissionMiddleware(controller).handle(JsonRpcRequest("eth_accounts", id=1), ORIGIN)
