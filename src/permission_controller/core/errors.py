"""
Permission Controller Errors

Every error raised by the permission system is a PermissionControllerError.
Each carries a JSON-RPC style code so the RPC layer can turn it into an
error response without knowing the concrete class.

Codes:
- 4001   user rejected the request
- 4100   unauthorized (no permission, or a caveat denied the call)
- -32601 method not found
- -32602 invalid params
- -32603 internal (contract violations on permission state)
"""

from typing import Any, Dict, Mapping, Optional


USER_REJECTED_REQUEST = 4001
UNAUTHORIZED = 4100
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class PermissionControllerError(Exception):
    """Base class for all permission system errors"""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.data = data or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-RPC error object"""
        error = {"code": self.code, "message": self.message}
        if self.data:
            error["data"] = self.data
        return error


# =========================================================================
# Subject and permission state
# =========================================================================

class UnrecognizedSubject(PermissionControllerError):
    def __init__(self, origin: str):
        super().__init__(
            f'Unrecognized subject: "{origin}" has no permissions.',
            {"origin": origin},
        )


class InvalidSubjectIdentifier(PermissionControllerError):
    def __init__(self, origin: Any):
        super().__init__(
            f'Invalid subject identifier: "{origin}"',
            {"origin": origin if isinstance(origin, str) else repr(origin)},
        )


class PermissionNotFound(PermissionControllerError):
    def __init__(self, origin: str, target: str):
        super().__init__(
            f'Subject "{origin}" has no permission for "{target}".',
            {"origin": origin, "target": target},
        )


class PermissionTargetNotFound(PermissionControllerError):
    def __init__(self, origin: str, target: str):
        super().__init__(
            f'Subject "{origin}" requested a permission for unknown target "{target}".',
            {"origin": origin, "target": target},
        )


class PermissionHasNoCaveats(PermissionControllerError):
    def __init__(self, origin: str, target: str):
        super().__init__(
            f'Permission for "{target}" of subject "{origin}" has no caveats.',
            {"origin": origin, "target": target},
        )


# =========================================================================
# Caveats
# =========================================================================

def _caveat_type(caveat: Any) -> Any:
    if isinstance(caveat, Mapping):
        caveat_type = caveat.get("type")
        return caveat_type if isinstance(caveat_type, str) else repr(caveat_type)
    return None


class CaveatNotFound(PermissionControllerError):
    def __init__(self, origin: str, target: str, caveat_type: str):
        super().__init__(
            f'Permission for "{target}" of subject "{origin}" has no caveat of type "{caveat_type}".',
            {"origin": origin, "target": target, "caveatType": caveat_type},
        )


class CaveatTypeNotFound(PermissionControllerError):
    def __init__(self, caveat_type: Any, origin: str, target: str):
        super().__init__(
            f'Unknown caveat type "{caveat_type}" for permission "{target}" of subject "{origin}".',
            {"origin": origin, "target": target, "caveatType": caveat_type if isinstance(caveat_type, str) else repr(caveat_type)},
        )


class CaveatMissingValue(PermissionControllerError):
    def __init__(self, caveat: Any, origin: str, target: str):
        super().__init__(
            'Caveat is missing "value" field.',
            {"origin": origin, "target": target, "caveatType": _caveat_type(caveat)},
        )


class InvalidCaveatFields(PermissionControllerError):
    def __init__(self, caveat: Any, origin: str, target: str):
        super().__init__(
            'Caveat must have exactly the fields "type" and "value".',
            {"origin": origin, "target": target, "caveatType": _caveat_type(caveat)},
        )


class InvalidCaveatJson(PermissionControllerError):
    def __init__(self, caveat: Any, origin: str, target: str):
        super().__init__(
            f'Caveat "{_caveat_type(caveat)}" value is not valid JSON.',
            {"origin": origin, "target": target, "caveatType": _caveat_type(caveat)},
        )


class InvalidCaveatValue(PermissionControllerError):
    def __init__(self, caveat: Any, origin: str, target: str, reason: str):
        super().__init__(
            f'Caveat "{_caveat_type(caveat)}" has an invalid value: {reason}',
            {"origin": origin, "target": target, "caveatType": _caveat_type(caveat)},
        )


# =========================================================================
# RPC-facing errors
# =========================================================================

class MethodNotFound(PermissionControllerError):
    code = METHOD_NOT_FOUND

    def __init__(self, method_name: str):
        super().__init__(
            f'The method "{method_name}" does not exist / is not available.',
            {"methodName": method_name},
        )


class InvalidParams(PermissionControllerError):
    code = INVALID_PARAMS

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, data)


class AuthorizationDenied(PermissionControllerError):
    code = UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized to perform action.", data: Optional[Dict[str, Any]] = None):
        super().__init__(message, data)


class UserRejectedRequest(PermissionControllerError):
    code = USER_REJECTED_REQUEST

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        super().__init__("User rejected the request.", data)
