"""
RPC value types

Minimal request/response shapes the permission middleware and caveat
functions operate on. The concrete transport lives outside this package;
it only has to produce a JsonRpcRequest and consume a JsonRpcResponse.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union


RequestId = Optional[Union[str, int]]


@dataclass
class JsonRpcRequest:
    """An incoming method call"""
    method: str
    params: Any = None
    id: RequestId = None
    jsonrpc: str = "2.0"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JsonRpcRequest":
        return cls(
            method=data["method"],
            params=data.get("params"),
            id=data.get("id"),
            jsonrpc=data.get("jsonrpc", "2.0"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"jsonrpc": self.jsonrpc, "id": self.id, "method": self.method}
        if self.params is not None:
            data["params"] = self.params
        return data


@dataclass
class JsonRpcResponse:
    """The outcome of a method call: exactly one of result or error"""
    id: RequestId = None
    result: Any = None
    error: Optional[Dict[str, Any]] = None
    jsonrpc: str = "2.0"

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        data = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error
        else:
            data["result"] = self.result
        return data


@dataclass(frozen=True)
class RestrictedMethodContext:
    """Context handed to a restricted method implementation"""
    origin: str
    metadata: Dict[str, Any] = field(default_factory=dict)


# A restricted method receives the (possibly caveat-rewritten) request and
# the calling subject's context, and returns the result value.
RestrictedMethodImplementation = Callable[[JsonRpcRequest, RestrictedMethodContext], Any]

# Downstream handler for safe methods.
RequestHandler = Callable[[JsonRpcRequest], Any]
