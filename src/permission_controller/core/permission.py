"""
Permissions

A permission lets one subject (identified by its origin) invoke one
restricted method, optionally constrained by caveats.

Persisted shape:

    {
        "id": "...",
        "target": "eth_accounts",
        "invoker": "https://dapp.example",
        "caveats": [{"type": "limitResponseLength", "value": 1}] | None,
        "date": 1700000000000
    }
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from .caveat import Caveat


def _now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


@dataclass
class Permission:
    """A granted capability for one target method"""
    target: str
    invoker: str
    caveats: Optional[List[Caveat]] = None
    id: str = field(default_factory=lambda: str(uuid4()))
    date: int = field(default_factory=_now_ms)

    def __post_init__(self):
        # Never store an empty caveat list
        if not self.caveats:
            self.caveats = None

    def get_caveat(self, caveat_type: str) -> Optional[Caveat]:
        """Get the caveat of a type, if present"""
        for caveat in self.caveats or []:
            if caveat.type == caveat_type:
                return caveat
        return None

    def has_caveat(self, caveat_type: str) -> bool:
        return self.get_caveat(caveat_type) is not None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary"""
        return {
            "id": self.id,
            "target": self.target,
            "invoker": self.invoker,
            "caveats": [c.to_dict() for c in self.caveats] if self.caveats else None,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Permission":
        """Deserialize from dictionary"""
        caveats = data.get("caveats")
        kwargs = {}
        if data.get("id"):
            kwargs["id"] = data["id"]
        if data.get("date") is not None:
            kwargs["date"] = data["date"]
        return cls(
            target=data["target"],
            invoker=data["invoker"],
            caveats=[Caveat.from_dict(c) for c in caveats] if caveats else None,
            **kwargs,
        )


@dataclass
class PermissionsRequest:
    """
    A pending request for permissions, handed to the approval hook.

    The hook returns the requested-permissions mapping it approves
    (possibly narrowed), or None to reject the request.
    """
    origin: str
    permissions: Dict[str, Dict[str, Any]]
    id: str = field(default_factory=lambda: str(uuid4()))
    metadata: Dict[str, Any] = field(default_factory=dict)


def permissions_from_dict(data: Mapping[str, Mapping[str, Any]]) -> Dict[str, Permission]:
    """Deserialize a target -> permission-dict mapping"""
    return {target: Permission.from_dict(permission) for target, permission in data.items()}
