"""
Permission Controller

Authoritative store of which subjects hold which permissions.

State shape:

    {
        "subjects": {
            "<origin>": {
                "origin": "<origin>",
                "permissions": {"<target>": <Permission dict>, ...}
            }
        }
    }

Invariants:
- A subject entry exists only while it holds at least one permission
- A permission's caveats are either None or a non-empty list

Every mutation runs as one StateController.update() transaction: all
validation happens before anything is committed, so a failed call leaves
state untouched.
"""

from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional
import copy
import logging

from .caveat import Caveat, CaveatEngine, CaveatSpecification, CaveatSpecifications
from .errors import (
    CaveatNotFound,
    InvalidParams,
    InvalidSubjectIdentifier,
    MethodNotFound,
    PermissionHasNoCaveats,
    PermissionNotFound,
    PermissionTargetNotFound,
    UnrecognizedSubject,
)
from .messenger import Messenger
from .method_resolver import MethodResolver, get_restricted_method_map
from .permission import Permission, permissions_from_dict
from .rpc import RestrictedMethodImplementation
from .state import State, StateController

logger = logging.getLogger(__name__)

CONTROLLER_NAME = "PermissionController"


def get_default_state() -> State:
    return {"subjects": {}}


def get_internal_method_names(method_prefix: str) -> FrozenSet[str]:
    """Methods the permission system itself serves"""
    return frozenset({
        f"{method_prefix}getPermissions",
        f"{method_prefix}requestPermissions",
    })


class PermissionController(StateController):
    """
    Grants, queries and revokes permissions.

    Args:
        messenger: Shared messenger (actions and stateChange events)
        caveat_specifications: Valid caveat types
        method_prefix: Prefix of the internal permission methods
        restricted_methods: Method name (or "namespace_*") -> implementation
        safe_methods: Methods callable without any permission
        state: Initial state to rehydrate from
        namespace_separator: Separator between method namespace segments
        wildcard: Trailing marker of a namespace registration
    """

    def __init__(
        self,
        messenger: Messenger,
        caveat_specifications: CaveatSpecifications,
        method_prefix: str,
        restricted_methods: Mapping[str, RestrictedMethodImplementation],
        safe_methods: Iterable[str] = (),
        state: Optional[State] = None,
        namespace_separator: str = "_",
        wildcard: str = "*",
    ):
        super().__init__(CONTROLLER_NAME, messenger, {**get_default_state(), **(state or {})})

        self.method_prefix = method_prefix
        self._caveat_engine = CaveatEngine(caveat_specifications)
        self._restricted_methods: Mapping[str, RestrictedMethodImplementation] = MappingProxyType(
            get_restricted_method_map(restricted_methods)
        )
        self._method_resolver = MethodResolver(
            self._restricted_methods.keys(),
            separator=namespace_separator,
            wildcard=wildcard,
        )
        self._safe_methods: FrozenSet[str] = frozenset(safe_methods)
        self._internal_methods = get_internal_method_names(method_prefix)

        self._register_message_handlers()

        logger.info(
            f"PermissionController ready: {len(self._restricted_methods)} restricted methods, "
            f"caveat types {sorted(self._caveat_engine.caveat_types)}"
        )

    def _register_message_handlers(self) -> None:
        self.messenger.register_action_handler(f"{CONTROLLER_NAME}:getSubjects", self.get_subjects)
        self.messenger.register_action_handler(f"{CONTROLLER_NAME}:clearPermissions", self.clear_state)

    # =========================================================================
    # Configuration (read-only)
    # =========================================================================

    @property
    def safe_methods(self) -> FrozenSet[str]:
        return self._safe_methods

    @property
    def internal_methods(self) -> FrozenSet[str]:
        return self._internal_methods

    @property
    def restricted_methods(self) -> Mapping[str, RestrictedMethodImplementation]:
        return self._restricted_methods

    @property
    def caveat_specifications(self) -> Mapping[str, CaveatSpecification]:
        return self._caveat_engine.specifications

    @property
    def caveat_engine(self) -> CaveatEngine:
        return self._caveat_engine

    @property
    def method_resolver(self) -> MethodResolver:
        return self._method_resolver

    def get_method_key_for(self, method: str) -> str:
        """Restricted-method key governing a method, or "" if none"""
        return self._method_resolver.get_method_key_for(method)

    def get_restricted_method(self, method: str) -> Optional[RestrictedMethodImplementation]:
        """Implementation governing a method, resolving namespaces"""
        return self._restricted_methods.get(self.get_method_key_for(method))

    # =========================================================================
    # Queries
    # =========================================================================

    def clear_state(self) -> None:
        """Reset to the empty default state"""
        self.update(lambda _draft: get_default_state())
        logger.info("Cleared all permissions")

    def get_subjects(self) -> List[str]:
        return list(self._state["subjects"].keys())

    def get_permission(self, origin: str, target: str) -> Optional[Permission]:
        subject = self._state["subjects"].get(origin)
        if not subject:
            return None
        permission = subject["permissions"].get(target)
        return Permission.from_dict(permission) if permission else None

    def get_permissions(self, origin: str) -> Optional[Dict[str, Permission]]:
        subject = self._state["subjects"].get(origin)
        if not subject:
            return None
        return permissions_from_dict(subject["permissions"])

    def has_permission(self, origin: str, target: str) -> bool:
        subject = self._state["subjects"].get(origin)
        return bool(subject and target in subject["permissions"])

    def has_permissions(self, origin: str) -> bool:
        """Whether the subject exists, i.e. holds any permission"""
        return origin in self._state["subjects"]

    def get_caveat(self, origin: str, target: str, caveat_type: str) -> Optional[Caveat]:
        permission = self.get_permission(origin, target)
        return permission.get_caveat(caveat_type) if permission else None

    def has_caveat(self, origin: str, target: str, caveat_type: str) -> bool:
        return self.get_caveat(origin, target, caveat_type) is not None

    # =========================================================================
    # Permission mutations
    # =========================================================================

    def set_permission(self, origin: str, permission: Permission) -> None:
        """Add or overwrite one permission of a subject"""
        self.set_permissions(origin, {permission.target: permission})

    def set_permissions(self, origin: str, permissions: Mapping[str, Permission]) -> None:
        """
        Add permissions to a subject.

        Overwrites existing permissions for the same targets; other
        existing permissions are unaffected.
        """
        if not permissions:
            return

        serialized = {target: permission.to_dict() for target, permission in permissions.items()}

        def mutate(draft: State) -> None:
            subject = draft["subjects"].setdefault(origin, {"origin": origin, "permissions": {}})
            subject["permissions"].update(serialized)

        self.update(mutate)

    def revoke_permission(self, origin: str, target: str) -> None:
        """
        Revoke one permission. Revoking a subject's last permission
        removes the subject.

        Raises:
            UnrecognizedSubject: If the subject has no permissions
            PermissionNotFound: If the subject lacks this permission
        """
        def mutate(draft: State) -> None:
            subject = draft["subjects"].get(origin)
            if not subject:
                raise UnrecognizedSubject(origin)

            permissions = subject["permissions"]
            if target not in permissions:
                raise PermissionNotFound(origin, target)

            if len(permissions) > 1:
                del permissions[target]
            else:
                del draft["subjects"][origin]

        self.update(mutate)
        logger.info(f"Revoked {target} from {origin}")

    def revoke_all_permissions(self, origin: str) -> None:
        """
        Remove a subject and all its permissions.

        Raises:
            UnrecognizedSubject: If the subject has no permissions
        """
        def mutate(draft: State) -> None:
            if origin not in draft["subjects"]:
                raise UnrecognizedSubject(origin)
            del draft["subjects"][origin]

        self.update(mutate)
        logger.info(f"Revoked all permissions from {origin}")

    # =========================================================================
    # Caveat mutations
    # =========================================================================

    def set_caveat(self, origin: str, target: str, caveat: Caveat) -> None:
        """
        Add a caveat to a permission, replacing in place any existing
        caveat of the same type.

        Raises:
            Caveat errors: If the caveat is invalid
            PermissionNotFound: If the permission does not exist
        """
        new_caveat = self._caveat_engine.compute_caveats(origin, target, [caveat])[0].to_dict()

        def mutate(draft: State) -> None:
            permission = self._get_draft_permission(draft, origin, target)

            caveats = permission.get("caveats")
            if not caveats:
                permission["caveats"] = [new_caveat]
                return

            for index, existing in enumerate(caveats):
                if existing["type"] == new_caveat["type"]:
                    caveats[index] = new_caveat
                    return
            caveats.append(new_caveat)

        self.update(mutate)

    def remove_caveat(self, origin: str, target: str, caveat_type: str) -> None:
        """
        Remove a caveat from a permission. Removing the last caveat
        leaves the permission with caveats set to None.

        Raises:
            PermissionNotFound: If the permission does not exist
            PermissionHasNoCaveats: If the permission has no caveats
            CaveatNotFound: If no caveat of this type is present
        """
        def mutate(draft: State) -> None:
            permission = self._get_draft_permission(draft, origin, target)

            caveats = permission.get("caveats")
            if not caveats:
                raise PermissionHasNoCaveats(origin, target)

            index = next(
                (i for i, existing in enumerate(caveats) if existing["type"] == caveat_type),
                None,
            )
            if index is None:
                raise CaveatNotFound(origin, target, caveat_type)

            if len(caveats) == 1:
                permission["caveats"] = None
            else:
                del caveats[index]

        self.update(mutate)

    @staticmethod
    def _get_draft_permission(draft: State, origin: str, target: str) -> Dict[str, Any]:
        subject = draft["subjects"].get(origin)
        permission = subject["permissions"].get(target) if subject else None
        if not permission:
            raise PermissionNotFound(origin, target)
        return permission

    # =========================================================================
    # Granting
    # =========================================================================

    def grant_permissions(
        self,
        subject: Mapping[str, Any],
        requested_permissions: Mapping[str, Optional[Mapping[str, Any]]],
    ) -> Dict[str, Permission]:
        """
        Grant already-approved permissions to a subject.

        Args:
            subject: Subject metadata; must carry a string "origin"
            requested_permissions: Target method -> {"caveats": [...]}

        Returns:
            The permissions committed, keyed by target

        Raises:
            InvalidSubjectIdentifier: If the origin is missing or not a string
            InvalidParams: If a requested permission is not a mapping
            MethodNotFound: If a requested method is not governed by any key
            PermissionTargetNotFound: If no implementation backs the key
            Caveat errors: If any requested caveat is invalid
        """
        origin = subject.get("origin") if isinstance(subject, Mapping) else None
        if not origin or not isinstance(origin, str):
            raise InvalidSubjectIdentifier(origin)

        for method, request in requested_permissions.items():
            if request is not None and not isinstance(request, Mapping):
                raise InvalidParams(
                    f'Requested permission for "{method}" must be an object.',
                    {"origin": origin, "method": method},
                )
            if not self.get_method_key_for(method):
                logger.warning(f"Rejected grant to {origin}: unknown method {method}")
                raise MethodNotFound(method)

        permissions: Dict[str, Permission] = {}
        for method, request in requested_permissions.items():
            if self.get_method_key_for(method) not in self._restricted_methods:
                raise PermissionTargetNotFound(origin, method)

            permissions[method] = Permission(
                target=method,
                invoker=origin,
                caveats=self._caveat_engine.compute_caveats(
                    origin,
                    method,
                    (request or {}).get("caveats"),
                ),
            )

        self.set_permissions(origin, permissions)
        logger.info(f"Granted {sorted(permissions)} to {origin}")
        return copy.deepcopy(permissions)
