"""
Method Resolver

Maps an incoming method name onto the restricted-method key that governs
it. Restricted methods are registered either literally ("eth_sign") or as
a namespace with a trailing wildcard ("snap_*"), which governs every
method sharing that prefix. Nested namespaces are supported:

    registered: {"eth_sign", "snap_*", "wallet_plugin_*"}

    eth_sign               -> eth_sign
    snap_getState          -> snap_*
    wallet_plugin_foo_bar  -> wallet_plugin_*
    unknown_op             -> "" (not found)
"""

from typing import Dict, FrozenSet, Iterable, Mapping
import logging
import re

logger = logging.getLogger(__name__)

NOT_FOUND = ""


class MethodResolver:
    """
    Resolves method names against a fixed set of restricted-method keys.

    The key set is read once at construction and never changes.
    """

    def __init__(
        self,
        method_names: Iterable[str],
        separator: str = "_",
        wildcard: str = "*",
    ):
        if not separator:
            raise ValueError("Namespace separator must be a non-empty string")
        if not wildcard:
            raise ValueError("Wildcard marker must be a non-empty string")

        self.separator = separator
        self.wildcard = wildcard
        self._method_names: FrozenSet[str] = frozenset(method_names)

        # Registered wildcard names with the marker stripped: "snap_*" -> "snap_"
        pattern = re.compile(rf"(.+){re.escape(wildcard)}$")
        self._wildcard_prefixes: FrozenSet[str] = frozenset(
            match.group(1)
            for match in (pattern.match(name) for name in self._method_names)
            if match
        )

    @property
    def method_names(self) -> FrozenSet[str]:
        return self._method_names

    @property
    def wildcard_prefixes(self) -> FrozenSet[str]:
        return self._wildcard_prefixes

    def get_method_key_for(self, method: str) -> str:
        """
        Get the restricted-method key governing a method.

        Tries a verbatim match first, then walks the method's namespace
        segments, growing a candidate prefix one segment at a time until it
        hits a registered key or a registered wildcard prefix.

        Returns:
            The governing key, or NOT_FOUND ("") if none applies
        """
        if method in self._method_names:
            return method

        segments = method.split(self.separator)
        method_key = ""

        while (
            segments
            and method_key not in self._method_names
            and method_key not in self._wildcard_prefixes
        ):
            method_key += f"{segments.pop(0)}{self.separator}"

        if method_key in self._method_names:
            logger.debug(f"Resolved {method} to namespace key {method_key}")
            return method_key

        if method_key in self._wildcard_prefixes:
            logger.debug(f"Resolved {method} to wildcard key {method_key}{self.wildcard}")
            return f"{method_key}{self.wildcard}"

        logger.debug(f"No restricted method key for {method}")
        return NOT_FOUND

    def is_known(self, method: str) -> bool:
        """Check whether any restricted-method key governs a method"""
        return self.get_method_key_for(method) != NOT_FOUND


def get_restricted_method_map(restricted_methods: Mapping[str, object]) -> Dict[str, object]:
    """
    Copy a restricted-method table, validating its names.

    Raises:
        ValueError: If any name is empty or not a string
    """
    method_map = {}
    for method_name, implementation in restricted_methods.items():
        if not method_name or not isinstance(method_name, str):
            raise ValueError(f"Invalid method name: {method_name!r}")
        method_map[method_name] = implementation
    return method_map
