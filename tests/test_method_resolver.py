"""
Test Method Resolver

Verifies exact and namespaced (wildcard) resolution of method names.
"""

import pytest
from permission_controller.core.method_resolver import MethodResolver, NOT_FOUND, get_restricted_method_map


def noop(request, context):
    return None


class TestMethodResolver:
    """Test suite for restricted-method key resolution"""

    def setup_method(self):
        """Setup for each test"""
        self.resolver = MethodResolver(["eth_sign", "snap_*", "wallet_plugin_*", "eth_accounts"])

    def test_exact_match(self):
        """A literally registered name resolves to itself"""
        assert self.resolver.get_method_key_for("eth_sign") == "eth_sign"

    def test_wildcard_match(self):
        """A method under a wildcard namespace resolves to the wildcard key"""
        assert self.resolver.get_method_key_for("snap_getState") == "snap_*"

    def test_nested_wildcard_match(self):
        """Nested namespaces resolve to the registered nested wildcard"""
        assert self.resolver.get_method_key_for("wallet_plugin_foo_bar") == "wallet_plugin_*"

    def test_unknown_method(self):
        """An unregistered method resolves to the not-found sentinel"""
        assert self.resolver.get_method_key_for("unknown_op") == NOT_FOUND
        assert self.resolver.get_method_key_for("unknown_op") == ""
        assert not self.resolver.is_known("unknown_op")

    def test_sibling_literal_not_matched_by_prefix(self):
        """A literal key does not govern other methods in its namespace"""
        assert self.resolver.get_method_key_for("eth_signTypedData") == NOT_FOUND

    def test_wildcard_key_resolves_to_itself(self):
        """The wildcard key itself is registered verbatim"""
        assert self.resolver.get_method_key_for("snap_*") == "snap_*"

    def test_bare_namespace_matches_wildcard(self):
        """The bare namespace name is governed by its wildcard"""
        assert self.resolver.get_method_key_for("snap") == "snap_*"

    def test_empty_method(self):
        assert self.resolver.get_method_key_for("") == NOT_FOUND

    def test_literal_namespace_key(self):
        """A literal key ending in the separator governs its namespace"""
        resolver = MethodResolver(["plugin_"])
        assert resolver.get_method_key_for("plugin_run") == "plugin_"

    def test_wildcard_prefixes(self):
        """Wildcard registrations are exposed with the marker stripped"""
        assert self.resolver.wildcard_prefixes == frozenset({"snap_", "wallet_plugin_"})

    def test_custom_separator_and_wildcard(self):
        """Separator and wildcard marker are configurable"""
        resolver = MethodResolver(["fs.read", "net.#"], separator=".", wildcard="#")
        assert resolver.get_method_key_for("fs.read") == "fs.read"
        assert resolver.get_method_key_for("net.http.get") == "net.#"
        assert resolver.get_method_key_for("fs.write") == NOT_FOUND

    def test_empty_separator_rejected(self):
        with pytest.raises(ValueError):
            MethodResolver(["eth_sign"], separator="")


class TestRestrictedMethodMap:
    """Test suite for restricted-method table validation"""

    def test_valid_names_copied(self):
        table = {"eth_sign": noop, "snap_*": noop}
        method_map = get_restricted_method_map(table)
        assert method_map == table
        assert method_map is not table

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError, match="Invalid method name"):
            get_restricted_method_map({"": noop})

    def test_non_string_name_rejected(self):
        with pytest.raises(ValueError, match="Invalid method name"):
            get_restricted_method_map({42: noop})
