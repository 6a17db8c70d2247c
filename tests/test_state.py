"""
Test Messenger and StateController

Verifies action dispatch, event delivery, patch computation and the
all-or-nothing commit of state updates.
"""

import pytest
from unittest.mock import MagicMock

from permission_controller.core.messenger import Messenger
from permission_controller.core.state import Patch, StateController, compute_patches


class TestMessenger:
    """Test suite for Messenger"""

    def setup_method(self):
        """Setup for each test"""
        self.messenger = Messenger()

    def test_call_action(self):
        self.messenger.register_action_handler("Test:add", lambda a, b: a + b)
        assert self.messenger.has_action("Test:add")
        assert self.messenger.call("Test:add", 1, 2) == 3

    def test_duplicate_action(self):
        self.messenger.register_action_handler("Test:get", lambda: 1)
        with pytest.raises(ValueError):
            self.messenger.register_action_handler("Test:get", lambda: 2)

    def test_unknown_action(self):
        with pytest.raises(KeyError):
            self.messenger.call("Test:missing")

    def test_unregister_action(self):
        self.messenger.register_action_handler("Test:get", lambda: 1)
        self.messenger.unregister_action_handler("Test:get")
        assert not self.messenger.has_action("Test:get")
        with pytest.raises(KeyError):
            self.messenger.unregister_action_handler("Test:get")

    def test_publish_in_subscription_order(self):
        received = []
        self.messenger.subscribe("Test:event", lambda value: received.append(("first", value)))
        self.messenger.subscribe("Test:event", lambda value: received.append(("second", value)))

        self.messenger.publish("Test:event", 7)

        assert received == [("first", 7), ("second", 7)]

    def test_unsubscribe(self):
        handler = MagicMock()
        self.messenger.subscribe("Test:event", handler)
        self.messenger.unsubscribe("Test:event", handler)
        self.messenger.publish("Test:event", 1)

        handler.assert_not_called()
        with pytest.raises(KeyError):
            self.messenger.unsubscribe("Test:event", handler)

    def test_publish_without_subscribers(self):
        self.messenger.publish("Test:nobody", 1)


class TestComputePatches:
    """Test suite for compute_patches"""

    def test_no_change(self):
        assert compute_patches({"a": {"b": 1}}, {"a": {"b": 1}}) == []

    def test_add_remove_replace(self):
        patches = compute_patches({"a": 1, "b": 2}, {"a": 3, "c": 4})
        assert patches == [
            Patch("replace", ("a",), 3),
            Patch("remove", ("b",)),
            Patch("add", ("c",), 4),
        ]

    def test_nested_path(self):
        patches = compute_patches({"x": {"y": {"z": 1}}}, {"x": {"y": {"z": 2}}})
        assert patches == [Patch("replace", ("x", "y", "z"), 2)]

    def test_list_is_replaced_whole(self):
        patches = compute_patches({"a": [1, 2]}, {"a": [1, 3]})
        assert patches == [Patch("replace", ("a",), [1, 3])]

    def test_bool_and_int_differ(self):
        assert compute_patches({"a": 1}, {"a": True}) == [Patch("replace", ("a",), True)]

    def test_patch_to_dict(self):
        assert Patch("remove", ("a", "b")).to_dict() == {"op": "remove", "path": ["a", "b"]}
        assert Patch("add", ("a",), 1).to_dict() == {"op": "add", "path": ["a"], "value": 1}


class TestStateController:
    """Test suite for StateController"""

    def setup_method(self):
        """Setup for each test"""
        self.messenger = Messenger()
        self.listener = MagicMock()
        self.messenger.subscribe("Counter:stateChange", self.listener)
        self.controller = StateController("Counter", self.messenger, {"count": 0})

    def test_update_in_place(self):
        def increment(draft):
            draft["count"] += 1

        patches = self.controller.update(increment)

        assert self.controller.state == {"count": 1}
        assert patches == [Patch("replace", ("count",), 1)]
        self.listener.assert_called_once_with({"count": 1}, patches)

    def test_update_with_replacement(self):
        self.controller.update(lambda draft: {"count": 5})
        assert self.controller.state == {"count": 5}

    def test_no_op_update_publishes_nothing(self):
        assert self.controller.update(lambda draft: None) == []
        self.listener.assert_not_called()

    def test_failed_update_commits_nothing(self):
        """A mutator that raises after editing the draft leaves state untouched"""
        def broken(draft):
            draft["count"] = 99
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            self.controller.update(broken)

        assert self.controller.state == {"count": 0}
        self.listener.assert_not_called()

    def test_state_is_a_copy(self):
        self.controller.state["count"] = 42
        assert self.controller.state == {"count": 0}

    def test_initial_state_is_copied(self):
        initial = {"count": 0}
        controller = StateController("Other", Messenger(), initial)
        controller.update(lambda draft: {"count": 1})
        assert initial == {"count": 0}

    def test_get_state_action(self):
        assert self.messenger.call("Counter:getState") == {"count": 0}
        assert self.controller.state_change_event == "Counter:stateChange"
