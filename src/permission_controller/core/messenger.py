"""
Messenger

Command-dispatch table plus event broadcast, shared by the controllers.

- Actions: one handler per name, called synchronously ("PermissionController:getSubjects")
- Events: any number of subscribers per name, called synchronously in
  subscription order ("PermissionController:stateChange")
"""

from collections import defaultdict
from typing import Any, Callable, DefaultDict, Dict, List
import logging

logger = logging.getLogger(__name__)

ActionHandler = Callable[..., Any]
EventHandler = Callable[..., None]


class Messenger:
    """Synchronous action registry and event bus"""

    def __init__(self):
        self._actions: Dict[str, ActionHandler] = {}
        self._subscribers: DefaultDict[str, List[EventHandler]] = defaultdict(list)

    # Actions

    def register_action_handler(self, action: str, handler: ActionHandler) -> None:
        """Register the handler for an action"""
        if action in self._actions:
            raise ValueError(f"Action handler already registered: {action}")
        self._actions[action] = handler
        logger.debug(f"Registered action handler: {action}")

    def unregister_action_handler(self, action: str) -> None:
        """Remove the handler for an action"""
        if action not in self._actions:
            raise KeyError(f"Action handler not registered: {action}")
        del self._actions[action]

    def has_action(self, action: str) -> bool:
        return action in self._actions

    def call(self, action: str, *args: Any) -> Any:
        """Call an action's handler and return its result"""
        handler = self._actions.get(action)
        if handler is None:
            raise KeyError(f"Action handler not registered: {action}")
        return handler(*args)

    # Events

    def subscribe(self, event: str, handler: EventHandler) -> None:
        """Subscribe to an event"""
        self._subscribers[event].append(handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        """Unsubscribe from an event"""
        handlers = self._subscribers.get(event, [])
        if handler not in handlers:
            raise KeyError(f"Handler not subscribed to {event}")
        handlers.remove(handler)

    def publish(self, event: str, *payload: Any) -> None:
        """Deliver an event to its subscribers, in subscription order"""
        for handler in list(self._subscribers.get(event, [])):
            handler(*payload)
