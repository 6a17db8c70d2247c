"""
Controller State

Base class for controllers that own a JSON-shaped state tree.

State is only ever changed through update():

1. The committed state is deep-copied into a private draft
2. The mutator edits the draft (or returns a replacement state)
3. Patches between the committed state and the draft are computed
4. The draft becomes the committed state and "<Name>:stateChange" is
   published with (state, patches)

If the mutator raises, the draft is dropped and nothing is committed or
published. Readers always get copies, never the committed tree itself.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple
import copy
import logging

from .messenger import Messenger

logger = logging.getLogger(__name__)

State = Dict[str, Any]
Mutator = Callable[[State], Optional[State]]


@dataclass(frozen=True)
class Patch:
    """One change to a state tree"""
    op: str  # "add", "replace" or "remove"
    path: Tuple[Any, ...]
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"op": self.op, "path": list(self.path)}
        if self.op != "remove":
            data["value"] = self.value
        return data


def compute_patches(old: Any, new: Any, path: Tuple[Any, ...] = ()) -> List[Patch]:
    """
    Diff two state trees.

    Dicts are diffed key by key; any other changed value (including lists)
    is reported as a single replace at its path.
    """
    if isinstance(old, dict) and isinstance(new, dict):
        patches = []
        for key in old:
            if key not in new:
                patches.append(Patch("remove", path + (key,)))
            else:
                patches.extend(compute_patches(old[key], new[key], path + (key,)))
        for key in new:
            if key not in old:
                patches.append(Patch("add", path + (key,), copy.deepcopy(new[key])))
        return patches

    if type(old) is type(new) and old == new:
        return []

    return [Patch("replace", path, copy.deepcopy(new))]


class StateController:
    """
    Owns a state tree and publishes its changes.

    Registers "<name>:getState" on the messenger.
    """

    def __init__(self, name: str, messenger: Messenger, state: State):
        self.name = name
        self.messenger = messenger
        self._state: State = copy.deepcopy(state)

        self.messenger.register_action_handler(f"{self.name}:getState", lambda: self.state)

    @property
    def state(self) -> State:
        """Copy of the committed state"""
        return copy.deepcopy(self._state)

    @property
    def state_change_event(self) -> str:
        return f"{self.name}:stateChange"

    def update(self, mutator: Mutator) -> List[Patch]:
        """
        Apply a mutation as a single transaction.

        Args:
            mutator: Edits the draft in place, or returns a new state

        Returns:
            Patches describing the committed change (empty if none)
        """
        draft = copy.deepcopy(self._state)
        replacement = mutator(draft)
        next_state = draft if replacement is None else copy.deepcopy(replacement)

        patches = compute_patches(self._state, next_state)
        if not patches:
            return patches

        self._state = next_state
        logger.debug(f"{self.name} committed {len(patches)} patch(es)")
        self.messenger.publish(self.state_change_event, self.state, patches)
        return patches
