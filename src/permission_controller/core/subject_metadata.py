"""
Subject Metadata Controller

Caches descriptive metadata (name, icon, host) about subjects, keyed by
origin. Entries for subjects without permissions are disposable, so the
cache keeps memory bounded in two ways:

- trim_metadata_state(): drop every entry whose origin holds no permission
- add_subject_metadata(): remembers, in encounter order, at most
  `subject_cache_limit` distinct origins. Encountering a new origin when
  full forgets the oldest one and deletes its metadata, unless that
  origin holds a permission at that moment.
"""

from collections import OrderedDict
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlparse
import copy
import logging

from .errors import InvalidSubjectIdentifier
from .messenger import Messenger
from .state import State, StateController

logger = logging.getLogger(__name__)

CONTROLLER_NAME = "SubjectMetadataController"

STANDARD_FIELDS = ("name", "iconUrl", "extensionId")


def get_default_state() -> State:
    return {"subjectMetadata": {}}


def get_host(origin: str) -> Optional[str]:
    """Network location of an origin URL, if it has one"""
    return urlparse(origin).netloc or None


def normalize_subject_metadata(origin: str, metadata: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Build a stored metadata entry.

    Standard fields default to None; host defaults to the origin's
    network location. Extra fields are kept as-is.
    """
    entry = copy.deepcopy(dict(metadata))
    entry["origin"] = origin
    for key in STANDARD_FIELDS:
        entry.setdefault(key, None)
    if not entry.get("host"):
        entry["host"] = get_host(origin)
    return entry


def trim_metadata(subject_metadata: Dict[str, Any], has_permissions: Callable[[str], bool]) -> None:
    """Delete, in place, every entry whose origin holds no permission"""
    for origin in list(subject_metadata):
        if not has_permissions(origin):
            del subject_metadata[origin]


class SubjectMetadataController(StateController):
    """
    Owns subject metadata with permission-aware eviction.

    Args:
        messenger: Shared messenger
        has_permissions: origin -> whether it holds any permission
        subject_cache_limit: Max distinct origins tracked for eviction
        state: Initial state; trimmed of unpermissioned entries on load
    """

    def __init__(
        self,
        messenger: Messenger,
        has_permissions: Callable[[str], bool],
        subject_cache_limit: int,
        state: Optional[State] = None,
    ):
        if not isinstance(subject_cache_limit, int) or isinstance(subject_cache_limit, bool) or subject_cache_limit < 1:
            raise ValueError(f"subject_cache_limit must be a positive integer, got {subject_cache_limit!r}")

        initial_state = {**get_default_state(), **(state or {})}
        trim_metadata(initial_state["subjectMetadata"], has_permissions)

        super().__init__(CONTROLLER_NAME, messenger, initial_state)

        self._has_permissions = has_permissions
        self._subject_cache_limit = subject_cache_limit
        # Origins encountered since startup, oldest first
        self._subject_cache: "OrderedDict[str, None]" = OrderedDict()

        self._register_message_handlers()

    def _register_message_handlers(self) -> None:
        self.messenger.register_action_handler(f"{CONTROLLER_NAME}:clearState", self.clear_state)
        self.messenger.register_action_handler(
            f"{CONTROLLER_NAME}:trimSubjectMetadataState",
            self.trim_metadata_state,
        )

    @property
    def subject_cache_limit(self) -> int:
        return self._subject_cache_limit

    @property
    def tracked_origins(self) -> list:
        """Origins currently tracked for eviction, oldest first"""
        return list(self._subject_cache)

    def get_subject_metadata(self, origin: str) -> Optional[Dict[str, Any]]:
        entry = self._state["subjectMetadata"].get(origin)
        return copy.deepcopy(entry) if entry else None

    def clear_state(self) -> None:
        """Drop all metadata"""
        self.update(lambda _draft: get_default_state())
        logger.info("Cleared subject metadata")

    def trim_metadata_state(self) -> None:
        """Drop metadata of every subject holding no permission"""
        def mutate(draft: State) -> None:
            trim_metadata(draft["subjectMetadata"], self._has_permissions)

        patches = self.update(mutate)
        if patches:
            logger.info(f"Trimmed metadata of {len(patches)} unpermissioned subject(s)")

    def add_subject_metadata(self, origin: str, metadata: Mapping[str, Any]) -> None:
        """
        Store metadata for a subject, evicting the oldest tracked origin
        if the tracking set is full.
        """
        if not origin or not isinstance(origin, str):
            raise InvalidSubjectIdentifier(origin)

        entry = normalize_subject_metadata(origin, metadata)

        oldest: Optional[str] = None
        evicted: Optional[str] = None
        if origin not in self._subject_cache and len(self._subject_cache) >= self._subject_cache_limit:
            oldest = next(iter(self._subject_cache))
            if not self._has_permissions(oldest):
                evicted = oldest

        def mutate(draft: State) -> None:
            draft["subjectMetadata"][origin] = entry
            if evicted is not None:
                draft["subjectMetadata"].pop(evicted, None)

        self.update(mutate)

        # Tracking changes only once the metadata is committed
        if oldest is not None:
            del self._subject_cache[oldest]
        self._subject_cache[origin] = None

        if evicted is not None:
            logger.info(f"Evicted metadata of {evicted}")
