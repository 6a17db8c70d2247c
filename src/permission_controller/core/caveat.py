"""
Caveats

A caveat is a typed, JSON-valued constraint attached to a permission.
Valid caveat types are declared up front as CaveatSpecifications; the
CaveatEngine checks requested caveats against that table and produces
the Caveat records that end up in permission state.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union, TYPE_CHECKING
import copy
import logging

from .errors import (
    CaveatMissingValue,
    CaveatTypeNotFound,
    InvalidCaveatFields,
    InvalidCaveatJson,
    InvalidCaveatValue,
)
from .json_utils import is_valid_json

if TYPE_CHECKING:
    from .caveat_functions import CaveatStage

logger = logging.getLogger(__name__)

CAVEAT_FIELDS = frozenset({"type", "value"})


@dataclass
class Caveat:
    """A single caveat: its type and its JSON value"""
    type: str
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary"""
        return {"type": self.type, "value": copy.deepcopy(self.value)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Caveat":
        """Deserialize from dictionary"""
        return cls(type=data["type"], value=copy.deepcopy(data["value"]))


@dataclass(frozen=True)
class CaveatSpecification:
    """
    Declares one valid caveat type.

    The generator receives a validated Caveat and returns the CaveatStage
    (pre/post interceptors) enforcing it at invocation time. The optional
    validator receives the caveat value and raises ValueError if the value
    has the wrong shape for this type.
    """
    type: str
    generator: Callable[[Caveat], "CaveatStage"]
    description: str = ""
    validator: Optional[Callable[[Any], None]] = None


def validate_caveat_value(
    specification: CaveatSpecification,
    caveat: Mapping[str, Any],
    origin: str,
    target: str,
) -> None:
    """
    Run a specification's value validator, if it has one.

    Raises:
        InvalidCaveatValue: If the validator rejects the value
    """
    if specification.validator is None:
        return
    try:
        specification.validator(caveat["value"])
    except ValueError as e:
        raise InvalidCaveatValue(caveat, origin, target, str(e)) from e


CaveatSpecifications = Union[Mapping[str, CaveatSpecification], Iterable[CaveatSpecification]]


def freeze_caveat_specifications(
    specifications: CaveatSpecifications,
) -> Mapping[str, CaveatSpecification]:
    """
    Build a read-only specification table keyed by caveat type.

    Accepts either a mapping (whose keys are ignored in favour of each
    specification's own type) or a plain iterable of specifications.
    """
    if isinstance(specifications, Mapping):
        specifications = specifications.values()

    table: Dict[str, CaveatSpecification] = {}
    for specification in specifications:
        if not specification.type or not isinstance(specification.type, str):
            raise ValueError(f"Invalid caveat type: {specification.type!r}")
        if specification.type in table:
            raise ValueError(f"Duplicate caveat specification: {specification.type}")
        table[specification.type] = specification

    return MappingProxyType(table)


class CaveatEngine:
    """
    Validates requested caveats and instantiates Caveat records.

    Checks, in order, for each requested caveat:
    1. Its type is a registered caveat type
    2. It has a "value" field
    3. It has no fields besides "type" and "value"
    4. Its value survives a lossless JSON round trip
    5. Its value passes the type's validator, if any
    """

    def __init__(self, caveat_specifications: CaveatSpecifications):
        self._specifications = freeze_caveat_specifications(caveat_specifications)
        self._caveat_types: FrozenSet[str] = frozenset(self._specifications)

    @property
    def specifications(self) -> Mapping[str, CaveatSpecification]:
        return self._specifications

    @property
    def caveat_types(self) -> FrozenSet[str]:
        return self._caveat_types

    def get_specification(self, caveat_type: str) -> Optional[CaveatSpecification]:
        return self._specifications.get(caveat_type)

    def compute_caveats(
        self,
        origin: str,
        target: str,
        caveats: Optional[Iterable[Any]] = None,
    ) -> Optional[List[Caveat]]:
        """
        Validate requested caveats for a permission.

        Args:
            origin: Subject the permission is being granted to
            target: Method the permission is for
            caveats: Requested caveats (mappings or Caveat instances)

        Returns:
            New Caveat records in request order, or None if there are none
        """
        if caveats is None:
            return None

        computed = [self._compute_caveat(origin, target, caveat) for caveat in caveats]
        return computed or None

    def _compute_caveat(self, origin: str, target: str, caveat: Any) -> Caveat:
        if isinstance(caveat, Caveat):
            caveat = caveat.to_dict()

        if not isinstance(caveat, Mapping):
            raise InvalidCaveatFields(caveat, origin, target)

        caveat_type = caveat.get("type")
        if not isinstance(caveat_type, str) or caveat_type not in self._caveat_types:
            logger.warning(f"Rejected caveat of unknown type {caveat_type!r} for {origin} / {target}")
            raise CaveatTypeNotFound(caveat_type, origin, target)

        if "value" not in caveat:
            raise CaveatMissingValue(caveat, origin, target)

        if set(caveat.keys()) != CAVEAT_FIELDS:
            raise InvalidCaveatFields(caveat, origin, target)

        if not is_valid_json(caveat["value"]):
            raise InvalidCaveatJson(caveat, origin, target)

        validate_caveat_value(self.get_specification(caveat_type), caveat, origin, target)

        return Caveat(type=caveat_type, value=copy.deepcopy(caveat["value"]))
