"""
Caveat Functions

Compiles caveats into request/response interceptors.

Each caveat becomes a CaveatStage with an optional pre-phase function
(runs on the request before the restricted method) and an optional
post-phase function (runs on the response after it). A permission's
caveats compose into a CaveatChain:

    pre(caveat 1) -> pre(caveat 2) -> ... -> method -> post(caveat 1) -> post(caveat 2) -> ...

A pre-phase function denies the call by raising AuthorizationDenied, in
which case the method never runs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional
import copy
import logging

from .caveat import (
    Caveat,
    CaveatSpecification,
    CaveatSpecifications,
    freeze_caveat_specifications,
    validate_caveat_value,
)
from .errors import AuthorizationDenied, CaveatTypeNotFound
from .json_utils import deep_equal, is_subset
from .rpc import JsonRpcRequest, JsonRpcResponse

logger = logging.getLogger(__name__)


PreFunction = Callable[[JsonRpcRequest], None]
PostFunction = Callable[[JsonRpcRequest, JsonRpcResponse], None]


class CaveatType(str, Enum):
    """Built-in caveat types"""
    REQUIRE_PARAMS_IS_SUBSET = "requireParamsIsSubset"
    REQUIRE_PARAMS_IS_SUPERSET = "requireParamsIsSuperset"
    FORCE_PARAMS = "forceParams"
    FILTER_RESPONSE = "filterResponse"
    LIMIT_RESPONSE_LENGTH = "limitResponseLength"


@dataclass(frozen=True)
class CaveatStage:
    """Interceptors compiled from one caveat"""
    caveat_type: str
    pre: Optional[PreFunction] = None
    post: Optional[PostFunction] = None


# =========================================================================
# Built-in caveat generators
# =========================================================================

def require_params_is_subset(caveat: Caveat) -> CaveatStage:
    """
    Require that request params are a subset of or equal to the caveat value.
    Arrays are order-dependent, objects are order-independent.
    """
    value = caveat.value

    def pre(request: JsonRpcRequest) -> None:
        if not is_subset(value, request.params):
            logger.warning(f"{caveat.type} denied {request.method}: params exceed caveat value")
            raise AuthorizationDenied(data={"request": request.to_dict()})

    return CaveatStage(caveat.type, pre=pre)


def require_params_is_superset(caveat: Caveat) -> CaveatStage:
    """
    Require that request params are a superset of or equal to the caveat value.
    Arrays are order-dependent, objects are order-independent.
    """
    value = caveat.value

    def pre(request: JsonRpcRequest) -> None:
        if not is_subset(request.params, value):
            logger.warning(f"{caveat.type} denied {request.method}: params missing caveat value")
            raise AuthorizationDenied(data={"request": request.to_dict()})

    return CaveatStage(caveat.type, pre=pre)


def force_params(caveat: Caveat) -> CaveatStage:
    """Force the method to be called with the caveat value as its params"""
    value = caveat.value

    def pre(request: JsonRpcRequest) -> None:
        request.params = copy.deepcopy(value)

    return CaveatStage(caveat.type, pre=pre)


def filter_response(caveat: Caveat) -> CaveatStage:
    """Keep only array result items deep-equal to an item of the caveat value"""
    value = caveat.value

    def post(_request: JsonRpcRequest, response: JsonRpcResponse) -> None:
        if isinstance(response.result, list):
            response.result = [
                item for item in response.result
                if any(deep_equal(allowed, item) for allowed in value)
            ]

    return CaveatStage(caveat.type, post=post)


def limit_response_length(caveat: Caveat) -> CaveatStage:
    """Truncate array results to the caveat's integer value"""
    value = caveat.value

    def post(_request: JsonRpcRequest, response: JsonRpcResponse) -> None:
        if isinstance(response.result, list):
            response.result = response.result[:value]

    return CaveatStage(caveat.type, post=post)


# =========================================================================
# Value validators
# =========================================================================

def require_array_value(value: Any) -> None:
    if not isinstance(value, list):
        raise ValueError(f"expected an array, got {type(value).__name__}")


def require_length_value(value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"expected a non-negative integer, got {value!r}")


BUILTIN_CAVEAT_GENERATORS: Dict[str, Callable[[Caveat], CaveatStage]] = {
    CaveatType.REQUIRE_PARAMS_IS_SUBSET.value: require_params_is_subset,
    CaveatType.REQUIRE_PARAMS_IS_SUPERSET.value: require_params_is_superset,
    CaveatType.FORCE_PARAMS.value: force_params,
    CaveatType.FILTER_RESPONSE.value: filter_response,
    CaveatType.LIMIT_RESPONSE_LENGTH.value: limit_response_length,
}

# Types without an entry accept any JSON value
BUILTIN_CAVEAT_VALIDATORS: Dict[str, Callable[[Any], None]] = {
    CaveatType.FILTER_RESPONSE.value: require_array_value,
    CaveatType.LIMIT_RESPONSE_LENGTH.value: require_length_value,
}


def create_builtin_caveat_specifications(
    caveat_types: Optional[Iterable[str]] = None,
) -> Dict[str, CaveatSpecification]:
    """
    Get specifications for the built-in caveat types.

    Args:
        caveat_types: Restrict to these types (default: all built-ins)

    Raises:
        ValueError: If a requested type is not a built-in
    """
    if caveat_types is None:
        caveat_types = BUILTIN_CAVEAT_GENERATORS.keys()

    specifications = {}
    for caveat_type in caveat_types:
        generator = BUILTIN_CAVEAT_GENERATORS.get(caveat_type)
        if generator is None:
            raise ValueError(f"Unknown built-in caveat type: {caveat_type}")
        specifications[caveat_type] = CaveatSpecification(
            type=caveat_type,
            generator=generator,
            description=next(iter((generator.__doc__ or "").strip().splitlines()), ""),
            validator=BUILTIN_CAVEAT_VALIDATORS.get(caveat_type),
        )
    return specifications


# =========================================================================
# Chain composition
# =========================================================================

@dataclass
class CaveatChain:
    """Ordered caveat stages guarding one restricted method call"""
    stages: List[CaveatStage] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.stages)

    def run(
        self,
        request: JsonRpcRequest,
        handler: Callable[[JsonRpcRequest], Any],
    ) -> JsonRpcResponse:
        """
        Invoke handler through the chain.

        Pre-phase functions may rewrite the request or raise
        AuthorizationDenied. Post-phase functions may rewrite the result.

        Returns:
            Response carrying the (possibly rewritten) result
        """
        for stage in self.stages:
            if stage.pre is not None:
                stage.pre(request)

        response = JsonRpcResponse(id=request.id, result=handler(request))

        for stage in self.stages:
            if stage.post is not None:
                stage.post(request, response)

        return response


class CaveatMiddlewareFactory:
    """
    Builds CaveatStages and CaveatChains from stored caveats.

    Uses the same specification table the CaveatEngine validated the
    caveats against, so every stored caveat has a generator.
    """

    def __init__(self, caveat_specifications: CaveatSpecifications):
        self._specifications: Mapping[str, CaveatSpecification] = freeze_caveat_specifications(
            caveat_specifications
        )

    def create_stage(self, caveat: Caveat, origin: str = "", target: str = "") -> CaveatStage:
        """
        Compile one caveat into its stage.

        Raises:
            CaveatTypeNotFound: If the caveat type has no specification
            InvalidCaveatValue: If the stored value has the wrong shape
        """
        specification = self._specifications.get(caveat.type)
        if specification is None:
            raise CaveatTypeNotFound(caveat.type, origin, target)
        validate_caveat_value(specification, caveat.to_dict(), origin, target)
        return specification.generator(caveat)

    def create_chain(
        self,
        caveats: Optional[Iterable[Caveat]],
        origin: str = "",
        target: str = "",
    ) -> CaveatChain:
        """Compile a permission's caveats, in order, into a chain"""
        stages = [self.create_stage(caveat, origin, target) for caveat in caveats or []]
        logger.debug(f"Built caveat chain for {origin} / {target}: {[s.caveat_type for s in stages]}")
        return CaveatChain(stages)
