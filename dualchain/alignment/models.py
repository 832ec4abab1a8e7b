"""Alignment state, policy and result models."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Tuple

from ..constants import DEFAULT_DELAY_SECONDS, DEFAULT_MAX_ATTEMPTS, DEFAULT_STAGGER_STEP
from ..exceptions import ConfigurationError
from ..rpc.encoding import from_quantity


class EvmTxHandle(Protocol):
    """A submitted EVM transaction that can be awaited for its receipt."""

    def wait(self) -> Awaitable[Any]:
        ...


EvmOperation = Callable[[], Awaitable[EvmTxHandle]]
CosmosOperation = Callable[[], Awaitable[Any]]


class Bias(Enum):
    """Which path landed in the earlier block on the previous attempt."""

    UNKNOWN = "unknown"
    EVM_EARLIER = "evm_earlier"
    COSMOS_EARLIER = "cosmos_earlier"


@dataclass(frozen=True)
class AlignmentPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delay_seconds: float = DEFAULT_DELAY_SECONDS
    stagger_step: float = DEFAULT_STAGGER_STEP
    # None keeps an attempt unbounded: a hung submission stalls the call.
    attempt_timeout: Optional[float] = None

    def __post_init__(self):
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int) or self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be a positive int, got {self.max_attempts!r}")
        if self.delay_seconds < 0:
            raise ConfigurationError("delay_seconds must be >= 0")
        if self.stagger_step < 0:
            raise ConfigurationError("stagger_step must be >= 0")
        if self.attempt_timeout is not None and self.attempt_timeout <= 0:
            raise ConfigurationError("attempt_timeout must be > 0 when set")

    def stagger(self, attempt_index: int) -> float:
        """Delay applied to the faster side on ``attempt_index``."""
        return self.stagger_step * attempt_index


@dataclass
class AlignmentAttempt:
    index: int
    bias: Bias
    evm_delay: float = 0.0
    cosmos_delay: float = 0.0
    evm_height: Optional[int] = None
    cosmos_height: Optional[int] = None

    @property
    def aligned(self) -> bool:
        return self.evm_height is not None and self.evm_height == self.cosmos_height


@dataclass(frozen=True)
class AlignmentResult:
    evm_receipt: Any
    cosmos_response: Any
    attempts: Tuple[AlignmentAttempt, ...] = ()

    @property
    def height(self) -> int:
        return evm_block_number(self.evm_receipt)


@dataclass
class LoadResult:
    evm_receipts: List[Any] = field(default_factory=list)
    cosmos_responses: List[Any] = field(default_factory=list)
    rounds: int = 0


def _read(obj: Any, *names: str) -> Any:
    if isinstance(obj, Mapping):
        for name in names:
            if obj.get(name) is not None:
                return obj[name]
    else:
        for name in names:
            value = getattr(obj, name, None)
            if value is not None:
                return value
    raise ValueError(f"{type(obj).__name__} has none of {', '.join(names)}")


def _to_height(value: Any) -> int:
    # Cosmos REST encodes heights as decimal strings, EVM as hex quantities.
    if isinstance(value, str) and not value.startswith(("0x", "0X")):
        return int(value)
    return from_quantity(value)


def evm_block_number(receipt: Any) -> int:
    """Block number from a receipt object, dataclass or raw RPC dict."""
    return _to_height(_read(receipt, "blockNumber", "block_number"))


def cosmos_height(response: Any) -> int:
    """Height from a Cosmos broadcast response."""
    return _to_height(_read(response, "height"))
