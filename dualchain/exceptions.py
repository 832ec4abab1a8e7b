"""
Dualchain Exceptions

Custom exception classes for the dual-chain harness.
"""

from enum import IntEnum
from typing import Any, Optional, Sequence


class RPCErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 error codes."""

    # Standard errors
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server errors (-32000 to -32099)
    SERVER_ERROR = -32000
    RESOURCE_NOT_FOUND = -32001
    RESOURCE_UNAVAILABLE = -32002
    TRANSACTION_REJECTED = -32003
    METHOD_NOT_SUPPORTED = -32004
    LIMIT_EXCEEDED = -32005

    # Ethereum-specific errors
    EXECUTION_ERROR = 3


class DualChainException(Exception):
    """Base exception for the harness."""
    pass


class RPCClientError(DualChainException):
    """Failure talking to a JSON-RPC endpoint."""
    pass


class TransportError(RPCClientError):
    """
    The HTTP exchange itself failed.

    ``status_code`` is None when no response was received at all.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RpcError(RPCClientError):
    """The endpoint answered with a JSON-RPC error envelope."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        super().__init__(f"RPC error: {code} {message}")
        self.code = code
        self.message = message
        self.data = data

    @property
    def is_execution_error(self) -> bool:
        """True for EVM execution failures (reverts, out-of-gas)."""
        return self.code in (RPCErrorCode.EXECUTION_ERROR, RPCErrorCode.SERVER_ERROR)


class ReceiptTimeoutError(RPCClientError):
    """No receipt appeared for a transaction within the allowed time."""

    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(f"No receipt for {tx_hash} after {timeout}s")
        self.tx_hash = tx_hash
        self.timeout = timeout


class EstimationError(DualChainException):
    """
    Gas estimation failed; nothing was signed.

    ``reverted`` is True when the node reported that the call itself would
    revert, as opposed to the endpoint failing.
    """

    def __init__(self, message: str, reverted: bool = False):
        super().__init__(message)
        self.reverted = reverted


class AlignmentError(DualChainException):
    """Base class for block-alignment failures."""
    pass


class AlignmentExhaustedError(AlignmentError):
    """
    Both transactions were submitted on every attempt but never landed at the
    same height. They are likely on-chain, just not aligned.
    """

    def __init__(self, max_attempts: int, attempts: Sequence[Any] = ()):
        super().__init__(
            f"Failed to include both transactions in the same block after "
            f"{max_attempts} attempts"
        )
        self.max_attempts = max_attempts
        self.attempts = tuple(attempts)


class AlignmentTimeoutError(AlignmentError):
    """A single attempt exceeded the configured per-attempt timeout."""

    def __init__(self, attempt_index: int, timeout: float):
        super().__init__(f"Attempt {attempt_index} did not settle within {timeout}s")
        self.attempt_index = attempt_index
        self.timeout = timeout


class ConfigurationError(DualChainException):
    """Configuration error."""
    pass
