"""
Quantity and tag encoding for the Ethereum JSON-RPC wire format.

Integers travel as ``0x``-prefixed hex strings without leading zeros
("quantities"). Python ints are unbounded, so balances and gas prices decode
to the same type as counts and indices.
"""

import re
from typing import Any, Union

from eth_utils import is_hexstr

from ..constants import BLOCK_TAGS

BlockTag = Union[str, int]

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")


def to_quantity(value: int) -> str:
    """Integer -> 0x-prefixed hex quantity."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Quantity must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"Quantity must be non-negative, got {value}")
    return hex(value)


def from_quantity(value: Union[str, int]) -> int:
    """
    Parse a hex quantity into an int.

    Ints are accepted as-is so that already-decoded values (for example from a
    full client library) can flow through the same code path.
    """
    if isinstance(value, bool):
        raise ValueError("Quantity must not be a bool")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Quantity must be non-negative, got {value}")
        return value
    if not isinstance(value, str):
        raise ValueError(f"Quantity must be a hex string, got {type(value).__name__}")
    if not value.startswith(("0x", "0X")):
        raise ValueError(f"Quantity {value!r} is missing the 0x prefix")
    digits = value[2:]
    if not digits:
        raise ValueError("Quantity has no digits")
    # int() alone would accept signs, whitespace and underscores
    if not _HEX_DIGITS.fullmatch(digits):
        raise ValueError(f"Quantity {value!r} is not valid hex")
    return int(digits, 16)


def encode_block_tag(tag: BlockTag) -> str:
    """Normalise a block tag (named tag, hex quantity or int height)."""
    if isinstance(tag, int) and not isinstance(tag, bool):
        return to_quantity(tag)
    if isinstance(tag, str):
        if tag in BLOCK_TAGS:
            return tag
        from_quantity(tag)
        return tag
    raise ValueError(f"Invalid block tag: {tag!r}")


def is_hex_hash(value: Any) -> bool:
    """True for a 0x-prefixed 32-byte hex string."""
    return (
        isinstance(value, str)
        and value.startswith(("0x", "0X"))
        and len(value) == 66
        and is_hexstr(value)
    )


def is_hex_data(value: Any) -> bool:
    """True for 0x-prefixed hex of any even length, including bare ``0x``."""
    if not isinstance(value, str) or not value.startswith(("0x", "0X")):
        return False
    if len(value) % 2:
        return False
    return value in ("0x", "0X") or is_hexstr(value)
