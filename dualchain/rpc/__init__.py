"""
Dualchain RPC

JSON-RPC 2.0 transport for the EVM side of the chain, plus the quantity
encoding helpers it uses.
"""

from .client import EvmRpcClient
from .encoding import encode_block_tag, from_quantity, is_hex_hash, to_quantity

__all__ = [
    "EvmRpcClient",
    "encode_block_tag",
    "from_quantity",
    "is_hex_hash",
    "to_quantity",
]
