"""
Dualchain Alignment

Same-block pairing of EVM and Cosmos transactions, and the mixed-traffic load
driver used for throughput and parity tests.
"""

from .coordinator import BlockAlignmentCoordinator, send_until_same_block
from .load import send_cosmos_evm_txs
from .models import (
    AlignmentAttempt,
    AlignmentPolicy,
    AlignmentResult,
    Bias,
    LoadResult,
    cosmos_height,
    evm_block_number,
)

__all__ = [
    "AlignmentAttempt",
    "AlignmentPolicy",
    "AlignmentResult",
    "Bias",
    "BlockAlignmentCoordinator",
    "LoadResult",
    "cosmos_height",
    "evm_block_number",
    "send_cosmos_evm_txs",
    "send_until_same_block",
]
