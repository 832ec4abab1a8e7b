"""
Dualchain Harness Package

Test-harness core for chains that expose both a Cosmos-SDK and an EVM
interface over one consensus engine. Core imports are lazily loaded so that
importing the package does not pull in the HTTP stack.

For direct module access, import from submodules:

    from dualchain.alignment import BlockAlignmentCoordinator
    from dualchain.rpc import EvmRpcClient
    from dualchain.transactions import TransactionBuilder
"""

__version__ = "0.3.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'EvmRpcClient':
        from .rpc import EvmRpcClient
        return EvmRpcClient
    elif name == 'BlockAlignmentCoordinator':
        from .alignment import BlockAlignmentCoordinator
        return BlockAlignmentCoordinator
    elif name == 'send_until_same_block':
        from .alignment import send_until_same_block
        return send_until_same_block
    elif name == 'send_cosmos_evm_txs':
        from .alignment import send_cosmos_evm_txs
        return send_cosmos_evm_txs
    elif name == 'TransactionBuilder':
        from .transactions import TransactionBuilder
        return TransactionBuilder
    raise AttributeError(f"module 'dualchain' has no attribute {name!r}")

__all__ = [
    'EvmRpcClient',
    'BlockAlignmentCoordinator',
    'send_until_same_block',
    'send_cosmos_evm_txs',
    'TransactionBuilder',
]
