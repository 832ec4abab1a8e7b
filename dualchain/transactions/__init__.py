from .builder import (
    EvmSigner,
    LocalAccountSigner,
    RawEvmTxHandle,
    TransactionBuilder,
    send_raw_transaction,
    sign_evm_transaction,
    submit_signed,
)
from .models import EvmReceipt, RawEvmTransaction

__all__ = [
    "EvmReceipt",
    "EvmSigner",
    "LocalAccountSigner",
    "RawEvmTransaction",
    "RawEvmTxHandle",
    "TransactionBuilder",
    "send_raw_transaction",
    "sign_evm_transaction",
    "submit_signed",
]
