"""Raw EVM transaction and receipt models."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..rpc.encoding import from_quantity


@dataclass(frozen=True)
class RawEvmTransaction:
    """Unsigned legacy transaction envelope."""

    to: str
    data: str
    nonce: int
    gas_price: int
    gas_limit: int
    value: int = 0
    chain_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Signing dict in the shape ``eth_account`` expects."""
        tx = {
            "to": self.to,
            "data": self.data,
            "nonce": self.nonce,
            "gasPrice": self.gas_price,
            "gas": self.gas_limit,
            "value": self.value,
        }
        if self.chain_id is not None:
            tx["chainId"] = self.chain_id
        return tx


@dataclass(frozen=True)
class EvmReceipt:
    block_number: int
    transaction_hash: str
    status: Optional[int] = None
    gas_used: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_rpc(cls, receipt: Dict[str, Any]) -> "EvmReceipt":
        status = receipt.get("status")
        gas_used = receipt.get("gasUsed")
        return cls(
            block_number=from_quantity(receipt["blockNumber"]),
            transaction_hash=receipt["transactionHash"],
            status=from_quantity(status) if status is not None else None,
            gas_used=from_quantity(gas_used) if gas_used is not None else None,
            raw=dict(receipt),
        )

    @property
    def succeeded(self) -> bool:
        return self.status == 1
