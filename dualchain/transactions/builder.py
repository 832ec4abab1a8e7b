"""
Raw EVM transaction construction.

Builds, estimates and signs a single legacy transaction using only the JSON-RPC
transport and a local key, then broadcasts the signed bytes with
``eth_sendRawTransaction``. The node is the source of truth for rejecting
malformed or underpriced payloads; nothing here validates the signed hex.

Example:
    async with EvmRpcClient(url) as rpc:
        signer = LocalAccountSigner(private_key)
        signed = await sign_evm_transaction(rpc, signer, token, data)
        handle = await submit_signed(rpc, signed)
        receipt = await handle.wait()
"""

import asyncio
from typing import Optional, Protocol, runtime_checkable

from eth_account import Account
from eth_utils import to_hex

from ..exceptions import EstimationError, RPCClientError, RpcError
from ..logger import get_logger
from ..rpc.client import EvmRpcClient
from .models import EvmReceipt, RawEvmTransaction

logger = get_logger(__name__)

DEFAULT_ACCOUNT_PATH = "m/44'/60'/0'/0/0"


@runtime_checkable
class EvmSigner(Protocol):
    """Anything that owns an address and can sign a transaction dict."""

    @property
    def address(self) -> str:
        ...

    def sign_transaction(self, tx: dict) -> str:
        ...


class LocalAccountSigner:
    """
    secp256k1 signer backed by an ``eth_account`` local account.

    The key never leaves the process; :meth:`sign_transaction` returns the
    0x-prefixed serialized transaction ready for broadcast.
    """

    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)

    @classmethod
    def from_mnemonic(cls, mnemonic: str, account_path: str = DEFAULT_ACCOUNT_PATH) -> "LocalAccountSigner":
        Account.enable_unaudited_hdwallet_features()
        account = Account.from_mnemonic(mnemonic, account_path=account_path)
        return cls(account.key)

    @property
    def address(self) -> str:
        return self._account.address

    def sign_transaction(self, tx: dict) -> str:
        signed = self._account.sign_transaction(tx)
        return to_hex(signed.raw_transaction)


class TransactionBuilder:
    """Builds and signs transactions against one RPC endpoint."""

    def __init__(self, client: EvmRpcClient):
        self.client = client

    async def build(
        self,
        signer: EvmSigner,
        to: str,
        data: str,
        value: int = 0,
        chain_id: Optional[int] = None,
    ) -> RawEvmTransaction:
        """
        Resolve nonce, gas price and gas limit for ``{to, data, from, value}``.

        The three reads are independent and run concurrently. A failed gas
        estimate takes precedence over any other failure so that callers can
        tell a would-revert call apart from a flaky endpoint.

        Raises:
            EstimationError: eth_estimateGas failed.
        """
        sender = signer.address
        nonce, gas_price, gas_limit = await asyncio.gather(
            self.client.get_transaction_count(sender),
            self.client.gas_price(),
            self.client.estimate_gas(
                {"to": to, "data": data, "from": sender, "value": hex(value)}
            ),
            return_exceptions=True,
        )

        if isinstance(gas_limit, BaseException):
            logger.warning(f"Gas estimation failed for {sender} → {to}: {gas_limit}")
            if isinstance(gas_limit, RPCClientError):
                reverted = isinstance(gas_limit, RpcError) and gas_limit.is_execution_error
                raise EstimationError(
                    f"Gas estimation failed: {gas_limit}", reverted=reverted
                ) from gas_limit
            raise gas_limit
        for result in (nonce, gas_price):
            if isinstance(result, BaseException):
                raise result

        tx = RawEvmTransaction(
            to=to,
            data=data,
            nonce=nonce,
            gas_price=gas_price,
            gas_limit=gas_limit,
            value=value,
            chain_id=chain_id,
        )
        logger.debug(
            f"Built tx from {sender}: nonce={nonce} gasPrice={gas_price} gas={gas_limit}"
        )
        return tx

    async def sign(
        self,
        signer: EvmSigner,
        to: str,
        data: str,
        value: int = 0,
        chain_id: Optional[int] = None,
    ) -> str:
        tx = await self.build(signer, to, data, value=value, chain_id=chain_id)
        return signer.sign_transaction(tx.to_dict())


class RawEvmTxHandle:
    """Handle for a raw-broadcast transaction; :meth:`wait` polls the receipt."""

    def __init__(self, client: EvmRpcClient, tx_hash: str):
        self.client = client
        self.hash = tx_hash

    async def wait(self, timeout: Optional[float] = None) -> EvmReceipt:
        receipt = await self.client.wait_for_transaction_receipt(self.hash, timeout=timeout)
        return EvmReceipt.from_rpc(receipt)

    def __repr__(self) -> str:
        return f"RawEvmTxHandle({self.hash})"


async def sign_evm_transaction(
    client: EvmRpcClient,
    signer: EvmSigner,
    to: str,
    data: str,
    value: int = 0,
    chain_id: Optional[int] = None,
) -> str:
    """
    Build, estimate and sign; returns the signed transaction hex.

    Without ``chain_id`` the signature carries no EIP-155 replay protection.
    """
    return await TransactionBuilder(client).sign(signer, to, data, value=value, chain_id=chain_id)


async def send_raw_transaction(rpc_url: str, signed_tx: str) -> str:
    """
    Send a raw, signed EVM transaction via JSON-RPC.

    Opens a short-lived client for the single call. The transaction propagates
    even if it later reverts; only the node decides whether it is accepted.
    """
    async with EvmRpcClient(rpc_url) as client:
        return await client.send_raw_transaction(signed_tx)


async def submit_signed(client: EvmRpcClient, signed_tx: str) -> RawEvmTxHandle:
    """Broadcast signed bytes and return a handle usable by the coordinator."""
    tx_hash = await client.send_raw_transaction(signed_tx)
    return RawEvmTxHandle(client, tx_hash)
