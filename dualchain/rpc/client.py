"""
Lightweight JSON-RPC 2.0 client for EVM-compatible endpoints.

Every public accessor performs exactly one round-trip through :meth:`call`.
There is no caching and no retry; transport and RPC failures surface to the
caller unchanged.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, Union

import httpx
from eth_utils import is_address

from ..constants import CONNECTION_TIMEOUT, RECEIPT_POLL_INTERVAL
from ..exceptions import ReceiptTimeoutError, RpcError, TransportError
from ..logger import get_logger
from .encoding import (
    BlockTag,
    encode_block_tag,
    from_quantity,
    is_hex_data,
    is_hex_hash,
    to_quantity,
)

logger = get_logger(__name__)


def _require_address(address: str) -> str:
    if not is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return address


def _require_hash(value: str, what: str = "hash") -> str:
    if not is_hex_hash(value):
        raise ValueError(f"Invalid {what}: {value!r}")
    return value


def _require_data(value: str) -> str:
    if not is_hex_data(value):
        raise ValueError(f"Invalid hex data: {value!r}")
    return value


def _require_index(index: int) -> str:
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        raise ValueError(f"Index must be a non-negative int, got {index!r}")
    return to_quantity(index)


class EvmRpcClient:
    """
    JSON-RPC client bound to a single HTTP endpoint.

    Pass an existing ``httpx.AsyncClient`` to share a connection pool; the
    client is only closed by :meth:`aclose` when this object created it.

    Example:
        async with EvmRpcClient("http://127.0.0.1:8545") as rpc:
            height = await rpc.get_block_number()
    """

    def __init__(
        self,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = CONNECTION_TIMEOUT,
    ):
        self.url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._id_counter = 0

    async def __aenter__(self) -> "EvmRpcClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _next_id(self) -> int:
        self._id_counter += 1
        return self._id_counter

    # -----------------------------------------------------------------
    #  Low-level JSON-RPC transport
    # -----------------------------------------------------------------

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Send one JSON-RPC request and return its ``result``.

        Raises:
            TransportError: non-2xx status, network failure or undecodable body.
            RpcError: the response carried an ``error`` object.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": list(params) if params is not None else [],
        }

        start_time = time.time()
        try:
            response = await self._client.post(
                self.url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.RequestError as exc:
            elapsed = time.time() - start_time
            logger.warning(f"RPC {method} → {self.url} NETWORK_ERROR ({elapsed:.3f}s)")
            raise TransportError(f"RPC network error: {exc}") from exc

        elapsed = time.time() - start_time
        logger.debug(f"RPC {method} → {self.url} [{response.status_code}] ({elapsed:.3f}s)")

        if not response.is_success:
            logger.warning(f"RPC {method} → {self.url} HTTP {response.status_code}")
            raise TransportError(
                f"RPC HTTP error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            # JSONDecodeError and UnicodeDecodeError both subclass ValueError
            raise TransportError(
                f"RPC response is not JSON: {exc}", status_code=response.status_code
            ) from exc

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            if isinstance(error, dict):
                raise RpcError(error.get("code"), error.get("message", ""), error.get("data"))
            raise RpcError(None, str(error))

        if not isinstance(body, dict):
            raise TransportError("RPC response is not a JSON object", status_code=response.status_code)
        return body.get("result")

    # web3 namespace

    async def web3_client_version(self) -> str:
        return await self.call('web3_clientVersion')

    async def web3_sha3(self, data: str) -> str:
        return await self.call('web3_sha3', [_require_data(data)])

    # net namespace

    async def net_version(self) -> str:
        return await self.call('net_version')

    async def net_listening(self) -> bool:
        return await self.call('net_listening')

    async def net_peer_count(self) -> int:
        return from_quantity(await self.call('net_peerCount'))

    # eth namespace

    async def chain_id(self) -> int:
        return from_quantity(await self.call('eth_chainId'))

    async def get_block_number(self) -> int:
        return from_quantity(await self.call('eth_blockNumber'))

    async def get_balance(self, address: str, block_tag: BlockTag = 'latest') -> int:
        result = await self.call(
            'eth_getBalance', [_require_address(address), encode_block_tag(block_tag)]
        )
        return from_quantity(result)

    async def get_transaction_count(self, address: str, block_tag: BlockTag = 'latest') -> int:
        result = await self.call(
            'eth_getTransactionCount', [_require_address(address), encode_block_tag(block_tag)]
        )
        return from_quantity(result)

    async def get_code(self, address: str, block_tag: BlockTag = 'latest') -> str:
        return await self.call('eth_getCode', [_require_address(address), encode_block_tag(block_tag)])

    async def get_storage_at(self, address: str, position: str, block_tag: BlockTag = 'latest') -> str:
        return await self.call(
            'eth_getStorageAt',
            [_require_address(address), _require_data(position), encode_block_tag(block_tag)],
        )

    async def gas_price(self) -> int:
        return from_quantity(await self.call('eth_gasPrice'))

    async def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return from_quantity(await self.call('eth_estimateGas', [tx]))

    async def call_tx(self, tx: Dict[str, Any], block_tag: BlockTag = 'latest') -> str:
        return await self.call('eth_call', [tx, encode_block_tag(block_tag)])

    async def send_raw_transaction(self, signed_tx: str) -> str:
        return await self.call('eth_sendRawTransaction', [signed_tx])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call('eth_getTransactionReceipt', [_require_hash(tx_hash, "transaction hash")])

    async def get_transaction_by_hash(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call('eth_getTransactionByHash', [_require_hash(tx_hash, "transaction hash")])

    async def get_transaction_by_block_hash_and_index(self, block_hash: str, index: int) -> Optional[Dict[str, Any]]:
        return await self.call(
            'eth_getTransactionByBlockHashAndIndex',
            [_require_hash(block_hash, "block hash"), _require_index(index)],
        )

    async def get_transaction_by_block_number_and_index(self, block_tag: BlockTag, index: int) -> Optional[Dict[str, Any]]:
        return await self.call(
            'eth_getTransactionByBlockNumberAndIndex',
            [encode_block_tag(block_tag), _require_index(index)],
        )

    async def get_block_by_hash(self, block_hash: str, full_tx: bool = False) -> Optional[Dict[str, Any]]:
        return await self.call('eth_getBlockByHash', [_require_hash(block_hash, "block hash"), bool(full_tx)])

    async def get_block_by_number(self, block_tag: BlockTag, full_tx: bool = False) -> Optional[Dict[str, Any]]:
        return await self.call('eth_getBlockByNumber', [encode_block_tag(block_tag), bool(full_tx)])

    async def get_logs(self, log_filter: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await self.call('eth_getLogs', [log_filter])

    async def get_block_receipts(self, block_tag: BlockTag) -> List[Dict[str, Any]]:
        return await self.call('eth_getBlockReceipts', [encode_block_tag(block_tag)])

    # sei namespace

    async def sei_get_filter_logs(self, log_filter: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await self.call('sei_getFilterLogs', [log_filter])

    async def sei_get_logs(self, log_filter: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await self.call('sei_getLogs', [log_filter])

    async def sei_get_block_by_number(self, block_tag: BlockTag, full_tx: bool = False) -> Optional[Dict[str, Any]]:
        return await self.call('sei_getBlockByNumber', [encode_block_tag(block_tag), bool(full_tx)])

    async def sei_get_block_by_hash(self, block_hash: str, full_tx: bool = False) -> Optional[Dict[str, Any]]:
        return await self.call('sei_getBlockByHash', [_require_hash(block_hash, "block hash"), bool(full_tx)])

    # debug namespace

    async def debug_trace_transaction(self, tx_hash: str, options: Optional[Dict[str, Any]] = None) -> Any:
        """Trace transaction execution with debug_traceTransaction."""
        return await self.call(
            'debug_traceTransaction', [_require_hash(tx_hash, "transaction hash"), options or {}]
        )

    async def debug_trace_call(
        self,
        tx: Dict[str, Any],
        block_tag: BlockTag = 'latest',
        options: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Trace a simulated call with debug_traceCall."""
        return await self.call('debug_traceCall', [tx, encode_block_tag(block_tag), options or {}])

    async def debug_trace_raw_transaction(self, raw_tx: str, options: Optional[Dict[str, Any]] = None) -> Any:
        return await self.call('debug_traceRawTransaction', [_require_data(raw_tx), options or {}])

    async def debug_storage_range_at(
        self,
        block_hash_or_tag: str,
        tx_index: Union[int, str],
        address: str,
        start_key: str,
        max_results: int,
    ) -> Any:
        """
        Query storage entries in range with debug_storageRangeAt.

        An int ``tx_index`` is sent as a quantity; strings pass through.
        """
        idx = _require_index(tx_index) if isinstance(tx_index, int) else tx_index
        if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results < 0:
            raise ValueError(f"max_results must be a non-negative int, got {max_results!r}")
        return await self.call(
            'debug_storageRangeAt',
            [block_hash_or_tag, idx, _require_address(address), start_key, max_results],
        )

    async def debug_trace_block_by_number(self, block_tag: BlockTag, options: Optional[Dict[str, Any]] = None) -> Any:
        return await self.call('debug_traceBlockByNumber', [encode_block_tag(block_tag), options or {}])

    # -----------------------------------------------------------------
    #  Confirmation
    # -----------------------------------------------------------------

    async def wait_for_transaction_receipt(
        self,
        tx_hash: str,
        timeout: Optional[float] = None,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
    ) -> Dict[str, Any]:
        """
        Poll eth_getTransactionReceipt until the node returns a receipt.

        Raises:
            ReceiptTimeoutError: ``timeout`` seconds passed without a receipt.
        """
        _require_hash(tx_hash, "transaction hash")
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                return receipt
            if deadline is not None and time.monotonic() >= deadline:
                raise ReceiptTimeoutError(tx_hash, timeout)
            await asyncio.sleep(poll_interval)
