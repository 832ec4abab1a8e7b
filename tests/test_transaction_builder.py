"""
Tests for raw EVM transaction construction and signing.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from eth_account import Account

from dualchain.exceptions import EstimationError, RpcError, TransportError
from dualchain.rpc import EvmRpcClient
from dualchain.transactions import (
    EvmReceipt,
    LocalAccountSigner,
    RawEvmTransaction,
    RawEvmTxHandle,
    TransactionBuilder,
    send_raw_transaction,
    sign_evm_transaction,
    submit_signed,
)

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
SENDER = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"
TOKEN = "0x0000000000000000000000000000000000001002"
TRANSFER_DATA = "0xa9059cbb" + "00" * 64
TX_HASH = "0x" + "cd" * 32


def mock_client(nonce=7, gas_price=10**9, gas_limit=52_000):
    client = MagicMock()
    client.get_transaction_count = AsyncMock(return_value=nonce)
    client.gas_price = AsyncMock(return_value=gas_price)
    client.estimate_gas = AsyncMock(return_value=gas_limit)
    return client


def mock_signer():
    signer = MagicMock()
    signer.address = SENDER
    signer.sign_transaction = MagicMock(return_value="0xsigned")
    return signer


# ============================================================================
# TEST: building
# ============================================================================

@pytest.mark.asyncio
class TestTransactionBuilder:

    async def test_build_collects_all_reads(self):
        client = mock_client()
        tx = await TransactionBuilder(client).build(mock_signer(), TOKEN, TRANSFER_DATA, value=5)

        assert tx == RawEvmTransaction(
            to=TOKEN, data=TRANSFER_DATA, nonce=7, gas_price=10**9, gas_limit=52_000, value=5,
        )
        client.get_transaction_count.assert_awaited_once_with(SENDER)
        client.estimate_gas.assert_awaited_once_with(
            {"to": TOKEN, "data": TRANSFER_DATA, "from": SENDER, "value": "0x5"}
        )

    async def test_sign_passes_envelope_to_signer(self):
        signer = mock_signer()
        signed = await TransactionBuilder(mock_client()).sign(signer, TOKEN, TRANSFER_DATA, chain_id=713715)

        assert signed == "0xsigned"
        signer.sign_transaction.assert_called_once_with({
            "to": TOKEN,
            "data": TRANSFER_DATA,
            "nonce": 7,
            "gasPrice": 10**9,
            "gas": 52_000,
            "value": 0,
            "chainId": 713715,
        })

    async def test_estimation_failure_never_signs(self):
        client = mock_client()
        client.estimate_gas.side_effect = RpcError(-32000, "execution reverted")
        signer = mock_signer()

        with pytest.raises(EstimationError) as exc_info:
            await sign_evm_transaction(client, signer, TOKEN, TRANSFER_DATA)

        signer.sign_transaction.assert_not_called()
        assert isinstance(exc_info.value.__cause__, RpcError)

    async def test_revert_is_flagged(self):
        client = mock_client()
        client.estimate_gas.side_effect = RpcError(3, "execution reverted", "0x08c379a0")

        with pytest.raises(EstimationError) as exc_info:
            await TransactionBuilder(client).build(mock_signer(), TOKEN, TRANSFER_DATA)
        assert exc_info.value.reverted

    async def test_endpoint_failure_is_not_a_revert(self):
        client = mock_client()
        client.estimate_gas.side_effect = RpcError(-32601, "method not found")

        with pytest.raises(EstimationError) as exc_info:
            await TransactionBuilder(client).build(mock_signer(), TOKEN, TRANSFER_DATA)
        assert not exc_info.value.reverted

    async def test_sign_evm_transaction_with_chain_id(self):
        signer = mock_signer()
        await sign_evm_transaction(mock_client(), signer, TOKEN, TRANSFER_DATA, chain_id=713715)

        envelope = signer.sign_transaction.call_args.args[0]
        assert envelope["chainId"] == 713715

    async def test_estimation_failure_wins_over_other_failures(self):
        client = mock_client()
        client.get_transaction_count.side_effect = TransportError("RPC HTTP error: 502 Bad Gateway", 502)
        client.estimate_gas.side_effect = RpcError(-32000, "execution reverted")

        with pytest.raises(EstimationError):
            await TransactionBuilder(client).build(mock_signer(), TOKEN, TRANSFER_DATA)

    async def test_nonce_failure_propagates_unchanged(self):
        client = mock_client()
        client.get_transaction_count.side_effect = TransportError("RPC HTTP error: 502 Bad Gateway", 502)
        signer = mock_signer()

        with pytest.raises(TransportError):
            await TransactionBuilder(client).sign(signer, TOKEN, TRANSFER_DATA)
        signer.sign_transaction.assert_not_called()


# ============================================================================
# TEST: local signing
# ============================================================================

class TestLocalAccountSigner:

    def test_address(self):
        assert LocalAccountSigner(PRIVATE_KEY).address == SENDER

    def test_from_mnemonic(self):
        signer = LocalAccountSigner.from_mnemonic(
            "test test test test test test test test test test test junk"
        )
        assert signer.address == "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

    def test_signed_transaction_recovers_sender(self):
        signer = LocalAccountSigner(PRIVATE_KEY)
        tx = RawEvmTransaction(
            to=TOKEN, data=TRANSFER_DATA, nonce=0, gas_price=10**9, gas_limit=60_000, chain_id=713715,
        )

        signed = signer.sign_transaction(tx.to_dict())

        assert signed.startswith("0x")
        assert Account.recover_transaction(signed) == SENDER

    def test_envelope_without_chain_id(self):
        tx = RawEvmTransaction(to=TOKEN, data="0x", nonce=1, gas_price=1, gas_limit=21_000)
        assert "chainId" not in tx.to_dict()


# ============================================================================
# TEST: broadcast and confirmation
# ============================================================================

@pytest.mark.asyncio
class TestBroadcast:

    async def test_send_raw_transaction(self):
        with patch.object(EvmRpcClient, "send_raw_transaction", AsyncMock(return_value=TX_HASH)) as send:
            assert await send_raw_transaction("http://node.test:8545", "0xf86c") == TX_HASH
        send.assert_awaited_once_with("0xf86c")

    async def test_submit_signed_returns_waitable_handle(self):
        client = MagicMock()
        client.send_raw_transaction = AsyncMock(return_value=TX_HASH)
        client.wait_for_transaction_receipt = AsyncMock(return_value={
            "blockNumber": "0x64",
            "transactionHash": TX_HASH,
            "status": "0x1",
            "gasUsed": "0x5208",
        })

        handle = await submit_signed(client, "0xf86c")
        receipt = await handle.wait()

        assert isinstance(handle, RawEvmTxHandle)
        assert handle.hash == TX_HASH
        assert receipt == EvmReceipt(block_number=100, transaction_hash=TX_HASH, status=1, gas_used=21_000)
        assert receipt.succeeded
