"""
Tests for the block-alignment coordinator.

Verifies that:
1. A first-attempt match returns immediately with no delays
2. A persistent one-block EVM lead is countered with a growing EVM delay
3. A Cosmos lead delays the Cosmos side instead
4. Exhaustion raises with the attempt count and both sides resubmitted each time
5. Submission and confirmation failures propagate without retry and cancel the
   pending sibling submission
6. The optional per-attempt timeout is fatal
7. Heights encoded as hex quantities or decimal strings compare correctly
"""

import asyncio
from types import SimpleNamespace

import pytest

from dualchain.alignment import (
    AlignmentPolicy,
    Bias,
    BlockAlignmentCoordinator,
    cosmos_height,
    evm_block_number,
    send_until_same_block,
)
from dualchain.exceptions import (
    AlignmentExhaustedError,
    AlignmentTimeoutError,
    ConfigurationError,
)
from dualchain.transactions import EvmReceipt, RawEvmTxHandle

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class FakeEvmHandle:
    """Submitted EVM tx whose receipt lands at a fixed height."""

    def __init__(self, height):
        self.height = height
        self.wait_calls = 0

    async def wait(self):
        self.wait_calls += 1
        return SimpleNamespace(blockNumber=self.height, status=1)


class ScriptedChains:
    """
    EVM and Cosmos submission operations that land at scripted heights and
    count how often they were invoked.
    """

    def __init__(self, evm_heights, cosmos_heights):
        self.evm_heights = list(evm_heights)
        self.cosmos_heights = list(cosmos_heights)
        self.evm_calls = 0
        self.cosmos_calls = 0

    async def evm_op(self):
        height = self.evm_heights[self.evm_calls]
        self.evm_calls += 1
        return FakeEvmHandle(height)

    async def cosmos_op(self):
        height = self.cosmos_heights[self.cosmos_calls]
        self.cosmos_calls += 1
        return SimpleNamespace(height=height, code=0)


class RecordingSleep:
    """Replaces asyncio.sleep; records requested delays without waiting."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleep():
    return RecordingSleep()


def _coordinator(sleep, **policy):
    return BlockAlignmentCoordinator(AlignmentPolicy(**policy), sleep=sleep)


# ============================================================================
# TEST: convergence
# ============================================================================

@pytest.mark.asyncio
class TestAlignmentConvergence:
    """Heights that eventually match produce a result."""

    async def test_first_attempt_match_has_no_delay(self, sleep):
        chains = ScriptedChains([100], [100])
        result = await _coordinator(sleep).attempt_alignment(chains.evm_op, chains.cosmos_op)

        assert result.evm_receipt.blockNumber == result.cosmos_response.height == 100
        assert result.height == 100
        assert len(result.attempts) == 1
        assert result.attempts[0].bias is Bias.UNKNOWN
        assert sleep.calls == []
        assert chains.evm_calls == chains.cosmos_calls == 1

    async def test_evm_lead_delays_evm_with_growing_stagger(self, sleep):
        chains = ScriptedChains([10, 11, 12, 13, 14], [11, 12, 13, 14, 14])
        coordinator = _coordinator(sleep, max_attempts=5, delay_seconds=1)

        result = await coordinator.attempt_alignment(chains.evm_op, chains.cosmos_op)

        assert len(result.attempts) == 5
        assert result.height == 14
        assert [a.bias for a in result.attempts] == [Bias.UNKNOWN] + [Bias.EVM_EARLIER] * 4
        assert [a.evm_delay for a in result.attempts] == pytest.approx([0, 0.2, 0.3, 0.4, 0.5])
        assert all(a.cosmos_delay == 0 for a in result.attempts)
        # Inter-attempt pauses plus one stagger per biased attempt
        assert sleep.calls.count(1) == 4
        assert len(sleep.calls) == 8

    async def test_cosmos_lead_delays_cosmos(self, sleep):
        chains = ScriptedChains([21, 22], [20, 22])
        result = await _coordinator(sleep).attempt_alignment(chains.evm_op, chains.cosmos_op)

        second = result.attempts[1]
        assert second.bias is Bias.COSMOS_EARLIER
        assert second.cosmos_delay == pytest.approx(0.2)
        assert second.evm_delay == 0

    async def test_bias_follows_latest_miss(self, sleep):
        chains = ScriptedChains([5, 7, 8], [6, 6, 8])
        result = await _coordinator(sleep).attempt_alignment(chains.evm_op, chains.cosmos_op)

        assert [a.bias for a in result.attempts] == [
            Bias.UNKNOWN, Bias.EVM_EARLIER, Bias.COSMOS_EARLIER,
        ]

    async def test_stagger_step_is_configurable(self, sleep):
        chains = ScriptedChains([1, 2], [2, 2])
        coordinator = _coordinator(sleep, stagger_step=0.5)
        result = await coordinator.attempt_alignment(chains.evm_op, chains.cosmos_op)

        assert result.attempts[1].evm_delay == pytest.approx(1.0)

    async def test_each_call_starts_without_bias(self, sleep):
        coordinator = _coordinator(sleep)
        await coordinator.attempt_alignment(*_ops(ScriptedChains([1, 2], [2, 2])))

        sleep.calls.clear()
        result = await coordinator.attempt_alignment(*_ops(ScriptedChains([3], [3])))
        assert result.attempts[0].bias is Bias.UNKNOWN
        assert sleep.calls == []

    async def test_mixed_height_encodings(self, sleep):
        async def evm_op():
            return FakeEvmHandleDict("0xf")

        async def cosmos_op():
            return {"height": "15", "code": 0}

        result = await _coordinator(sleep).attempt_alignment(evm_op, cosmos_op)
        assert result.height == 15

    async def test_raw_handle_receipt(self, sleep):
        class ReceiptClient:
            async def wait_for_transaction_receipt(self, tx_hash, timeout=None):
                return {"blockNumber": "0x2a", "transactionHash": tx_hash, "status": "0x1"}

        async def evm_op():
            return RawEvmTxHandle(ReceiptClient(), "0x" + "ab" * 32)

        async def cosmos_op():
            return SimpleNamespace(height=42)

        result = await _coordinator(sleep).attempt_alignment(evm_op, cosmos_op)
        assert isinstance(result.evm_receipt, EvmReceipt)
        assert result.evm_receipt.succeeded


class FakeEvmHandleDict:
    """Handle returning a raw JSON-RPC receipt dict."""

    def __init__(self, block_number):
        self.block_number = block_number

    async def wait(self):
        return {"blockNumber": self.block_number, "status": "0x1"}


def _ops(chains):
    return chains.evm_op, chains.cosmos_op


# ============================================================================
# TEST: failure modes
# ============================================================================

@pytest.mark.asyncio
class TestAlignmentFailures:
    """Exhaustion, propagation and timeouts."""

    async def test_exhaustion_reports_attempt_count(self, sleep):
        chains = ScriptedChains([1, 2, 3], [2, 3, 4])
        coordinator = _coordinator(sleep, max_attempts=3)

        with pytest.raises(AlignmentExhaustedError, match="after 3 attempts") as exc_info:
            await coordinator.attempt_alignment(chains.evm_op, chains.cosmos_op)

        assert exc_info.value.max_attempts == 3
        assert len(exc_info.value.attempts) == 3
        assert chains.evm_calls == chains.cosmos_calls == 3
        # No pause after the final attempt
        assert sleep.calls.count(1.0) == 2

    async def test_submission_failure_is_not_retried(self, sleep):
        chains = ScriptedChains([1, 2], [2, 3])

        async def failing_cosmos():
            if chains.cosmos_calls == 1:
                raise RuntimeError("broadcast rejected")
            return await chains.cosmos_op()

        with pytest.raises(RuntimeError, match="broadcast rejected"):
            await _coordinator(sleep).attempt_alignment(chains.evm_op, failing_cosmos)

        assert chains.evm_calls == 2
        assert chains.cosmos_calls == 1

    async def test_submission_failure_cancels_delayed_sibling(self):
        chains = ScriptedChains([1, 2], [2, 3])

        async def failing_cosmos():
            if chains.cosmos_calls == 1:
                raise RuntimeError("broadcast rejected")
            return await chains.cosmos_op()

        # Real sleep so the staggered EVM side is still pending at the failure
        coordinator = BlockAlignmentCoordinator(
            AlignmentPolicy(delay_seconds=0, stagger_step=0.05), sleep=asyncio.sleep,
        )
        with pytest.raises(RuntimeError, match="broadcast rejected"):
            await coordinator.attempt_alignment(chains.evm_op, failing_cosmos)

        await asyncio.sleep(0.3)
        assert chains.evm_calls == 1

    async def test_confirmation_failure_propagates(self, sleep):
        class RevertedHandle:
            async def wait(self):
                raise ValueError("transaction reverted")

        async def evm_op():
            return RevertedHandle()

        async def cosmos_op():
            return SimpleNamespace(height=1)

        with pytest.raises(ValueError, match="reverted"):
            await _coordinator(sleep).attempt_alignment(evm_op, cosmos_op)

    async def test_attempt_timeout(self, sleep):
        class HungHandle:
            async def wait(self):
                await asyncio.sleep(5)

        async def evm_op():
            return HungHandle()

        async def cosmos_op():
            return SimpleNamespace(height=1)

        coordinator = _coordinator(sleep, attempt_timeout=0.05)
        with pytest.raises(AlignmentTimeoutError) as exc_info:
            await coordinator.attempt_alignment(evm_op, cosmos_op)
        assert exc_info.value.attempt_index == 1

    async def test_send_until_same_block(self):
        chains = ScriptedChains([9], [9])
        result = await send_until_same_block(chains.evm_op, chains.cosmos_op, max_attempts=2)
        assert result.height == 9


# ============================================================================
# TEST: policy validation
# ============================================================================

class TestAlignmentPolicy:

    @pytest.mark.parametrize("kwargs", [
        {"max_attempts": 0},
        {"max_attempts": True},
        {"delay_seconds": -1},
        {"stagger_step": -0.1},
        {"attempt_timeout": 0},
    ])
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            AlignmentPolicy(**kwargs)

    def test_stagger_grows_with_attempt(self):
        policy = AlignmentPolicy()
        assert policy.stagger(1) == pytest.approx(0.1)
        assert policy.stagger(4) == pytest.approx(0.4)


# ============================================================================
# TEST: height extraction
# ============================================================================

class TestHeightExtraction:

    def test_pending_receipt_has_no_height(self):
        with pytest.raises(ValueError, match="has none of blockNumber"):
            evm_block_number({"blockNumber": None, "status": None})

    def test_falls_back_to_snake_case_key(self):
        assert evm_block_number({"blockNumber": None, "block_number": 7}) == 7

    def test_cosmos_height_from_object_and_mapping(self):
        assert cosmos_height(SimpleNamespace(height="12")) == 12
        assert cosmos_height({"height": 12}) == 12
