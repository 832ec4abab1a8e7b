"""
Block-alignment coordinator.

Submits one EVM transaction and one Cosmos transaction per attempt and retries
until both are included at the same block height. Neither client can hold a
submission until told to finalize, so the only lever is *when* each side is
issued: after a miss, the side that landed earlier is delayed by
``stagger_step * attempt`` on the next attempt.

This is best-effort alignment, not atomicity. Every attempt leaves both
transactions on-chain; nothing is rolled back when attempts run out.
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from ..exceptions import AlignmentExhaustedError, AlignmentTimeoutError
from ..logger import get_logger
from .models import (
    AlignmentAttempt,
    AlignmentPolicy,
    AlignmentResult,
    Bias,
    CosmosOperation,
    EvmOperation,
    cosmos_height,
    evm_block_number,
)

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class BlockAlignmentCoordinator:
    """
    Drives the alignment state machine.

    The submission operations are injected per call and may be invoked up to
    ``policy.max_attempts`` times, so repeated submission must be an accepted
    side effect for the caller. ``sleep`` is injectable for tests.
    """

    def __init__(self, policy: Optional[AlignmentPolicy] = None, sleep: Sleep = asyncio.sleep):
        self.policy = policy or AlignmentPolicy()
        self._sleep = sleep

    async def attempt_alignment(
        self,
        evm_op: EvmOperation,
        cosmos_op: CosmosOperation,
    ) -> AlignmentResult:
        """
        Retry until both transactions land at the same height.

        Only a height mismatch is retried. A failing submission or
        confirmation propagates immediately.

        Raises:
            AlignmentExhaustedError: heights differed on every attempt.
            AlignmentTimeoutError: an attempt exceeded ``policy.attempt_timeout``.
        """
        policy = self.policy
        bias = Bias.UNKNOWN
        attempts: List[AlignmentAttempt] = []

        for index in range(1, policy.max_attempts + 1):
            attempt = self._plan(index, bias)
            attempts.append(attempt)

            evm_receipt, cosmos_response = await self._run_attempt(attempt, evm_op, cosmos_op)
            attempt.evm_height = evm_block_number(evm_receipt)
            attempt.cosmos_height = cosmos_height(cosmos_response)

            if attempt.aligned:
                logger.info(f"Aligned at height {attempt.evm_height} on attempt {index}")
                return AlignmentResult(evm_receipt, cosmos_response, tuple(attempts))

            logger.warning(
                f"Attempt {index}: EVM block {attempt.evm_height}, "
                f"Cosmos height {attempt.cosmos_height}."
            )
            bias = Bias.EVM_EARLIER if attempt.evm_height < attempt.cosmos_height else Bias.COSMOS_EARLIER

            if index < policy.max_attempts:
                await self._sleep(policy.delay_seconds)

        logger.error(f"No alignment after {policy.max_attempts} attempts")
        raise AlignmentExhaustedError(policy.max_attempts, attempts)

    def _plan(self, index: int, bias: Bias) -> AlignmentAttempt:
        attempt = AlignmentAttempt(index=index, bias=bias)
        if bias is Bias.EVM_EARLIER:
            attempt.evm_delay = self.policy.stagger(index)
        elif bias is Bias.COSMOS_EARLIER:
            attempt.cosmos_delay = self.policy.stagger(index)
        return attempt

    async def _run_attempt(
        self,
        attempt: AlignmentAttempt,
        evm_op: EvmOperation,
        cosmos_op: CosmosOperation,
    ) -> Tuple[Any, Any]:
        timeout = self.policy.attempt_timeout
        if timeout is None:
            return await self._submit_and_confirm(attempt, evm_op, cosmos_op)
        try:
            return await asyncio.wait_for(
                self._submit_and_confirm(attempt, evm_op, cosmos_op), timeout
            )
        except asyncio.TimeoutError:
            raise AlignmentTimeoutError(attempt.index, timeout) from None

    async def _submit_and_confirm(
        self,
        attempt: AlignmentAttempt,
        evm_op: EvmOperation,
        cosmos_op: CosmosOperation,
    ) -> Tuple[Any, Any]:
        # A failing side cancels the other before it submits.
        try:
            async with asyncio.TaskGroup() as tg:
                evm_task = tg.create_task(self._issue(evm_op, attempt.evm_delay))
                cosmos_task = tg.create_task(self._issue(cosmos_op, attempt.cosmos_delay))
        except BaseExceptionGroup as group:
            raise group.exceptions[0] from None
        evm_tx, cosmos_response = evm_task.result(), cosmos_task.result()

        # Cosmos responses are final on return; only EVM needs confirming.
        evm_receipt = await evm_tx.wait()
        return evm_receipt, cosmos_response

    async def _issue(self, op: Callable[[], Awaitable[Any]], delay: float) -> Any:
        if delay > 0:
            await self._sleep(delay)
        return await op()


async def send_until_same_block(
    evm_op: EvmOperation,
    cosmos_op: CosmosOperation,
    max_attempts: int = 5,
    delay_seconds: float = 1,
) -> AlignmentResult:
    """Functional wrapper around :meth:`BlockAlignmentCoordinator.attempt_alignment`."""
    policy = AlignmentPolicy(max_attempts=max_attempts, delay_seconds=delay_seconds)
    return await BlockAlignmentCoordinator(policy).attempt_alignment(evm_op, cosmos_op)
