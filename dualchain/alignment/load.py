"""
Dual-chain load driver.

Generates mixed traffic for a fixed wall-clock duration: half of the users
send EVM transfers, the other half Cosmos transfers, all concurrently within
each round. Unlike the coordinator this makes no attempt to pair
transactions into the same block.
"""

import asyncio
import math
import time
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from ..constants import DEFAULT_BLOCK_TIME, DEFAULT_LOAD_DURATION
from ..logger import get_logger
from .models import EvmTxHandle, LoadResult

logger = get_logger(__name__)

User = TypeVar("User")


async def _transfer_and_wait(evm_transfer: Callable[[Any], Awaitable[EvmTxHandle]], user: Any) -> Any:
    tx = await evm_transfer(user)
    return await tx.wait()


async def send_cosmos_evm_txs(
    evm_transfer: Callable[[User], Awaitable[EvmTxHandle]],
    cosmos_transfer: Callable[[User], Awaitable[Any]],
    users: Sequence[User],
    duration_seconds: float = DEFAULT_LOAD_DURATION,
    block_time_seconds: float = DEFAULT_BLOCK_TIME,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> LoadResult:
    """
    Send transfer rounds until ``duration_seconds`` have elapsed.

    The first ``ceil(len(users) / 2)`` users drive EVM transfers, the rest
    Cosmos transfers. Elapsed time is checked only between rounds, so a round
    in flight always completes. Results accumulate in submission order across
    all rounds; the caller bounds their size through the duration.
    """
    mid = math.ceil(len(users) / 2)
    evm_users = list(users[:mid])
    cosmos_users = list(users[mid:])

    result = LoadResult()
    start = clock()
    while clock() - start < duration_seconds:
        evm_round, cosmos_round = await asyncio.gather(
            asyncio.gather(*(_transfer_and_wait(evm_transfer, u) for u in evm_users)),
            asyncio.gather(*(cosmos_transfer(u) for u in cosmos_users)),
        )
        result.evm_receipts.extend(evm_round)
        result.cosmos_responses.extend(cosmos_round)
        result.rounds += 1
        logger.info(
            f"Load round {result.rounds}: {len(evm_round)} EVM, {len(cosmos_round)} Cosmos"
        )

        await sleep(block_time_seconds)

    return result
