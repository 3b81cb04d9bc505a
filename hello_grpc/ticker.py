import asyncio
from typing import AsyncIterator

from hello_grpc.exceptions import InvalidArgument


async def ticks(interval: float) -> AsyncIterator[int]:
    """Yield 1, 2, 3, ... with ``interval`` seconds between consecutive ticks.

    The first tick fires one interval after iteration starts. The wait is an
    ``asyncio.sleep``, so cancelling the consuming task or closing the
    generator tears the timer down immediately.
    """
    if interval <= 0:
        raise InvalidArgument(f"interval must be positive, got {interval}")
    count = 0
    while True:
        await asyncio.sleep(interval)
        count += 1
        yield count
