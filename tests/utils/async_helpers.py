"""
Async testing helpers.
"""

import asyncio
from typing import Any, Callable, Coroutine


class AsyncTestHelper:
    """Helper class for async testing."""

    @staticmethod
    async def wait_for_condition(
        condition: Callable[[], Coroutine[Any, Any, bool]],
        timeout: float = 5.0,
        interval: float = 0.05
    ) -> bool:
        """Wait for an async condition to become true."""
        loop = asyncio.get_running_loop()
        start = loop.time()

        while loop.time() - start < timeout:
            if await condition():
                return True
            await asyncio.sleep(interval)

        return await condition()
