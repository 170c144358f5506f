"""
Request coalescing for async operations.

Only one call per key is in flight at a time; concurrent callers await the
same result instead of starting duplicate work.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class SingleFlight:
    """
    Coalesces concurrent calls sharing a key into a single execution.

    Usage:
        group = SingleFlight()
        token = await group.do("token", refresh_token)
    """

    def __init__(self):
        self._in_flight: Dict[Hashable, asyncio.Future] = {}

    def is_in_flight(self, key: Hashable) -> bool:
        return key in self._in_flight

    async def do(self, key: Hashable, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``operation`` unless a call for ``key`` is already running, in
        which case wait for that call's outcome (result or exception).

        The in-flight entry is removed once the operation settles, so the
        next call after completion triggers a fresh execution.
        """
        existing = self._in_flight.get(key)
        if existing is not None:
            logger.debug(f"Joining in-flight operation for {key!r}")
            # shield: a cancelled waiter must not cancel the shared operation
            return await asyncio.shield(existing)

        task = asyncio.ensure_future(operation())
        self._in_flight[key] = task

        def _forget(done: asyncio.Future) -> None:
            if self._in_flight.get(key) is done:
                del self._in_flight[key]
            # Mark the outcome retrieved even if every waiter was cancelled
            if not done.cancelled():
                done.exception()

        task.add_done_callback(_forget)
        return await asyncio.shield(task)
