"""Request coalescing for async work keyed by a string."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar


V = TypeVar("V")


class InFlightRegistry(Generic[V]):
    """Run at most one task per key; concurrent callers share its result.

    The shared task is shielded from the cancellation of any single
    caller, so once started it always runs to completion. It is
    unregistered as soon as it finishes, whatever the outcome.
    """

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Future[V]] = {}

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    async def run(self, key: str, factory: Callable[[], Awaitable[V]]) -> V:
        """Await the in-flight task for ``key``, starting it if needed.

        Args:
            key: Coalescing key.
            factory: Produces the awaitable to run when nothing is in flight.

        Returns:
            The shared task's result.
        """
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            task.add_done_callback(lambda done: self._unregister(key, done))
        return await asyncio.shield(task)

    def _unregister(self, key: str, task: asyncio.Future[V]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
