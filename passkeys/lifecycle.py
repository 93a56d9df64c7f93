"""
Structured cancellation for ceremonies.

The provider owns a root CancellationScope. Every ceremony opens a child
scope and runs its awaits (browser module, verification) through it.
Cancelling the root cancels every child and the tasks they are awaiting.

A caller cancelling its own task is not the provider's business:
asyncio.CancelledError from that path propagates unchanged. Only
cancellation that originates from a scope is converted into
CeremonyCancelledError.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from passkeys.exceptions import CeremonyCancelledError, ProviderClosedError

T = TypeVar("T")


class CancellationScope:
    """A node in the provider's cancellation tree."""

    def __init__(self, parent: "CancellationScope | None" = None) -> None:
        self._parent = parent
        self._children: set[CancellationScope] = set()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        if self._cancelled:
            return True
        return self._parent is not None and self._parent.cancelled

    def child(self) -> "CancellationScope":
        """
        Open a child scope linked to this one.

        Raises:
            ProviderClosedError: If this scope is already cancelled
        """
        if self.cancelled:
            raise ProviderClosedError("Provider has been disposed")
        scope = CancellationScope(self)
        self._children.add(scope)
        return scope

    def cancel(self) -> None:
        """Cancel this scope, its children, and every task they await."""
        if self._cancelled:
            return
        self._cancelled = True
        for scope in list(self._children):
            scope.cancel()
        for task in list(self._tasks):
            task.cancel()

    def close(self) -> None:
        """Detach from the parent once the ceremony is over."""
        if self._parent is not None:
            self._parent._children.discard(self)

    def __enter__(self) -> "CancellationScope":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    async def run(self, func: Callable[..., Awaitable[T]], *args: Any) -> T:
        """
        Await ``func(*args)`` inside this scope.

        Raises:
            CeremonyCancelledError: If the scope is or becomes cancelled
        """
        if self.cancelled:
            raise CeremonyCancelledError("Ceremony was cancelled")

        task = asyncio.ensure_future(func(*args))
        self._tasks.add(task)
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if self.cancelled and (current is None or not current.cancelling()):
                raise CeremonyCancelledError("Ceremony was cancelled") from None
            raise
        finally:
            self._tasks.discard(task)
