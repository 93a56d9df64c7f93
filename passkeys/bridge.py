"""
Browser module handle.

The browser side of a ceremony (navigator.credentials) is reached through a
BrowserModule supplied by the host application, e.g. a websocket or
server-push channel to the page that loaded ``passkeys.js``. The provider
loads that module lazily, once, the first time any ceremony needs it.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from passkeys.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class BrowserModule(Protocol):
    """
    Host-provided channel to the browser module.

    `invoke` calls one of the functions exported by ``passkeys.js`` with
    JSON-serializable arguments and returns its JSON result. Implementations
    raise passkeys.exceptions.BrowserError when the browser rejects with a
    DOMException, and may block for as long as the user takes to respond.
    """

    async def invoke(self, identifier: str, *args: Any) -> Any: ...

    async def dispose(self) -> None: ...


ModuleLoader = Callable[[], Awaitable[BrowserModule]]


class BrowserModuleHandle:
    """
    Loads the browser module exactly once.

    Concurrent first callers wait on the same lock and all receive the one
    loaded module. A failed load is not remembered; the next caller tries
    again.
    """

    def __init__(self, loader: ModuleLoader) -> None:
        self._loader = loader
        self._module: BrowserModule | None = None
        self._lock = asyncio.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._module is not None

    async def get(self) -> BrowserModule:
        """Return the loaded module, loading it on first use."""
        if self._module is not None:
            return self._module

        async with self._lock:
            if self._module is None:
                self._module = await self._loader()
                logger.debug("browser_module_loaded")
        return self._module

    async def dispose(self) -> None:
        """Dispose the module if it was ever loaded."""
        module, self._module = self._module, None
        if module is None:
            return
        await module.dispose()
        logger.debug("browser_module_disposed")
