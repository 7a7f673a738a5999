"""
Change Notifier

In-process publish/subscribe registry mapping an event kind ("cart",
"wishlist", "identity") to its handlers. Dispatch is synchronous and in
registration order and carries no payload: handlers re-read whatever they
care about. A handler may return an awaitable, which is scheduled on the
running loop and tracked until `drain()`.
"""

import asyncio
import inspect
import itertools
import logging
from typing import Awaitable, Callable, Dict, Optional, Set, Union

from error_handling import ErrorHandler

logger = logging.getLogger(__name__)

IDENTITY_CHANGED = "identity"

Handler = Callable[[], Union[None, Awaitable[None]]]


class ChangeNotifier:
    """Broadcast channel per event kind, owned by the application context"""

    def __init__(self):
        self._handlers: Dict[str, Dict[int, Handler]] = {}
        self._handles = itertools.count(1)
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, kind: str, handler: Handler) -> Callable[[], None]:
        """
        Register a handler for an event kind

        Args:
            kind: Event kind to listen on
            handler: Zero-argument callable, sync or async

        Returns:
            Callable: Unsubscribe function; calling it more than once is harmless
        """
        handle = next(self._handles)
        self._handlers.setdefault(kind, {})[handle] = handler
        logger.debug(f"Handler {handle} subscribed to '{kind}'")

        def unsubscribe():
            if self._handlers.get(kind, {}).pop(handle, None) is not None:
                logger.debug(f"Handler {handle} unsubscribed from '{kind}'")

        return unsubscribe

    def notify(self, kind: str):
        """Signal every handler of `kind` that something changed"""
        handlers = list(self._handlers.get(kind, {}).values())
        logger.debug(f"Notifying {len(handlers)} handler(s) of '{kind}'")

        for handler in handlers:
            try:
                result = handler()
            except Exception as e:
                ErrorHandler.log_error(e, {"event": kind, "handler": repr(handler)})
                continue

            if inspect.isawaitable(result):
                self._schedule(kind, result)

    def _schedule(self, kind: str, awaitable: Awaitable[None]):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; dropped async handler for '{kind}'")
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task):
        self._pending.discard(task)
        if task.cancelled():
            return
        error: Optional[BaseException] = task.exception()
        if error is not None:
            ErrorHandler.log_error(error, {"task": task.get_name()})

    async def drain(self):
        """Wait until every scheduled async handler has finished"""
        while True:
            pending = [task for task in self._pending if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def subscriber_count(self, kind: str) -> int:
        return len(self._handlers.get(kind, {}))

    def clear(self):
        """Drop every handler and cancel in-flight deliveries"""
        self._handlers.clear()
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
