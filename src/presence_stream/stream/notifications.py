"""
Notifications
=============

Ordered observer lists used by the stream client to publish events.

Callbacks are plain synchronous callables. They run in subscription
order, on the event loop thread, and must not block. A callback that
raises is logged and the remaining callbacks still run.

Example:
    on_message = Notification("message")
    on_message.subscribe(lambda client, update: print(update))
    on_message.emit(client, update)
"""

import logging
from typing import Any, Callable, List


logger = logging.getLogger(__name__)


class Notification:
    """
    An ordered list of callbacks for one kind of event.

    Attributes:
        name: Event name, used in log messages
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._callbacks: List[Callable[..., Any]] = []

    def subscribe(self, callback: Callable[..., Any]) -> Callable[..., Any]:
        """
        Add a callback.

        Returns the callback so this can be used as a decorator.
        """
        self._callbacks.append(callback)
        return callback

    def unsubscribe(self, callback: Callable[..., Any]) -> bool:
        """
        Remove a callback.

        Returns:
            True if the callback was subscribed, False otherwise
        """
        try:
            self._callbacks.remove(callback)
            return True
        except ValueError:
            return False

    def clear(self) -> None:
        """Remove every callback."""
        self._callbacks.clear()

    def emit(self, *args: Any) -> None:
        """Invoke every callback with the given arguments."""
        # Copy so callbacks may unsubscribe themselves
        for callback in list(self._callbacks):
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Error in {self.name} callback {callback!r}")

    def __len__(self) -> int:
        return len(self._callbacks)

    def __contains__(self, callback: object) -> bool:
        return callback in self._callbacks
