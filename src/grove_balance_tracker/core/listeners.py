"""Per-resource-type listener registry with isolated dispatch."""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from grove_balance_tracker.core.models import ResourceType

logger = logging.getLogger(__name__)

BalanceListener = Callable[[Any], Any]


class Subscription:
    """
    A single listener registration.

    Parameters
    ----------
    registry : ListenerRegistry
        Registry holding the subscription
    resource_type : ResourceType
        Resource type the callback listens to
    callback : BalanceListener
        Called with each fresh value

    """

    def __init__(self, registry: "ListenerRegistry", resource_type: ResourceType, callback: BalanceListener) -> None:
        self._registry = registry
        self.resource_type = resource_type
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        """Remove this registration. Calling it again does nothing."""
        if self.active:
            self._registry._remove(self)
            self.active = False

    __call__ = unsubscribe


class ListenerRegistry:
    """
    Registry of balance listeners keyed by resource type.

    Every callback is invoked independently: an exception raised by one
    listener is logged and the remaining listeners still receive the value.
    Coroutine functions are accepted; their coroutines run as tasks on the
    current event loop and their failures are logged the same way.

    """

    def __init__(self) -> None:
        self._subscriptions: dict[ResourceType, list[Subscription]] = {}
        self._pending: set[asyncio.Task] = set()

    def add_listener(self, resource_type: ResourceType | str, callback: BalanceListener) -> Subscription:
        """
        Register a callback for updates of one resource type.

        Parameters
        ----------
        resource_type : ResourceType | str
            Resource type to listen to
        callback : BalanceListener
            Called with the fresh value after each successful fetch

        Returns
        -------
        Subscription
            Callable handle; call it (or ``unsubscribe()``) to remove the listener

        """
        resource_type = ResourceType.parse(resource_type)
        subscription = Subscription(self, resource_type, callback)
        self._subscriptions.setdefault(resource_type, []).append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.resource_type, [])
        for index, candidate in enumerate(subscriptions):
            if candidate is subscription:
                del subscriptions[index]
                break

    def notify_listeners(self, resource_type: ResourceType | str, data: Any) -> None:
        """
        Deliver a value to every listener of a resource type.

        Parameters
        ----------
        resource_type : ResourceType | str
            Resource type that was updated
        data : Any
            Fresh value

        """
        resource_type = ResourceType.parse(resource_type)
        # Listeners added or removed during dispatch do not affect this round
        subscriptions = list(self._subscriptions.get(resource_type, ()))

        for subscription in subscriptions:
            try:
                result = subscription.callback(data)
                if inspect.isawaitable(result):
                    self._track(resource_type, result)
            except Exception:
                logger.exception("Error in %s balance listener", resource_type)

    def _track(self, resource_type: ResourceType, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise
        task = asyncio.ensure_future(awaitable, loop=loop)
        self._pending.add(task)

        def _done(t: asyncio.Task) -> None:
            self._pending.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.error(
                    "Error in %s balance listener",
                    resource_type,
                    exc_info=t.exception(),
                )

        task.add_done_callback(_done)

    def listener_count(self, resource_type: ResourceType | str | None = None) -> int:
        """Number of registered listeners, for one resource type or all of them."""
        if resource_type is None:
            return sum(len(subs) for subs in self._subscriptions.values())
        return len(self._subscriptions.get(ResourceType.parse(resource_type), ()))

    def clear(self) -> None:
        """Remove every listener."""
        for subscriptions in self._subscriptions.values():
            for subscription in subscriptions:
                subscription.active = False
        self._subscriptions.clear()

    async def wait_pending(self) -> None:
        """Wait for asynchronous listeners that are still running."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
