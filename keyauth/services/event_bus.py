"""Event Bus

Typed in-process publish/subscribe for client events. The set of kinds is
closed: the bus is built from an Enum and creates one channel per member up
front, so an unknown kind is rejected instead of silently creating a topic.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Type, TypeVar, Union

from keyauth.core.logging import get_logger, get_log_context

logger = get_logger(__name__)

K = TypeVar("K", bound=Enum)
Handler = Callable[[Any], None]


@dataclass(eq=False)
class _Subscription:
    handler: Handler
    once: bool = False


class EventBus(Generic[K]):
    """In-process event bus over a closed set of event kinds.

    Handlers run synchronously, in registration order, on the publisher's
    execution context. A failing handler is logged and does not stop its
    siblings or reach the publisher.
    """

    def __init__(self, kinds: Type[K]):
        """Initialize one empty channel per member of ``kinds``.

        Args:
            kinds: Enum listing every event kind this bus accepts
        """
        self._kinds = kinds
        self._channels: Dict[K, List[_Subscription]] = {kind: [] for kind in kinds}

    @property
    def kinds(self) -> Type[K]:
        return self._kinds

    def _resolve(self, kind: Union[K, str]) -> K:
        try:
            return self._kinds(kind)
        except ValueError:
            raise ValueError(
                f"Unknown event kind {kind!r} for {self._kinds.__name__}"
            ) from None

    def on(self, kind: Union[K, str], handler: Handler) -> None:
        """Register a persistent handler for ``kind``."""
        self._channels[self._resolve(kind)].append(_Subscription(handler))

    def once(self, kind: Union[K, str], handler: Handler) -> None:
        """Register a handler that is removed after its first invocation."""
        self._channels[self._resolve(kind)].append(_Subscription(handler, once=True))

    def off(self, kind: Union[K, str], handler: Handler) -> bool:
        """Remove the first registration of ``handler`` for ``kind``.

        Returns:
            True if a registration was removed
        """
        channel = self._channels[self._resolve(kind)]
        for subscription in channel:
            if subscription.handler == handler:
                channel.remove(subscription)
                return True
        return False

    def publish(self, kind: Union[K, str], payload: Any) -> int:
        """Invoke every handler registered for ``kind`` with ``payload``.

        The channel is snapshotted first, so handlers added or removed while
        publishing take effect from the next publish on.

        Returns:
            Number of handlers invoked
        """
        resolved = self._resolve(kind)
        channel = self._channels[resolved]
        if not channel:
            return 0

        subscriptions = list(channel)
        # Once-handlers leave the channel before running so a re-entrant
        # publish cannot fire them twice.
        for subscription in subscriptions:
            if subscription.once and subscription in channel:
                channel.remove(subscription)

        for subscription in subscriptions:
            try:
                subscription.handler(payload)
            except Exception:
                logger.exception(
                    f"Event handler {getattr(subscription.handler, '__name__', subscription.handler)!r} failed",
                    extra=get_log_context(tag=resolved.value),
                )
        return len(subscriptions)

    def listener_count(self, kind: Union[K, str]) -> int:
        """Number of handlers currently registered for ``kind``."""
        return len(self._channels[self._resolve(kind)])

    def clear(self) -> None:
        """Remove all handlers from every channel."""
        for channel in self._channels.values():
            channel.clear()
