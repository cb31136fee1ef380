from typing import Any, Callable, Generic, Mapping, Optional, Type, TypeVar, Union

from keyauth.core.config import ClientOptions, RateLimitSettings
from keyauth.core.logging import configure_client_logger, get_log_context
from keyauth.core.rate_limit import RateLimiter
from keyauth.models import ApiResponse, ClientEvent, LogicalRequest, SellerEvent
from keyauth.services.dispatcher import Dispatcher
from keyauth.services.event_bus import EventBus, Handler
from keyauth.transport.base import BaseTransport
from keyauth.transport.httpx_transport import HttpxTransport
from keyauth.transport.retry import RetryPolicy

K = TypeVar("K", ClientEvent, SellerEvent)

Reshape = Callable[[ApiResponse], ApiResponse]


class BaseApi(Generic[K]):
    """Base class for the KeyAuth API wrappers.

    Wires one rate limiter, one event bus, one transport and one dispatcher per
    instance. Subclasses only build parameters and pick the endpoint kind.

    A transport passed in is shared and never closed by the API; otherwise an
    HttpxTransport is created and closed by :meth:`aclose`.
    """

    event_kinds: Type[K]
    logger_name: str = "api"
    default_base_url: str = ""

    def __init__(
        self,
        static_params: Mapping[str, str],
        options: Optional[ClientOptions] = None,
        transport: Optional[BaseTransport] = None,
    ):
        """Initialize the API wrapper.

        Args:
            static_params: Credentials sent with every call, never published
            options: Per-instance options, settings defaults when omitted
            transport: Optional transport shared with other instances
        """
        self.options = options or ClientOptions()
        ratelimit = self.options.ratelimit or RateLimitSettings()

        # Child logger per instance
        self.logger = configure_client_logger(f"{self.logger_name}.{id(self):x}", self.options.logger)
        self.bus: EventBus[K] = EventBus(self.event_kinds)
        self.rate_limiter = RateLimiter(
            max_tokens=ratelimit.max_tokens, refill_rate=ratelimit.refill_rate
        )

        self._owns_transport = transport is None
        self.transport = transport or HttpxTransport(
            timeout=self.options.timeout,
            retry_policy=RetryPolicy(max_retries=self.options.max_retries),
        )

        base_url = self.options.base_url or self.default_base_url
        if self.options.base_url:
            self.logger.info("Using custom base url", extra=get_log_context(tag="instance"))

        self.dispatcher = Dispatcher(
            base_url=base_url,
            transport=self.transport,
            bus=self.bus,
            rate_limiter=self.rate_limiter,
            static_params=static_params,
            logger=self.logger,
        )
        self.logger.debug(
            "Keyauth instance created.",
            extra=get_log_context(tag="instance", endpoint=base_url),
        )

    @property
    def base_url(self) -> str:
        return self.dispatcher.base_url

    # Subscriptions

    def on(self, kind: Union[K, str], handler: Handler) -> None:
        """Register a persistent handler for an event kind."""
        self.bus.on(kind, handler)

    def once(self, kind: Union[K, str], handler: Handler) -> None:
        """Register a handler removed after its first invocation."""
        self.bus.once(kind, handler)

    def off(self, kind: Union[K, str], handler: Handler) -> bool:
        """Remove a handler registered with :meth:`on` or :meth:`once`."""
        return self.bus.off(kind, handler)

    # Dispatch

    async def _call(
        self,
        event: K,
        params: Optional[Mapping[str, Any]] = None,
        reshape: Optional[Reshape] = None,
        skip_response: bool = False,
        skip_error: bool = False,
        publish_as: Optional[K] = None,
    ) -> ApiResponse:
        """Dispatch one endpoint call and publish its endpoint event.

        ``None`` parameters are dropped, everything else is sent as a string.
        ``reshape`` turns the normalized result into the endpoint's public
        shape before it is published and returned. ``publish_as`` publishes
        under another kind than the one sent as ``type``.
        """
        request = LogicalRequest(
            endpoint=event,
            parameters=params or {},
            skip_response=skip_response,
            skip_error=skip_error,
        )
        result = await self.dispatcher.send(request)
        if reshape is not None:
            result = reshape(result)
        published = publish_as or event
        self.bus.publish(published, result)
        self.logger.debug(
            "Request complete. Returning response.",
            extra=get_log_context(tag=published.value, success=result.success),
        )
        return result

    # Lifecycle

    async def aclose(self) -> None:
        """Release the transport if this instance created it."""
        if self._owns_transport:
            await self.transport.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
