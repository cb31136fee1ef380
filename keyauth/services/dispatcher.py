"""Request dispatcher

Turns a LogicalRequest into one HTTP call and fans the outcome out on the
event bus:

1. admission through the shared token bucket (may suspend)
2. transport call with the static credentials added
3. ``error`` event when the API answers ``success: false``
4. ``response`` event carrying the payload merged with the request parameters
5. ``request`` audit event, always

Transport failures publish nothing and surface as TransportError.
"""

import logging
import re
import time
from typing import Callable, Mapping, Optional

from keyauth.core.logging import get_logger, get_log_context
from keyauth.core.rate_limit import RateLimiter
from keyauth.exceptions import TransportError
from keyauth.models import (
    ApiResponse,
    ErrorCode,
    ErrorEvent,
    LogicalRequest,
    RequestEvent,
)
from keyauth.services.event_bus import EventBus
from keyauth.transport.base import BaseTransport

# First match wins
_ERROR_PATTERNS = [
    (re.compile(r"not\s+initiali[sz]ed", re.I), ErrorCode.NOT_INITIALIZED),
    (re.compile(r"session.*(not\s+found|invalid|killed|expired)|(invalid|killed|expired)\s+session", re.I), ErrorCode.SESSION_KILLED),
    (re.compile(r"no\s+session|session\s*id", re.I), ErrorCode.NO_SESSION_ID),
    (re.compile(r"not\s+logged\s+in", re.I), ErrorCode.NOT_LOGGED_IN),
    (re.compile(r"chat\s+channel", re.I), ErrorCode.NO_CHAT_CHANNEL),
    (re.compile(r"var(iable)?\s+type", re.I), ErrorCode.UNSUPPORTED_VAR_TYPE),
]


def classify_error(message: str) -> ErrorCode:
    """Best-effort mapping of an API failure message to an ErrorCode."""
    for pattern, code in _ERROR_PATTERNS:
        if pattern.search(message or ""):
            return code
    return ErrorCode.UNKNOWN


class Dispatcher:
    """Sends logical requests for one client instance.

    All concurrent calls of a client share this dispatcher, hence one token
    bucket and one event bus.
    """

    def __init__(
        self,
        base_url: str,
        transport: BaseTransport,
        bus: EventBus,
        rate_limiter: RateLimiter,
        static_params: Optional[Mapping[str, str]] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the dispatcher.

        Args:
            base_url: API base URL every call is sent to
            transport: Performs the HTTP call
            bus: Receives the ``ratelimit``, ``error``, ``response`` and ``request`` events
            rate_limiter: Token bucket gating outbound calls
            static_params: Credentials added to every call but kept out of events
            logger: Logger to report through, defaults to the module logger
            clock: Monotonic time source used for elapsed times
        """
        self.base_url = base_url
        self._transport = transport
        self._bus = bus
        self._rate_limiter = rate_limiter
        self._static_params = dict(static_params or {})
        self._logger = logger or get_logger(__name__)
        self._clock = clock
        self._kinds = bus.kinds

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def transport(self) -> BaseTransport:
        return self._transport

    async def _admit(self, request: LogicalRequest) -> None:
        if self._rate_limiter.try_acquire():
            return

        wait = self._rate_limiter.time_until_next_token_string()
        tag = request.endpoint.value
        if not request.skip_response:
            self._bus.publish(
                self._kinds.RATE_LIMIT,
                ApiResponse(
                    success=False,
                    message=f"Client Api rate limit hit please wait {wait}",
                    elapsed_ms=0,
                    type=self._kinds.RATE_LIMIT.value,
                    endpoint=tag,
                ),
            )
        self._logger.debug(f"Rate limit hit please wait {wait}", extra=get_log_context(tag=tag))
        await self._rate_limiter.wait_until_admitted()

    async def send(self, request: LogicalRequest) -> ApiResponse:
        """Dispatch ``request`` and return its normalized result.

        An answer with ``success: false`` is returned normally (and reported on
        the ``error`` channel); only transport failures raise.

        Raises:
            TransportError: If the HTTP call could not produce a deliverable answer
        """
        await self._admit(request)

        tag = request.endpoint.value
        params = dict(request.parameters)
        self._logger.debug("Making a request to keyauth API.", extra=get_log_context(tag=tag))
        start = self._clock()
        try:
            outcome = await self._transport.call(self.base_url, {**params, **self._static_params})
        except TransportError as e:
            self._logger.error(
                f"Transport failure: {e.message}",
                extra=get_log_context(tag=tag, endpoint=self.base_url, status_code=e.status_code),
            )
            raise
        except Exception as e:
            self._logger.exception(
                "Unexpected transport failure", extra=get_log_context(tag=tag, endpoint=self.base_url)
            )
            raise TransportError(f"Unexpected transport failure: {e}", endpoint=tag) from e

        elapsed_ms = int(round((self._clock() - start) * 1000))
        payload = dict(outcome.body)
        result = ApiResponse.from_payload(payload, elapsed_ms=elapsed_ms)

        if not result.success and not request.skip_error:
            self._bus.publish(
                self._kinds.ERROR,
                ErrorEvent(
                    type=request.endpoint,
                    error_code=classify_error(result.message),
                    message=result.message,
                    payload=payload,
                ),
            )
            self._logger.error(result.message, extra=get_log_context(tag=tag, success=False))

        if not request.skip_response:
            self._bus.publish(
                self._kinds.RESPONSE,
                ApiResponse.from_payload({**payload, **params}, elapsed_ms=elapsed_ms),
            )

        self._bus.publish(
            self._kinds.REQUEST,
            RequestEvent(
                type=request.endpoint,
                url=self.base_url,
                params=params,
                response=result,
                elapsed_ms=elapsed_ms,
            ),
        )
        self._logger.log(
            logging.DEBUG if result.success else logging.INFO,
            f"Request finished in {elapsed_ms}ms",
            extra=get_log_context(tag=tag, elapsed_ms=elapsed_ms, success=result.success),
        )
        return result
