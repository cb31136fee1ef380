"""httpx-backed transport for the KeyAuth API.

Every endpoint is a GET on the API base URL with the operation encoded in the
query string. Besides 200, the API answers 302/403/404/406 with a normal JSON
body, so those are delivered and classified by content, not by status.
"""

import json
from typing import Mapping, Optional

import httpx

from keyauth.core.logging import get_logger, get_log_context
from keyauth.exceptions import TransportError
from keyauth.transport.base import DELIVERABLE_STATUS_CODES, BaseTransport, TransportResponse
from keyauth.transport.retry import RetryPolicy, retry_call

logger = get_logger(__name__)


class HttpxTransport(BaseTransport):
    """Transport performing real HTTP calls with httpx.

    Network errors, timeouts and 5xx answers are retried with exponential
    backoff; everything else that is not deliverable fails immediately.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        super().__init__(http_client, timeout)
        self.retry_policy = retry_policy or RetryPolicy()

    async def _get(self, url: str, params: Mapping[str, str]) -> httpx.Response:
        resp = await self.http_client.get(url, params=dict(params))
        if resp.status_code not in DELIVERABLE_STATUS_CODES:
            resp.raise_for_status()
            # 1xx/3xx outside the whitelist do not raise on their own
            raise httpx.HTTPStatusError(
                f"Unexpected status {resp.status_code}", request=resp.request, response=resp
            )
        return resp

    async def call(self, url: str, params: Mapping[str, str]) -> TransportResponse:
        endpoint = params.get("type")
        try:
            resp = await retry_call(self.retry_policy, self._get, url, params)
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"API answered with status {e.response.status_code}",
                status_code=e.response.status_code,
                endpoint=endpoint,
            ) from e
        except httpx.TimeoutException as e:
            raise TransportError("API request timed out", endpoint=endpoint) from e
        except httpx.HTTPError as e:
            raise TransportError(f"API request failed: {e}", endpoint=endpoint) from e

        try:
            body = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise TransportError(
                "API answered with a body that is not JSON",
                status_code=resp.status_code,
                endpoint=endpoint,
            ) from e
        if not isinstance(body, dict):
            raise TransportError(
                "API answered with a JSON body that is not an object",
                status_code=resp.status_code,
                endpoint=endpoint,
            )

        logger.debug(
            "API call delivered",
            extra=get_log_context(tag=endpoint, endpoint=url, status_code=resp.status_code),
        )
        return TransportResponse(status_code=resp.status_code, body=body)
