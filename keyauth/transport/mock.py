"""Mock transport for testing purposes.

This transport simulates API answers without making external HTTP calls.
It's useful for tests and for developing against the client offline.
"""

import asyncio
import random
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from keyauth.exceptions import TransportError
from keyauth.transport.base import BaseTransport, TransportResponse

Body = Mapping[str, Any]
Script = Union[Body, List[Body], Callable[[Mapping[str, str]], Body]]


@dataclass(frozen=True)
class RecordedCall:
    url: str
    params: Dict[str, str]


class MockTransport(BaseTransport):
    """Mock transport that returns scripted answers.

    Answers are looked up by the ``type`` query parameter. A script can be a
    body, a list of bodies served in order (the last one repeats), or a
    callable receiving the query parameters.

    Features:
    - Records every call for assertions
    - Configurable response delay
    - Configurable failure rate for testing transport error handling
    """

    def __init__(
        self,
        responses: Optional[Dict[str, Script]] = None,
        status_code: int = 200,
        min_delay: float = 0.0,
        max_delay: float = 0.0,
        failure_rate: float = 0.0,
    ):
        """Initialize the mock transport.

        Args:
            responses: Scripts keyed by endpoint type
            status_code: Status reported with every answer
            min_delay: Minimum response delay in seconds
            max_delay: Maximum response delay in seconds
            failure_rate: Probability of raising TransportError (0-1)
        """
        super().__init__(http_client=None, timeout=0)
        self.responses: Dict[str, Script] = {}
        for endpoint, answer in (responses or {}).items():
            self.script(endpoint, answer)
        self.status_code = status_code
        self.min_delay = min_delay
        self.max_delay = max(min_delay, max_delay)
        self.failure_rate = failure_rate
        self.calls: List[RecordedCall] = []

    def script(self, endpoint: str, answer: Script) -> None:
        """Set or replace the answer for one endpoint type.

        List scripts are copied; serving them never drains the caller's list.
        """
        self.responses[endpoint] = list(answer) if isinstance(answer, list) else answer

    def calls_for(self, endpoint: str) -> List[RecordedCall]:
        return [call for call in self.calls if call.params.get("type") == endpoint]

    def _default_body(self, params: Mapping[str, str]) -> Body:
        endpoint = params.get("type", "")
        if endpoint == "init":
            return {
                "success": True,
                "message": "Initialized",
                "sessionid": uuid.uuid4().hex[:8],
                "newSession": True,
            }
        return {"success": True, "message": f"Mock {endpoint} succeeded"}

    def _answer(self, params: Mapping[str, str]) -> Body:
        script = self.responses.get(params.get("type", ""))
        if script is None:
            return self._default_body(params)
        if callable(script):
            return script(params)
        if isinstance(script, list):
            return script.pop(0) if len(script) > 1 else script[0]
        return script

    async def call(self, url: str, params: Mapping[str, str]) -> TransportResponse:
        self.calls.append(RecordedCall(url=url, params=dict(params)))

        if self.max_delay > 0:
            await asyncio.sleep(random.uniform(self.min_delay, self.max_delay))

        if self.failure_rate and random.random() < self.failure_rate:
            raise TransportError("Simulated transport failure", endpoint=params.get("type"))

        return TransportResponse(status_code=self.status_code, body=dict(self._answer(params)))
