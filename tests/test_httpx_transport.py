"""Tests for the httpx transport."""

import httpx
import pytest

from keyauth.exceptions import TransportError
from keyauth.transport.httpx_transport import HttpxTransport
from keyauth.transport.retry import RetryPolicy

URL = "https://keyauth.test/api/1.2/"
PARAMS = {"type": "init", "name": "app", "ownerid": "owner123", "ver": "1.0"}


def make_transport(**kwargs) -> HttpxTransport:
    return HttpxTransport(retry_policy=RetryPolicy(max_retries=2, base_delay=0.0), **kwargs)


class TestDeliverableAnswers:
    """Test statuses the API uses for structured answers."""

    @pytest.mark.asyncio
    async def test_success_body_delivered(self, respx_mock):
        """A 200 JSON body is returned with its status."""
        route = respx_mock.get(URL).mock(
            return_value=httpx.Response(200, json={"success": True, "message": "Initialized"})
        )
        transport = make_transport()

        outcome = await transport.call(URL, PARAMS)
        await transport.aclose()

        assert outcome.status_code == 200
        assert outcome.body == {"success": True, "message": "Initialized"}
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_params_sent_as_query_string(self, respx_mock):
        """All parameters travel in the query string of a GET."""
        route = respx_mock.get(URL).mock(return_value=httpx.Response(200, json={"success": True}))
        transport = make_transport()

        await transport.call(URL, PARAMS)
        await transport.aclose()

        request = route.calls.last.request
        assert request.method == "GET"
        assert request.url.params["type"] == "init"
        assert request.url.params["ownerid"] == "owner123"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [302, 403, 404, 406])
    async def test_whitelisted_error_statuses_delivered(self, respx_mock, status):
        """Whitelisted non-200 statuses still deliver their body."""
        respx_mock.get(URL).mock(
            return_value=httpx.Response(status, json={"success": False, "message": "Application not found"})
        )
        transport = make_transport()

        outcome = await transport.call(URL, PARAMS)
        await transport.aclose()

        assert outcome.status_code == status
        assert outcome.body["success"] is False


class TestFailures:
    """Test answers that surface as TransportError."""

    @pytest.mark.asyncio
    async def test_server_error_retried_then_raised(self, respx_mock):
        """5xx answers are retried and finally raise with the status."""
        route = respx_mock.get(URL).mock(return_value=httpx.Response(500, text="Internal Server Error"))
        transport = make_transport()

        with pytest.raises(TransportError) as exc_info:
            await transport.call(URL, PARAMS)
        await transport.aclose()

        assert exc_info.value.status_code == 500
        assert exc_info.value.endpoint == "init"
        assert route.call_count == 3

    @pytest.mark.asyncio
    async def test_server_error_then_success(self, respx_mock):
        """A transient 5xx followed by a good answer succeeds."""
        route = respx_mock.get(URL).mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(200, json={"success": True, "message": "ok"}),
            ]
        )
        transport = make_transport()

        outcome = await transport.call(URL, PARAMS)
        await transport.aclose()

        assert outcome.body["message"] == "ok"
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, respx_mock):
        """Statuses outside the whitelist below 500 fail immediately."""
        route = respx_mock.get(URL).mock(return_value=httpx.Response(400, text="Bad Request"))
        transport = make_transport()

        with pytest.raises(TransportError) as exc_info:
            await transport.call(URL, PARAMS)
        await transport.aclose()

        assert exc_info.value.status_code == 400
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_network_error_retried_then_raised(self, respx_mock):
        """Connection failures are retried and then raise."""
        route = respx_mock.get(URL).mock(side_effect=httpx.ConnectError("connection refused"))
        transport = make_transport()

        with pytest.raises(TransportError) as exc_info:
            await transport.call(URL, PARAMS)
        await transport.aclose()

        assert exc_info.value.status_code is None
        assert route.call_count == 3

    @pytest.mark.asyncio
    async def test_non_json_body(self, respx_mock):
        """A body that is not JSON raises."""
        respx_mock.get(URL).mock(return_value=httpx.Response(200, text="<html>maintenance</html>"))
        transport = make_transport()

        with pytest.raises(TransportError) as exc_info:
            await transport.call(URL, PARAMS)
        await transport.aclose()

        assert exc_info.value.status_code == 200

    @pytest.mark.asyncio
    async def test_json_body_that_is_not_an_object(self, respx_mock):
        """A JSON array or scalar is not a valid answer."""
        respx_mock.get(URL).mock(return_value=httpx.Response(200, json=["not", "an", "object"]))
        transport = make_transport()

        with pytest.raises(TransportError):
            await transport.call(URL, PARAMS)
        await transport.aclose()


class TestClientLifecycle:
    """Test ownership of the httpx client."""

    @pytest.mark.asyncio
    async def test_shared_client_not_closed(self, respx_mock):
        """A client passed in is left open by aclose."""
        respx_mock.get(URL).mock(return_value=httpx.Response(200, json={"success": True}))
        client = httpx.AsyncClient()
        transport = make_transport(http_client=client)

        await transport.call(URL, PARAMS)
        await transport.aclose()

        assert client.is_closed is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self):
        """The client a transport creates is closed by aclose."""
        async with make_transport() as transport:
            client = transport.http_client

        assert client.is_closed is True

    def test_owned_client_does_not_follow_redirects(self):
        """302 is an answer, never a redirect to follow."""
        transport = make_transport(timeout=3.0)

        assert transport.http_client.follow_redirects is False
        assert transport.http_client.timeout.read == 3.0
